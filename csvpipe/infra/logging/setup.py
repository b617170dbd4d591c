from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

LOGGER_ROOT = "csvpipe"
LOG_FORMAT = "%(asctime)s %(levelname)s runId=%(runId)s comp=%(component)s msg=%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


class EnsureFieldsFilter(logging.Filter):
    """
    Назначение:
        Подставляет runId и component в записи, пришедшие без extra
        (например, от модульных логгеров csvpipe.*), чтобы LOG_FORMAT
        не падал с KeyError.
    """

    def __init__(self, run_id: str, default_component: str = "core"):
        super().__init__()
        self.run_id = run_id
        self.default_component = default_component

    def filter(self, record: logging.LogRecord) -> bool:
        record.runId = getattr(record, "runId", self.run_id)
        record.component = getattr(record, "component", self.default_component)
        return True


def log_event(logger: logging.Logger, level: int, run_id: str, component: str, message: str) -> None:
    logger.log(level, message, extra={"runId": run_id, "component": component})


class StdStreamToLogger:
    """
    Назначение:
        Файлоподобный объект: копит вывод и пишет в лог каждую завершённую
        непустую строку. Хвост без перевода строки уходит в лог на flush().
    """

    def __init__(self, logger: logging.Logger, level: int, run_id: str, component: str):
        self.logger = logger
        self.level = level
        self.run_id = run_id
        self.component = component
        self._pending = ""

    def _emit(self, line: str) -> None:
        line = line.rstrip()
        if line:
            log_event(self.logger, self.level, self.run_id, self.component, line)

    def write(self, s: str) -> int:
        if not s:
            return 0
        *complete, self._pending = (self._pending + s).split("\n")
        for line in complete:
            self._emit(line)
        return len(s)

    def flush(self) -> None:
        pending, self._pending = self._pending, ""
        self._emit(pending)


class TeeStream:
    """Пишет в исходный поток (его результат возвращается) и в зеркало."""

    def __init__(self, primary: TextIO, mirror: StdStreamToLogger):
        self.primary = primary
        self.mirror = mirror

    def write(self, s: str) -> int:
        written = self.primary.write(s)
        self.mirror.write(s)
        return written

    def flush(self) -> None:
        self.primary.flush()
        self.mirror.flush()


def map_log_level(level_name: str) -> int:
    """
    Назначение:
        Имя уровня (ERROR|WARN|WARNING|INFO|DEBUG, регистр не важен) в logging level.

    Ошибки:
        ValueError: неизвестное имя.
    """
    try:
        return _LEVELS[(level_name or "").strip().upper()]
    except KeyError:
        raise ValueError(f"Unsupported log level: {level_name}") from None


def _reset_handlers(target: logging.Logger) -> None:
    for handler in list(target.handlers):
        handler.close()
        target.removeHandler(handler)


def _attach(target: logging.Logger, handler: logging.Handler, level: int) -> None:
    _reset_handlers(target)
    target.setLevel(level)
    target.addHandler(handler)


def create_command_logger(command_name: str, log_dir: str, run_id: str, log_level: str) -> tuple[logging.Logger, str]:
    """
    Назначение:
        Открыть файл лога команды <log_dir>/<command>_<run_id>.log.

    Выходные данные:
        (logger команды, путь к файлу лога)

    Поведение:
        - Логгер команды не распространяет записи выше (propagate=False).
        - Логгер пакета csvpipe получает тот же обработчик, поэтому записи
          модулей (importer, scanner, pipeline) попадают в файл с comp=core.
    """
    log_file = Path(log_dir) / f"{command_name}_{run_id}.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = map_log_level(log_level)

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(EnsureFieldsFilter(run_id=run_id))

    logger = logging.getLogger(f"{LOGGER_ROOT}.command.{command_name}.{run_id}")
    logger.propagate = False
    _attach(logger, handler, level)
    _attach(logging.getLogger(LOGGER_ROOT), handler, level)

    return logger, str(log_file)


def close_command_logger(logger: logging.Logger) -> None:
    # Обработчик общий: закрытие второй раз безопасно.
    _reset_handlers(logger)
    package_logger = logging.getLogger(LOGGER_ROOT)
    _reset_handlers(package_logger)
    package_logger.setLevel(logging.NOTSET)


__all__ = [
    "EnsureFieldsFilter",
    "StdStreamToLogger",
    "TeeStream",
    "map_log_level",
    "create_command_logger",
    "close_command_logger",
    "log_event",
]
