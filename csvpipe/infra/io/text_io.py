from __future__ import annotations

import io
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, ContextManager, Iterator, TextIO

logger = logging.getLogger(__name__)


class TextReader:
    """
    Назначение/ответственность:
        Абстракция источника символов (файл, строка в памяти, поток).
        Открывает источник только в open(), что сохраняет ленивость импорта.

    Инварианты:
        - open() возвращает поток в режиме newline="", чтобы окончания строк
          внутри кавычек сохранялись как есть.
    """

    def __init__(self, opener: Callable[[], TextIO], name: str, closes: bool = True) -> None:
        self._opener = opener
        self.name = name
        self._closes = closes

    @classmethod
    def from_file(cls, path: str | Path, encoding: str = "utf-8-sig") -> "TextReader":
        p = Path(path)
        return cls(lambda: open(p, "r", encoding=encoding, newline=""), name=str(p))

    @classmethod
    def from_string(cls, text: str, name: str = "<string>") -> "TextReader":
        return cls(lambda: io.StringIO(text, newline=""), name=name)

    @classmethod
    def from_stream(cls, stream: TextIO, name: str | None = None) -> "TextReader":
        """
        Назначение:
            Обёртка над уже открытым потоком (stdin и т.п.). Поток не закрывается.
        """
        return cls(lambda: stream, name=name or getattr(stream, "name", "<stream>"), closes=False)

    @contextmanager
    def open(self) -> Iterator[TextIO]:
        stream = self._opener()
        logger.debug("opened text source %s", self.name)
        try:
            yield stream
        finally:
            if self._closes:
                stream.close()
                logger.debug("closed text source %s", self.name)

    def __repr__(self) -> str:
        return f"TextReader({self.name!r})"

    def __str__(self) -> str:
        return self.name


class TextWriter(ABC):
    """
    Назначение/ответственность:
        Абстракция приёмника символов.

    Поведение при ошибке:
        - Файл с atomic=True: запись идёт во временный файл рядом с целевым,
          который переименовывается только при успешном завершении; при ошибке
          временный файл удаляется, целевой файл не изменяется.
        - Поток: строки, записанные до ошибки, остаются (валидный префикс).
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @classmethod
    def from_file(cls, path: str | Path, encoding: str = "utf-8", atomic: bool = True) -> "TextWriter":
        return FileTextWriter(Path(path), encoding=encoding, atomic=atomic)

    @classmethod
    def from_stream(cls, stream: TextIO, name: str | None = None) -> "TextWriter":
        return StreamTextWriter(stream, name=name or getattr(stream, "name", "<stream>"))

    @abstractmethod
    def open(self) -> ContextManager[TextIO]:
        """Контекст с потоком для записи; реализуется наследниками."""

    def __str__(self) -> str:
        return self.name


class StreamTextWriter(TextWriter):
    def __init__(self, stream: TextIO, name: str) -> None:
        super().__init__(name)
        self._stream = stream

    @contextmanager
    def open(self) -> Iterator[TextIO]:
        try:
            yield self._stream
        finally:
            self._stream.flush()

    def __repr__(self) -> str:
        return f"StreamTextWriter({self.name!r})"


class FileTextWriter(TextWriter):
    def __init__(self, path: Path, encoding: str = "utf-8", atomic: bool = True) -> None:
        super().__init__(str(path))
        self.path = path
        self.encoding = encoding
        self.atomic = atomic

    @contextmanager
    def open(self) -> Iterator[TextIO]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.atomic:
            with open(self.path, "w", encoding=self.encoding, newline="") as f:
                yield f
            return

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        completed = False
        try:
            with os.fdopen(fd, "w", encoding=self.encoding, newline="") as f:
                yield f
            os.replace(tmp_name, self.path)
            completed = True
        finally:
            if not completed and os.path.exists(tmp_name):
                os.remove(tmp_name)
                logger.debug("discarded partial output %s", tmp_name)

    def __repr__(self) -> str:
        return f"FileTextWriter({self.name!r}, atomic={self.atomic})"


__all__ = ["TextReader", "TextWriter", "FileTextWriter", "StreamTextWriter"]
