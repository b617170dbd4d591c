from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Sequence, TextIO, TypeVar

from csvpipe.common.result import Result
from csvpipe.common.seq import Seq
from csvpipe.domain.csv.format import CsvFormat
from csvpipe.domain.csv.writer import format_header, format_line
from csvpipe.domain.errors import CsvConfigurationError, CsvExportError
from csvpipe.domain.ports.text_io import TextSink

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CsvExporter(Generic[T]):
    """
    Назначение/ответственность:
        Записывает последовательность элементов как один CSV-поток:
        заголовок, затем по строке на элемент в порядке выдачи.

    Инварианты:
        - mapper возвращает ровно format.column_count значений, иначе
          CsvExportError (фатально).
        - Обход входа однопоточный и упорядоченный (sequential()).
    """

    format: CsvFormat
    mapper: Callable[[T], Sequence[Any]]

    def __post_init__(self) -> None:
        if not isinstance(self.format, CsvFormat):
            raise CsvConfigurationError("Exporter requires a CsvFormat")
        if not callable(self.mapper):
            raise CsvConfigurationError("Exporter mapper is not callable")

    @classmethod
    def builder(cls) -> "CsvExporterBuilder[Any]":
        return CsvExporterBuilder()

    def export(self, records: Iterable[T], target: TextSink) -> int:
        """
        Назначение:
            Терминальный потребитель: полностью обходит records.

        Выходные данные:
            int: число записанных строк данных.
        """
        with target.open() as out:
            self.write_header(out)
            written = 0
            for index, item in enumerate(Seq.from_iterable(records).sequential()):
                self.write_record(out, item, index)
                written += 1
        logger.debug("exported %s records to %s", written, target.name)
        return written

    def try_export(self, records: Iterable[T], target: TextSink) -> Result[int]:
        return Result.capture(self.export, records, target)

    def write_header(self, out: TextIO) -> None:
        out.write(format_header(self.format))
        out.write(self.format.line_separator)

    def write_record(self, out: TextIO, item: T, index: int) -> None:
        out.write(self.format_record(item, index))
        out.write(self.format.line_separator)

    def format_record(self, item: T, index: int) -> str:
        values = list(self.mapper(item))
        expected = self.format.column_count
        if len(values) != expected:
            raise CsvExportError(
                message=f"Mapper returned {len(values)} fields for element #{index}, expected {expected}",
                index=index,
            )
        return format_line(values, self.format)


class CsvExporterBuilder(Generic[T]):
    def __init__(self) -> None:
        self._format: CsvFormat | None = None
        self._mapper: Callable[[Any], Sequence[Any]] | None = None

    def format(self, fmt: CsvFormat) -> "CsvExporterBuilder[T]":
        self._format = fmt
        return self

    def mapper(self, fn: Callable[[T], Sequence[Any]]) -> "CsvExporterBuilder[T]":
        self._mapper = fn
        return self

    def build(self) -> CsvExporter[T]:
        if self._format is None:
            raise CsvConfigurationError("Exporter requires a format")
        if self._mapper is None:
            raise CsvConfigurationError("Exporter requires a mapper")
        return CsvExporter(format=self._format, mapper=self._mapper)


@dataclass(frozen=True)
class _Target(Generic[T]):
    name: str
    exporter: CsvExporter[T]
    sink: TextSink


class CsvMultiExporter(Generic[T]):
    """
    Назначение/ответственность:
        Экспорт одной последовательности сразу в несколько CSV-приёмников
        за один проход по входу.

    Выходные данные:
        export() -> dict[имя экспортёра, число строк данных].
    """

    def __init__(self, targets: Iterable[_Target[T]]) -> None:
        self._targets = tuple(targets)
        if not self._targets:
            raise CsvConfigurationError("Multi exporter requires at least one exporter")

    @classmethod
    def builder(cls) -> "CsvMultiExporterBuilder[Any]":
        return CsvMultiExporterBuilder()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(t.name for t in self._targets)

    def export(self, records: Iterable[T]) -> dict[str, int]:
        counts = {t.name: 0 for t in self._targets}
        with ExitStack() as stack:
            outs = [stack.enter_context(t.sink.open()) for t in self._targets]
            for target, out in zip(self._targets, outs):
                target.exporter.write_header(out)
            for index, item in enumerate(Seq.from_iterable(records).sequential()):
                for target, out in zip(self._targets, outs):
                    target.exporter.write_record(out, item, index)
                    counts[target.name] += 1
        return counts

    def try_export(self, records: Iterable[T]) -> Result[dict[str, int]]:
        return Result.capture(self.export, records)


class CsvMultiExporterBuilder(Generic[T]):
    def __init__(self) -> None:
        self._targets: list[_Target[T]] = []

    def add_exporter(self, name: str, exporter: CsvExporter[T], target: TextSink) -> "CsvMultiExporterBuilder[T]":
        if any(t.name == name for t in self._targets):
            raise CsvConfigurationError(f"Duplicate exporter name: {name!r}")
        self._targets.append(_Target(name=name, exporter=exporter, sink=target))
        return self

    def build(self) -> CsvMultiExporter[T]:
        return CsvMultiExporter(self._targets)


__all__ = ["CsvExporter", "CsvExporterBuilder", "CsvMultiExporter", "CsvMultiExporterBuilder"]
