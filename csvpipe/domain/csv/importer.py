from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, Iterator, TypeVar

from csvpipe.common.result import Result
from csvpipe.common.seq import Seq
from csvpipe.domain.csv.format import CsvFormat
from csvpipe.domain.csv.parser import RawRecord, iter_raw_records
from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.errors import (
    CsvConfigurationError,
    CsvHeaderError,
    CsvMappingError,
    CsvStructureError,
    CsvValidationError,
)
from csvpipe.domain.ports.import_listener import ImportListener, NullImportListener
from csvpipe.domain.ports.text_io import TextSource
from csvpipe.domain.validation.validator import CsvValidator

T = TypeVar("T")

logger = logging.getLogger(__name__)


class InvalidRecordPolicy(str, Enum):
    """
    Назначение:
        Что делать с записью, нарушившей правила, если импорт не прерывается.
        FORWARD: передать дальше (нарушения доступны слушателю),
        SKIP: отбросить после уведомления слушателя.
        По умолчанию FORWARD: невалидная запись экспортируется, если не задан
        SKIP или fail_on_validation_error. Чтобы на выходе остались только
        валидные записи, нужен SKIP.
    """

    FORWARD = "forward"
    SKIP = "skip"


class StructureErrorPolicy(str, Enum):
    """
    Назначение:
        Политика структурных ошибок записи (число полей, кавычки).
        FAIL прерывает импорт, SKIP сообщает слушателю и отбрасывает запись.
        Ошибки заголовка всегда фатальны.
    """

    FAIL = "fail"
    SKIP = "skip"


def _identity(record: CsvRecord) -> Any:
    return record


@dataclass(frozen=True)
class CsvImporter(Generic[T]):
    """
    Назначение/ответственность:
        Превращает источник символов в ленивую последовательность элементов T:
        разбор CSV -> CsvRecord -> валидация -> политика -> mapper.

    Инварианты:
        - Заголовок обязателен и должен содержать ровно колонки формата
          (порядок может отличаться, значения переупорядочиваются).
        - index записи: порядковый номер строки данных (0-based).
        - Источник открывается при первом запросе элемента и закрывается
          после последней записи или при досрочной остановке потребителя.
    """

    format: CsvFormat
    validator: CsvValidator = field(default_factory=CsvValidator.empty)
    fail_on_validation_error: bool = False
    invalid_records: InvalidRecordPolicy = InvalidRecordPolicy.FORWARD
    structure_errors: StructureErrorPolicy = StructureErrorPolicy.FAIL
    mapper: Callable[[CsvRecord], T] = _identity

    def __post_init__(self) -> None:
        if not isinstance(self.format, CsvFormat):
            raise CsvConfigurationError("Importer requires a CsvFormat")
        if not callable(self.mapper):
            raise CsvConfigurationError("Importer mapper is not callable")
        self.validator.check_columns(self.format.columns)

    @classmethod
    def builder(cls) -> "CsvImporterBuilder[Any]":
        return CsvImporterBuilder()

    # --- public API ---------------------------------------------------

    def parse(self, source: TextSource, listener: ImportListener | None = None) -> Seq[T]:
        """
        Назначение:
            Ленивый импорт одного источника.

        Ошибки (при обходе):
            CsvHeaderError, CsvStructureError (FAIL), CsvValidationError
            (fail_on_validation_error), CsvMappingError, OSError.
        """
        effective = listener or NullImportListener()
        return Seq.from_factory(lambda: self._iter_source(source, effective))

    def parse_files(
        self,
        paths: Iterable[Path],
        open_source: Callable[[Path], TextSource],
        listener: ImportListener | None = None,
    ) -> Seq[T]:
        """
        Назначение:
            Конкатенация импорта нескольких файлов в порядке paths:
            все записи файла N предшествуют записям файла N+1.
            Одновременно открыт не более чем один файл.
        """
        return Seq.from_iterable(paths).flat_map(lambda path: self.parse(open_source(path), listener))

    def try_parse_all(self, source: TextSource, listener: ImportListener | None = None) -> Result[list[T]]:
        return Result.capture(lambda: self.parse(source, listener).to_list())

    # --- internals ----------------------------------------------------

    def _iter_source(self, source: TextSource, listener: ImportListener) -> Iterator[T]:
        name = source.name
        with source.open() as stream:
            raw_records = iter_raw_records(stream, self.format)
            order = self._resolve_header(next(raw_records, None), name)
            logger.debug("importing %s", name)
            for index, raw in enumerate(raw_records):
                try:
                    record = self._build_record(raw, order, index, name)
                except CsvStructureError as exc:
                    if self.structure_errors is StructureErrorPolicy.SKIP:
                        logger.debug("skipping malformed record #%s of %s: %s", index, name, exc)
                        listener.on_structure_error(exc)
                        continue
                    raise

                listener.on_record(record)
                outcome = self.validator.validate(record)
                if not outcome.valid:
                    listener.on_violation(outcome)
                    if self.fail_on_validation_error:
                        raise CsvValidationError.from_outcome(outcome)
                    if self.invalid_records is InvalidRecordPolicy.SKIP:
                        continue

                yield self._map(record)

    def _resolve_header(self, header: RawRecord | None, name: str) -> tuple[int, ...]:
        columns = self.format.columns
        if header is None:
            raise CsvHeaderError(message=f"Missing header row in {name}", source=name)
        if header.error:
            raise CsvHeaderError(
                message=f"Malformed header in {name}: {header.error}",
                source=name,
                line_no=header.line_no,
                raw=header.raw,
            )
        found = header.fields
        missing = [c for c in columns if c not in found]
        unexpected = [c for c in found if c not in columns]
        if missing or unexpected or len(found) != len(columns):
            raise CsvHeaderError(
                message=(
                    f"Header of {name} does not match format columns: "
                    f"missing={missing}, unexpected={unexpected}"
                ),
                details={"expected": list(columns), "found": list(found)},
                source=name,
                line_no=header.line_no,
                raw=header.raw,
            )
        return tuple(found.index(column) for column in columns)

    def _build_record(self, raw: RawRecord, order: tuple[int, ...], index: int, name: str) -> CsvRecord:
        if raw.error:
            raise CsvStructureError(
                message=f"Malformed CSV record #{index} at line {raw.line_no} of {name}: {raw.error}",
                source=name,
                index=index,
                line_no=raw.line_no,
                raw=raw.raw,
            )
        if len(raw.fields) != len(order):
            raise CsvStructureError(
                message=(
                    f"Invalid column count in record #{index} at line {raw.line_no} of {name}: "
                    f"expected {len(order)}, got {len(raw.fields)}"
                ),
                source=name,
                index=index,
                line_no=raw.line_no,
                raw=raw.raw,
            )
        values = tuple(raw.fields[pos] for pos in order)
        return CsvRecord(self.format.columns, values, index=index, line_no=raw.line_no, raw=raw.raw, source=name)

    def _map(self, record: CsvRecord) -> T:
        try:
            return self.mapper(record)
        except Exception as exc:
            raise CsvMappingError(
                message=f"Mapper failed for record #{record.index} of {record.source}: {exc}",
                source=record.source,
                index=record.index,
            ) from exc


class CsvImporterBuilder(Generic[T]):
    """
    Назначение/ответственность:
        Пошаговая сборка CsvImporter; проверки выполняются в build().
    """

    def __init__(self) -> None:
        self._format: CsvFormat | None = None
        self._validator: CsvValidator | None = None
        self._fail_on_validation_error = False
        self._invalid_records = InvalidRecordPolicy.FORWARD
        self._structure_errors = StructureErrorPolicy.FAIL
        self._mapper: Callable[[CsvRecord], Any] = _identity

    def format(self, fmt: CsvFormat) -> "CsvImporterBuilder[T]":
        self._format = fmt
        return self

    def validator(self, validator: CsvValidator) -> "CsvImporterBuilder[T]":
        self._validator = validator
        return self

    def fail_on_validation_error(self, value: bool = True) -> "CsvImporterBuilder[T]":
        self._fail_on_validation_error = bool(value)
        return self

    def invalid_records(self, policy: "InvalidRecordPolicy | str") -> "CsvImporterBuilder[T]":
        self._invalid_records = InvalidRecordPolicy(policy)
        return self

    def structure_errors(self, policy: "StructureErrorPolicy | str") -> "CsvImporterBuilder[T]":
        self._structure_errors = StructureErrorPolicy(policy)
        return self

    def mapper(self, fn: Callable[[CsvRecord], Any]) -> "CsvImporterBuilder[Any]":
        self._mapper = fn
        return self

    def build(self) -> CsvImporter[T]:
        if self._format is None:
            raise CsvConfigurationError("Importer requires a format")
        return CsvImporter(
            format=self._format,
            validator=self._validator or CsvValidator.empty(),
            fail_on_validation_error=self._fail_on_validation_error,
            invalid_records=self._invalid_records,
            structure_errors=self._structure_errors,
            mapper=self._mapper,
        )


__all__ = ["CsvImporter", "CsvImporterBuilder", "InvalidRecordPolicy", "StructureErrorPolicy"]
