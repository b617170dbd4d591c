from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable

from csvpipe.common.result import Result
from csvpipe.common.seq import Seq
from csvpipe.domain.csv.exporter import CsvExporter
from csvpipe.domain.csv.importer import CsvImporter, InvalidRecordPolicy
from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.errors import CsvStructureError, PipelineStateError
from csvpipe.domain.ports.text_io import TextSink, TextSource
from csvpipe.domain.validation.models import RECORD_LEVEL, ValidationOutcome, Violation
from csvpipe.infra.io.text_io import TextReader
from csvpipe.infra.scan.path_scanner import PathScanner
from csvpipe.usecases.observer import CompositeObserver, Observer

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineSummary:
    """
    Назначение:
        Итог успешного запуска.
    """

    files: tuple[Path, ...]
    record_count: int
    exported_count: int
    violation_count: int
    invalid_count: int
    skipped_count: int

    @property
    def file_count(self) -> int:
        return len(self.files)


@dataclass
class _RunStats:
    records: int = 0
    invalid: int = 0
    violations: int = 0
    skipped: int = 0


class _ObserverImportListener:
    """
    Назначение:
        Переводит события импортёра в события Observer и считает статистику.
        Структурные ошибки (политика SKIP) передаются как on_data_violation
        с нарушением уровня записи и record=None.
    """

    def __init__(self, observer: Observer, stats: _RunStats, skip_invalid: bool) -> None:
        self.observer = observer
        self.stats = stats
        self.skip_invalid = skip_invalid

    def on_record(self, record: CsvRecord) -> None:
        self.stats.records += 1
        self.observer.on_next_record(record)

    def on_violation(self, outcome: ValidationOutcome) -> None:
        self.stats.invalid += 1
        self.stats.violations += len(outcome.violations)
        if self.skip_invalid:
            self.stats.skipped += 1
        self.observer.on_data_violation(outcome)

    def on_structure_error(self, error: CsvStructureError) -> None:
        self.stats.skipped += 1
        outcome = ValidationOutcome(
            record=None,
            violations=(Violation(column=RECORD_LEVEL, description=error.message, value=error.raw),),
            index=error.index if error.index is not None else -1,
            source=error.source,
            raw=error.raw,
            line_no=error.line_no,
        )
        self.observer.on_data_violation(outcome)


def _by_file_name(path: Path) -> tuple[str, str]:
    return path.name, str(path)


class CsvTransformPipeline:
    """
    Назначение/ответственность:
        Оркестратор Scanner -> Importer -> Exporter с единой границей ошибок.

    Состояния:
        IDLE -> RUNNING -> SUCCEEDED | FAILED (терминальные).

    Инварианты:
        - Список файлов кэшируется при первом запросе (force_on_demand) и
          сортируется по sort_key; дерево каталогов обходится один раз.
        - on_processing_file вызывается в момент запроса пути экспортёром.
        - Любое исключение (Exception) во время запуска переводит пайплайн в
          FAILED и вызывает on_error ровно один раз; после терминального
          события наблюдатели больше не вызываются.
        - Исключения самих наблюдателей в on_success/on_error пробрасываются
          вызывающему коду.
        - Повторный run() запрещён (PipelineStateError).
    """

    def __init__(
        self,
        scanner: PathScanner,
        root: str | Path,
        importer: CsvImporter[Any],
        exporter: CsvExporter[Any],
        target: TextSink,
        observers: Iterable[Observer | None] = (),
        open_source: Callable[[Path], TextSource] | None = None,
        sort_key: Callable[[Path], Any] | None = _by_file_name,
    ) -> None:
        self.scanner = scanner
        self.root = Path(root)
        self.importer = importer
        self.exporter = exporter
        self.target = target
        self.observer = CompositeObserver(observers)
        self.open_source = open_source or TextReader.from_file
        self.sort_key = sort_key
        self._state = PipelineState.IDLE

    @property
    def state(self) -> PipelineState:
        return self._state

    def input_files(self) -> Seq[Path]:
        """
        Назначение:
            Ленивая, кэшируемая при первом запросе последовательность входных файлов.
        """
        files = self.scanner.scan(self.root).force_on_demand()
        if self.sort_key is not None:
            files = files.sorted(key=self.sort_key)
        return files

    def run(self) -> Result[PipelineSummary]:
        if self._state is not PipelineState.IDLE:
            raise PipelineStateError(message=f"Pipeline already {self._state.value}")
        self._state = PipelineState.RUNNING

        stats = _RunStats()
        skip_invalid = (
            self.importer.invalid_records is InvalidRecordPolicy.SKIP and not self.importer.fail_on_validation_error
        )
        listener = _ObserverImportListener(self.observer, stats, skip_invalid)

        input_files = self.input_files()
        records = input_files.peek(self.observer.on_processing_file).flat_map(
            lambda path: self.importer.parse(self.open_source(path), listener)
        )

        try:
            self.observer.on_start()
            exported = self.exporter.export(records.sequential(), self.target)
        except Exception as exc:
            self._state = PipelineState.FAILED
            logger.debug("pipeline failed: %s", exc, exc_info=True)
            self.observer.on_error(exc)
            return Result.failure(exc)

        self._state = PipelineState.SUCCEEDED
        summary = PipelineSummary(
            files=input_files.to_tuple(),
            record_count=stats.records,
            exported_count=exported,
            violation_count=stats.violations,
            invalid_count=stats.invalid,
            skipped_count=stats.skipped,
        )
        self.observer.on_success(input_files)
        return Result.success(summary)


__all__ = ["CsvTransformPipeline", "PipelineState", "PipelineSummary"]
