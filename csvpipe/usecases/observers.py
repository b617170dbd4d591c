from __future__ import annotations

import logging
from pathlib import Path

from csvpipe.common.seq import Seq
from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.reporting.collector import ReportCollector
from csvpipe.domain.validation.models import ValidationOutcome
from csvpipe.infra.logging.setup import log_event
from csvpipe.usecases.observer import NullObserver


class LoggingObserver(NullObserver):
    """
    Назначение/ответственность:
        Пишет события пайплайна в лог команды (runId/component).

    Взаимодействия:
        - Использует log_event из infra.logging.setup.
        - Нарушения пишутся с уровнем WARNING, ошибка запуска с уровнем ERROR.
    """

    def __init__(self, logger: logging.Logger, run_id: str) -> None:
        self.logger = logger
        self.run_id = run_id

    def on_start(self) -> None:
        log_event(self.logger, logging.INFO, self.run_id, "pipeline", "Pipeline started")

    def on_processing_file(self, path: Path) -> None:
        log_event(self.logger, logging.INFO, self.run_id, "scan", f"Processing {path}")

    def on_next_record(self, record: CsvRecord) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            log_event(self.logger, logging.DEBUG, self.run_id, "import", f"record #{record.index} of {record.source}")

    def on_data_violation(self, outcome: ValidationOutcome) -> None:
        kind = "malformed" if outcome.record is None else "invalid"
        columns = ",".join(outcome.columns) or "none"
        log_event(
            self.logger,
            logging.WARNING,
            self.run_id,
            "validate",
            f"{kind} record index={outcome.index} line={outcome.line_no} source={outcome.source} columns={columns}",
        )

    def on_success(self, paths: Seq[Path]) -> None:
        log_event(self.logger, logging.INFO, self.run_id, "pipeline", f"Pipeline succeeded: {paths.count()} file(s)")

    def on_error(self, error: BaseException) -> None:
        log_event(
            self.logger,
            logging.ERROR,
            self.run_id,
            "pipeline",
            f"Pipeline failed: {type(error).__name__}: {error}",
        )


class ReportObserver(NullObserver):
    """
    Назначение/ответственность:
        Наполняет ReportCollector событиями пайплайна.

    Входные данные:
        report: ReportCollector
        skip_invalid: bool
            True, если импорт отбрасывает невалидные записи
            (InvalidRecordPolicy.SKIP), нужно для счётчика records_skipped.
    """

    def __init__(self, report: ReportCollector, skip_invalid: bool = False) -> None:
        self.report = report
        self.skip_invalid = skip_invalid

    def on_processing_file(self, path: Path) -> None:
        self.report.add_file()

    def on_next_record(self, record: CsvRecord) -> None:
        self.report.add_record()

    def on_data_violation(self, outcome: ValidationOutcome) -> None:
        if outcome.record is None:
            self.report.add_malformed(outcome)
        else:
            self.report.add_outcome(outcome, skipped=self.skip_invalid)

    def on_success(self, paths: Seq[Path]) -> None:
        self.report.set_context("files", {"paths": [str(p) for p in paths]})

    def on_error(self, error: BaseException) -> None:
        self.report.set_error(error)


__all__ = ["LoggingObserver", "ReportObserver"]
