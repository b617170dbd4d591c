from __future__ import annotations

from dataclasses import asdict
from typing import Any

from csvpipe.common.clock import now_iso
from csvpipe.domain.error_codes import ErrorCode
from csvpipe.domain.errors import CsvPipeError
from csvpipe.domain.reporting.models import (
    ReportDiagnostic,
    ReportEnvelope,
    ReportItem,
    ReportMeta,
    ReportSummary,
)
from csvpipe.domain.validation.models import ValidationOutcome

STATUS_SUCCESS = "SUCCESS"
STATUS_PARTIAL = "PARTIAL"
STATUS_FAILED = "FAILED"


class ReportCollector:
    """
    Назначение/ответственность:
        Единый сборщик отчёта запуска: счётчики, невалидные записи, ошибка.

    Инварианты:
        - items хранит не более items_limit записей (None означает без ограничений);
          при превышении выставляется meta.items_truncated.
    """

    def __init__(self, run_id: str, command: str, started_at: str | None = None, items_limit: int | None = None) -> None:
        self.meta = ReportMeta(
            run_id=run_id,
            command=command,
            started_at=started_at or now_iso(),
            items_limit=items_limit,
        )
        self.summary = ReportSummary()
        self.items: list[ReportItem] = []
        self.context: dict[str, Any] = {}
        self.error: dict[str, Any] | None = None
        self.status: str | None = None

    def set_context(self, name: str, value: dict[str, Any]) -> None:
        self.context[name] = value

    def add_file(self) -> None:
        self.summary.files_total += 1

    def add_record(self) -> None:
        self.summary.records_total += 1

    def set_exported(self, count: int) -> None:
        self.summary.records_exported = count

    def add_outcome(self, outcome: ValidationOutcome, skipped: bool = False) -> None:
        self.summary.records_invalid += 1
        self.summary.violations_total += len(outcome.violations)
        if skipped:
            self.summary.records_skipped += 1
        for violation in outcome.violations:
            self.summary.by_column[violation.column] = self.summary.by_column.get(violation.column, 0) + 1
        self._store(
            ReportItem(
                status="INVALID",
                source=outcome.source,
                index=outcome.index,
                line_no=outcome.line_no,
                raw=outcome.raw,
                diagnostics=[
                    ReportDiagnostic(column=v.column, description=v.description, value=v.value)
                    for v in outcome.violations
                ],
            )
        )

    def add_malformed(self, outcome: ValidationOutcome) -> None:
        """
        Назначение:
            Учесть пропущенную структурно некорректную запись (outcome.record is None).
        """
        self.summary.structure_errors += 1
        self.summary.records_skipped += 1
        self._store(
            ReportItem(
                status="MALFORMED",
                source=outcome.source,
                index=outcome.index,
                line_no=outcome.line_no,
                raw=outcome.raw,
                diagnostics=[
                    ReportDiagnostic(column=v.column, description=v.description, value=v.value)
                    for v in outcome.violations
                ],
            )
        )

    def set_error(self, exc: BaseException) -> None:
        if isinstance(exc, CsvPipeError):
            self.error = exc.to_dict()
        else:
            self.error = {
                "code": ErrorCode.from_exception(exc).value,
                "message": str(exc),
                "details": {"type": type(exc).__name__},
            }
        self.status = STATUS_FAILED

    def finish(self, finished_at: str | None = None, duration_ms: int | None = None) -> None:
        self.meta.finished_at = finished_at or now_iso()
        self.meta.duration_ms = duration_ms
        if self.status is None:
            self.status = self._derive_status()

    def build(self) -> ReportEnvelope:
        return ReportEnvelope(
            status=self.status or self._derive_status(),
            meta=self.meta,
            summary=self.summary,
            items=self.items,
            context=self.context,
            error=self.error,
        )

    def _store(self, item: ReportItem) -> None:
        limit = self.meta.items_limit
        if limit is not None and len(self.items) >= limit:
            self.meta.items_truncated = True
            return
        self.items.append(item)

    def _derive_status(self) -> str:
        if self.error is not None:
            return STATUS_FAILED
        if self.summary.records_invalid or self.summary.structure_errors:
            return STATUS_PARTIAL
        return STATUS_SUCCESS


def asdict_report(envelope: ReportEnvelope) -> dict[str, Any]:
    """
    Назначение:
        Сериализация отчёта в словарь для JSON.
    """
    return {
        "status": envelope.status,
        "meta": asdict(envelope.meta),
        "summary": asdict(envelope.summary),
        "items": [
            {
                "status": item.status,
                "source": item.source,
                "index": item.index,
                "line_no": item.line_no,
                "raw": item.raw,
                "diagnostics": [asdict(diag) for diag in item.diagnostics],
            }
            for item in envelope.items
        ],
        "context": envelope.context,
        "error": envelope.error,
    }


__all__ = ["ReportCollector", "asdict_report", "STATUS_SUCCESS", "STATUS_PARTIAL", "STATUS_FAILED"]
