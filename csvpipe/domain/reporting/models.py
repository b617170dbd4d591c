from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ReportMeta:
    """
    Назначение:
        Метаданные запуска команды.
    """

    run_id: str
    command: str
    started_at: str
    finished_at: str | None = None
    duration_ms: int | None = None
    items_limit: int | None = None
    items_truncated: bool = False


@dataclass
class ReportSummary:
    """
    Назначение:
        Счётчики выполнения пайплайна.
    """

    files_total: int = 0
    records_total: int = 0
    records_exported: int = 0
    records_invalid: int = 0
    records_skipped: int = 0
    structure_errors: int = 0
    violations_total: int = 0
    by_column: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ReportDiagnostic:
    """
    Назначение:
        Одно нарушение по конкретной записи.
    """

    column: str
    description: str
    value: str | None


@dataclass
class ReportItem:
    """
    Назначение:
        Единица отчёта, привязанная к конкретной записи источника.
    """

    status: str
    source: str | None
    index: int | None
    line_no: int | None
    raw: str | None
    diagnostics: list[ReportDiagnostic] = field(default_factory=list)


@dataclass
class ReportEnvelope:
    """
    Назначение:
        Корневой объект отчёта.
    """

    status: str
    meta: ReportMeta
    summary: ReportSummary
    items: list[ReportItem]
    context: dict[str, Any] = field(default_factory=dict)
    error: dict[str, Any] | None = None
