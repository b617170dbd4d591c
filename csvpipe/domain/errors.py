from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Dict

from csvpipe.domain.error_codes import ErrorCode

if TYPE_CHECKING:
    from csvpipe.domain.validation.models import ValidationOutcome, Violation


@dataclass(eq=False)
class CsvPipeError(Exception):
    """
    Унифицированная ошибка пайплайна.
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    code: ClassVar[ErrorCode] = ErrorCode.UNEXPECTED_ERROR

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details or {},
        }


@dataclass(eq=False)
class CsvConfigurationError(CsvPipeError):
    """
    Назначение:
        Некорректная конфигурация (формат, правила, job-файл). Возникает на
        этапе build(), до запуска.
    """

    code: ClassVar[ErrorCode] = ErrorCode.CONFIG_ERROR


@dataclass(eq=False)
class CsvStructureError(CsvPipeError):
    """
    Назначение:
        Структурная ошибка CSV (число полей, незакрытая кавычка).

    Инварианты:
        - index: порядковый номер записи данных (0-based), если известен.
        - line_no: номер физической строки начала записи (1-based).
    """

    source: str | None = None
    index: int | None = None
    line_no: int | None = None
    raw: str | None = None

    code: ClassVar[ErrorCode] = ErrorCode.CSV_STRUCTURE

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["details"] = {
            **data["details"],
            "source": self.source,
            "index": self.index,
            "line_no": self.line_no,
            "raw": self.raw,
        }
        return data


@dataclass(eq=False)
class CsvHeaderError(CsvStructureError):
    """
    Назначение:
        Отсутствующий или не совпадающий с форматом заголовок. Всегда фатальна.
    """

    code: ClassVar[ErrorCode] = ErrorCode.CSV_HEADER


@dataclass(eq=False)
class CsvValidationError(CsvPipeError):
    """
    Назначение:
        Прерывание импорта при fail_on_validation_error=True.
        Несёт первый невалидный ValidationOutcome.
    """

    outcome: "ValidationOutcome | None" = None

    code: ClassVar[ErrorCode] = ErrorCode.VALIDATION_FAILED

    @classmethod
    def from_outcome(cls, outcome: "ValidationOutcome") -> "CsvValidationError":
        where = f"record #{outcome.index}"
        if outcome.source:
            where += f" of {outcome.source}"
        reasons = "; ".join(str(v) for v in outcome.violations)
        return cls(message=f"Invalid CSV {where}: {reasons}", outcome=outcome)

    @property
    def index(self) -> int | None:
        return self.outcome.index if self.outcome is not None else None

    @property
    def violations(self) -> tuple[Violation, ...]:
        return self.outcome.violations if self.outcome is not None else ()


@dataclass(eq=False)
class CsvMappingError(CsvPipeError):
    """
    Назначение:
        Ошибка пользовательского mapper при импорте записи.
    """

    source: str | None = None
    index: int | None = None

    code: ClassVar[ErrorCode] = ErrorCode.MAPPING_FAILED


@dataclass(eq=False)
class CsvExportError(CsvPipeError):
    """
    Назначение:
        Ошибка экспорта (несовпадение числа полей mapper с форматом и т.п.).
    """

    index: int | None = None

    code: ClassVar[ErrorCode] = ErrorCode.EXPORT_FAILED


@dataclass(eq=False)
class ScanError(CsvPipeError):
    code: ClassVar[ErrorCode] = ErrorCode.SCAN_FAILED


@dataclass(eq=False)
class PipelineStateError(CsvPipeError):
    code: ClassVar[ErrorCode] = ErrorCode.PIPELINE_STATE


class UnknownColumnError(KeyError):
    """
    Назначение:
        Обращение к записи по несуществующему имени колонки.
    """

    def __init__(self, column: str, columns: tuple[str, ...]) -> None:
        super().__init__(column)
        self.column = column
        self.columns = columns

    def __str__(self) -> str:
        return f"Unknown column '{self.column}', known columns: {', '.join(self.columns)}"


__all__ = [
    "CsvPipeError",
    "CsvConfigurationError",
    "CsvStructureError",
    "CsvHeaderError",
    "CsvValidationError",
    "CsvMappingError",
    "CsvExportError",
    "ScanError",
    "PipelineStateError",
    "UnknownColumnError",
]
