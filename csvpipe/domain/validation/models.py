from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from csvpipe.domain.csv.record import CsvRecord

RECORD_LEVEL = "*"


@dataclass(frozen=True)
class ValidationRule:
    """
    Назначение:
        Правило валидации: колонка, человекочитаемое описание, предикат.

    Инварианты:
        - column == RECORD_LEVEL означает правило уровня записи; предикат
          получает CsvRecord целиком, иначе: значение поля.
    """

    column: str
    description: str
    predicate: Callable[[Any], bool]

    @property
    def record_level(self) -> bool:
        return self.column == RECORD_LEVEL


@dataclass(frozen=True)
class Violation:
    """
    Назначение:
        Нарушение одного правила одной записью.
    """

    column: str
    description: str
    value: str | None

    def __str__(self) -> str:
        if self.column == RECORD_LEVEL:
            return f"{self.description}"
        return f"Column '{self.column}': {self.description} (value: {self.value!r})"


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Назначение:
        Результат валидации одной записи вместе с контекстом источника.
    """

    record: CsvRecord | None
    violations: tuple[Violation, ...]
    index: int
    source: str | None = None
    raw: str | None = None
    line_no: int | None = None

    @property
    def valid(self) -> bool:
        return len(self.violations) == 0

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(v.column for v in self.violations)
