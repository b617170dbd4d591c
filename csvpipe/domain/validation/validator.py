from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.errors import CsvConfigurationError
from csvpipe.domain.validation.models import RECORD_LEVEL, ValidationOutcome, ValidationRule, Violation

logger = logging.getLogger(__name__)


class CsvValidator:
    """
    Назначение/ответственность:
        Набор правил по колонкам. Оценивает запись и возвращает все нарушения.

    Инварианты:
        - Правила выполняются в порядке объявления, без short-circuit.
        - Предикат, выбросивший исключение, считается нарушением своего правила.
        - Набор правил неизменяем после build().
    """

    def __init__(self, rules: Iterable[ValidationRule]) -> None:
        self._rules: tuple[ValidationRule, ...] = tuple(rules)

    @classmethod
    def builder(cls, columns: Iterable[str] | None = None) -> "CsvValidatorBuilder":
        return CsvValidatorBuilder(columns)

    @classmethod
    def empty(cls) -> "CsvValidator":
        return cls(())

    @property
    def rules(self) -> tuple[ValidationRule, ...]:
        return self._rules

    @property
    def columns(self) -> frozenset[str]:
        return frozenset(rule.column for rule in self._rules if not rule.record_level)

    def check_columns(self, columns: Iterable[str]) -> None:
        """
        Назначение:
            Проверить, что все правила ссылаются на известные колонки.

        Ошибки:
            CsvConfigurationError: перечисляет неизвестные колонки.
        """
        known = set(columns)
        unknown = sorted(self.columns - known)
        if unknown:
            raise CsvConfigurationError(
                f"Validation rules reference unknown columns: {', '.join(unknown)}",
                details={"unknown": unknown, "known": sorted(known)},
            )

    def evaluate(self, record: CsvRecord) -> tuple[Violation, ...]:
        violations: list[Violation] = []
        for rule in self._rules:
            if rule.record_level:
                value: Any = record
                shown = record.raw
            else:
                value = record.get(rule.column)
                shown = value
            try:
                passed = bool(rule.predicate(value))
            except Exception as exc:
                logger.debug(
                    "predicate for %s raised %s on record #%s", rule.column, type(exc).__name__, record.index
                )
                passed = False
            if not passed:
                violations.append(Violation(column=rule.column, description=rule.description, value=shown))
        return tuple(violations)

    def validate(self, record: CsvRecord) -> ValidationOutcome:
        return ValidationOutcome(
            record=record,
            violations=self.evaluate(record),
            index=record.index,
            source=record.source,
            raw=record.raw,
            line_no=record.line_no,
        )

    def __len__(self) -> int:
        return len(self._rules)


class CsvValidatorBuilder:
    """
    Назначение/ответственность:
        Накопление правил (колонка, описание, предикат).
        Если переданы columns, неизвестные колонки отклоняются в build().
    """

    def __init__(self, columns: Iterable[str] | None = None) -> None:
        self._columns = tuple(columns) if columns is not None else None
        self._rules: list[ValidationRule] = []

    def validate_column(self, column: str, description: str, predicate: Callable[[str], bool]) -> "CsvValidatorBuilder":
        if not column or column == RECORD_LEVEL:
            raise CsvConfigurationError(f"Invalid rule column: {column!r}")
        if not callable(predicate):
            raise CsvConfigurationError(f"Predicate for column {column!r} is not callable")
        self._rules.append(ValidationRule(column=column, description=description, predicate=predicate))
        return self

    def validate_record(self, description: str, predicate: Callable[[CsvRecord], bool]) -> "CsvValidatorBuilder":
        if not callable(predicate):
            raise CsvConfigurationError("Record predicate is not callable")
        self._rules.append(ValidationRule(column=RECORD_LEVEL, description=description, predicate=predicate))
        return self

    def build(self) -> CsvValidator:
        validator = CsvValidator(self._rules)
        if self._columns is not None:
            validator.check_columns(self._columns)
        return validator


__all__ = ["CsvValidator", "CsvValidatorBuilder"]
