from __future__ import annotations

from typing import Protocol

from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.errors import CsvStructureError
from csvpipe.domain.validation.models import ValidationOutcome


class ImportListener(Protocol):
    """
    Назначение/ответственность:
        Получатель событий импорта по каждой записи.

    Контракт:
        - on_record вызывается для каждой разобранной записи до валидации.
        - on_violation вызывается для каждой записи с нарушениями, до решения
          по политике (прервать/пропустить/передать дальше).
        - on_structure_error вызывается только при StructureErrorPolicy.SKIP.
    """

    def on_record(self, record: CsvRecord) -> None: ...
    def on_violation(self, outcome: ValidationOutcome) -> None: ...
    def on_structure_error(self, error: CsvStructureError) -> None: ...


class NullImportListener:
    def on_record(self, record: CsvRecord) -> None:
        pass

    def on_violation(self, outcome: ValidationOutcome) -> None:
        pass

    def on_structure_error(self, error: CsvStructureError) -> None:
        pass


__all__ = ["ImportListener", "NullImportListener"]
