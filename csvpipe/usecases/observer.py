from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from csvpipe.common.seq import Seq
from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.validation.models import ValidationOutcome


@runtime_checkable
class Observer(Protocol):
    """
    Назначение/ответственность:
        Пассивный получатель событий жизненного цикла пайплайна.
        Не хранит состояние пайплайна: всё нужное передаётся в вызове.

    Контракт:
        - on_start: один раз перед обработкой.
        - on_processing_file: в момент, когда путь запрошен потребителем.
        - on_next_record: для каждой разобранной записи.
        - on_data_violation: для записи с нарушениями (или пропущенной
          структурно некорректной записи, outcome.record is None).
        - on_success / on_error: ровно одно терминальное событие.
    """

    def on_start(self) -> None: ...
    def on_processing_file(self, path: Path) -> None: ...
    def on_next_record(self, record: CsvRecord) -> None: ...
    def on_data_violation(self, outcome: ValidationOutcome) -> None: ...
    def on_success(self, paths: Seq[Path]) -> None: ...
    def on_error(self, error: BaseException) -> None: ...


class NullObserver:
    """
    Назначение:
        Наблюдатель без действий; базовый класс для частичных наблюдателей.
    """

    def on_start(self) -> None:
        pass

    def on_processing_file(self, path: Path) -> None:
        pass

    def on_next_record(self, record: CsvRecord) -> None:
        pass

    def on_data_violation(self, outcome: ValidationOutcome) -> None:
        pass

    def on_success(self, paths: Seq[Path]) -> None:
        pass

    def on_error(self, error: BaseException) -> None:
        pass


class CompositeObserver(NullObserver):
    """
    Назначение:
        Рассылка событий списку наблюдателей в порядке регистрации.
        None в списке игнорируется.
    """

    def __init__(self, observers: Iterable[Observer | None] = ()) -> None:
        self.observers: tuple[Observer, ...] = Seq.from_iterable(list(observers)).reject_nones().to_tuple()

    def on_start(self) -> None:
        for observer in self.observers:
            observer.on_start()

    def on_processing_file(self, path: Path) -> None:
        for observer in self.observers:
            observer.on_processing_file(path)

    def on_next_record(self, record: CsvRecord) -> None:
        for observer in self.observers:
            observer.on_next_record(record)

    def on_data_violation(self, outcome: ValidationOutcome) -> None:
        for observer in self.observers:
            observer.on_data_violation(outcome)

    def on_success(self, paths: Seq[Path]) -> None:
        for observer in self.observers:
            observer.on_success(paths)

    def on_error(self, error: BaseException) -> None:
        for observer in self.observers:
            observer.on_error(error)


__all__ = ["Observer", "NullObserver", "CompositeObserver"]
