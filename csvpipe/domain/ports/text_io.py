from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol, TextIO, runtime_checkable


@runtime_checkable
class TextSource(Protocol):
    """
    Назначение/ответственность:
        Источник символов для импорта (файл, память, stdin).

    Контракт:
        - open() возвращает контекст-менеджер с текстовым потоком; поток
          читается построчно с сохранёнными окончаниями строк.
        - name: идентификатор источника для диагностики.
    """

    name: str

    def open(self) -> AbstractContextManager[TextIO]: ...


@runtime_checkable
class TextSink(Protocol):
    """
    Назначение/ответственность:
        Приёмник символов для экспорта.
    """

    name: str

    def open(self) -> AbstractContextManager[TextIO]: ...


__all__ = ["TextSource", "TextSink"]
