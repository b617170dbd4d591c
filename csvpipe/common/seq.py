from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import reduce as _reduce
from typing import Any, Callable, Generic, Iterable, Iterator, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)

_MISSING = object()


@contextmanager
def _opened(iterable: Iterable[T]) -> Iterator[Iterator[T]]:
    """
    Назначение:
        Открывает итератор и гарантированно закрывает его (генераторы, файлы)
        при досрочной остановке потребителя.
    """
    it = iter(iterable)
    try:
        yield it
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()


class _CacheCell(Generic[T]):
    """
    Назначение:
        Ячейка однократной материализации для Seq.force_on_demand().

    Инварианты:
        - materialized=False до первого успешного полного прохода источника.
        - После материализации items не изменяется.
        - Ошибка во время материализации оставляет ячейку в состоянии pending.
    """

    def __init__(self, source: "Seq[T]") -> None:
        self._source = source
        self.materialized = False
        self.items: tuple[T, ...] = ()

    def get(self) -> tuple[T, ...]:
        if not self.materialized:
            logger.debug("materializing on-demand sequence")
            self.items = tuple(self._source)
            self.materialized = True
            self._source = None  # type: ignore[assignment]
        return self.items


class Seq(Generic[T]):
    """
    Назначение/ответственность:
        Ленивая, перезапускаемая последовательность элементов с цепочками
        преобразований. Обход источника выполняется только терминальными
        операциями (итерация, count, to_list, for_each, reduce, first).

    Инварианты:
        - map/flat_map/filter/reject/peek/distinct/sorted/prepend/limit/skip
          не выполняют обход в момент вызова.
        - Каждая терминальная операция запускает источник заново через фабрику,
          кроме последовательностей после force_on_demand().
        - Обход однопоточный и упорядоченный.

    Ошибки:
        Исключения источника и преобразований пробрасываются терминальному
        потребителю и завершают обход.
    """

    __slots__ = ("_factory", "_sequential")

    def __init__(self, factory: Callable[[], Iterable[T]], sequential: bool = False) -> None:
        self._factory = factory
        self._sequential = sequential

    # --- constructors -------------------------------------------------

    @classmethod
    def empty(cls) -> "Seq[T]":
        return cls(lambda: ())

    @classmethod
    def of(cls, *items: T) -> "Seq[T]":
        return cls(lambda: items)

    @classmethod
    def from_iterable(cls, iterable: Iterable[T]) -> "Seq[T]":
        """
        Назначение:
            Оборачивает iterable. Списки/кортежи можно обходить многократно,
            одноразовые итераторы только один раз.
        """
        if isinstance(iterable, Seq):
            return iterable
        return cls(lambda: iterable)

    @classmethod
    def from_factory(cls, factory: Callable[[], Iterable[T]]) -> "Seq[T]":
        return cls(factory)

    @classmethod
    def range(cls, start: int, stop: int, step: int = 1) -> "Seq[int]":
        return cls(lambda: range(start, stop, step))  # type: ignore[return-value]

    # --- state --------------------------------------------------------

    @property
    def is_sequential(self) -> bool:
        return self._sequential

    def _derive(self, factory: Callable[[], Iterable[R]]) -> "Seq[R]":
        return Seq(factory, self._sequential)

    def __iter__(self) -> Iterator[T]:
        return iter(self._factory())

    # --- deferred operations -----------------------------------------

    def map(self, fn: Callable[[T], R]) -> "Seq[R]":
        def gen() -> Iterator[R]:
            with _opened(self) as it:
                for item in it:
                    yield fn(item)

        return self._derive(gen)

    def flat_map(self, fn: Callable[[T], Iterable[R]]) -> "Seq[R]":
        def gen() -> Iterator[R]:
            with _opened(self) as it:
                for item in it:
                    with _opened(fn(item)) as inner:
                        yield from inner

        return self._derive(gen)

    def filter(self, predicate: Callable[[T], bool]) -> "Seq[T]":
        def gen() -> Iterator[T]:
            with _opened(self) as it:
                for item in it:
                    if predicate(item):
                        yield item

        return self._derive(gen)

    def reject(self, predicate: Callable[[T], bool]) -> "Seq[T]":
        return self.filter(lambda item: not predicate(item))

    def reject_nones(self) -> "Seq[T]":
        return self.filter(lambda item: item is not None)

    def peek(self, action: Callable[[T], Any]) -> "Seq[T]":
        """
        Назначение:
            Побочный эффект ровно один раз на элемент, в момент его выдачи вниз.
        """

        def gen() -> Iterator[T]:
            with _opened(self) as it:
                for item in it:
                    action(item)
                    yield item

        return self._derive(gen)

    def distinct(self, key: Callable[[T], Any] | None = None) -> "Seq[T]":
        def gen() -> Iterator[T]:
            seen: set[Any] = set()
            with _opened(self) as it:
                for item in it:
                    k = key(item) if key is not None else item
                    if k in seen:
                        continue
                    seen.add(k)
                    yield item

        return self._derive(gen)

    def sorted(self, key: Callable[[T], Any] | None = None, reverse: bool = False) -> "Seq[T]":
        """
        Назначение:
            Сортировка. Буферизует весь источник, но только при первом запросе
            элемента; результат отдаётся вниз поэлементно.
        """

        def gen() -> Iterator[T]:
            yield from sorted(self, key=key, reverse=reverse)  # type: ignore[arg-type]

        return self._derive(gen)

    def prepend(self, *items: T) -> "Seq[T]":
        def gen() -> Iterator[T]:
            yield from items
            with _opened(self) as it:
                yield from it

        return self._derive(gen)

    def append(self, *items: T) -> "Seq[T]":
        def gen() -> Iterator[T]:
            with _opened(self) as it:
                yield from it
            yield from items

        return self._derive(gen)

    def concat(self, other: Iterable[T]) -> "Seq[T]":
        def gen() -> Iterator[T]:
            with _opened(self) as it:
                yield from it
            with _opened(other) as it:
                yield from it

        return self._derive(gen)

    def limit(self, n: int) -> "Seq[T]":
        if n < 0:
            raise ValueError("limit must be >= 0")

        def gen() -> Iterator[T]:
            if n == 0:
                return
            with _opened(self) as it:
                for taken, item in enumerate(it, start=1):
                    yield item
                    if taken >= n:
                        return

        return self._derive(gen)

    def skip(self, n: int) -> "Seq[T]":
        if n < 0:
            raise ValueError("skip must be >= 0")

        def gen() -> Iterator[T]:
            with _opened(self) as it:
                for position, item in enumerate(it):
                    if position >= n:
                        yield item

        return self._derive(gen)

    def force_on_demand(self) -> "Seq[T]":
        """
        Назначение:
            Кэширует источник при первом терминальном запросе (не сейчас).
            Все последующие обходы (в том числе count()) читают кэш и не
            обходят источник повторно.
        """
        cell: _CacheCell[T] = _CacheCell(self)
        return self._derive(cell.get)

    def sequential(self) -> "Seq[T]":
        """
        Назначение:
            Помечает последовательность как строго упорядоченную, однопоточную.
            Перед операциями с побочными эффектами, зависящими от порядка.
            Параллельного режима у Seq нет, обход всегда последовательный;
            флаг is_sequential лишь фиксирует это требование для вызывающего кода.
        """
        return Seq(self._factory, True)

    # --- terminal operations -----------------------------------------

    def to_list(self) -> list[T]:
        return list(self)

    def to_tuple(self) -> tuple[T, ...]:
        return tuple(self)

    def count(self) -> int:
        total = 0
        for _ in self:
            total += 1
        return total

    def for_each(self, action: Callable[[T], Any]) -> None:
        for item in self:
            action(item)

    def reduce(self, fn: Callable[[R, T], R], initial: R) -> R:
        return _reduce(fn, self, initial)

    def first(self, default: Any = None) -> T | Any:
        with _opened(self) as it:
            item = next(it, _MISSING)
        return default if item is _MISSING else item

    def is_empty(self) -> bool:
        return self.first(_MISSING) is _MISSING

    def __repr__(self) -> str:
        return f"Seq(sequential={self._sequential})"


__all__ = ["Seq"]
