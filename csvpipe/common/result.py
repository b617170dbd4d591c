from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Назначение:
        Явный канал результата: либо значение, либо структурированная ошибка.
        Используется операциями try_* вместо проброса исключений.

    Инварианты:
        - Ровно одно из value/error задано (value может быть None при успехе).
    """

    ok: bool
    value: T | None = None
    error: BaseException | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Result[T]":
        if error is None:
            raise ValueError("failure requires an error")
        return cls(ok=False, error=error)

    @classmethod
    def capture(cls, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Result[T]":
        """
        Назначение:
            Выполнить fn и упаковать исключение (Exception) в failure.
        """
        try:
            return cls.success(fn(*args, **kwargs))
        except Exception as exc:
            return cls.failure(exc)

    def if_success(self, action: Callable[[T], Any]) -> "Result[T]":
        if self.ok:
            action(self.value)  # type: ignore[arg-type]
        return self

    def if_error(self, action: Callable[[BaseException], Any]) -> "Result[T]":
        if not self.ok:
            action(self.error)  # type: ignore[arg-type]
        return self

    def map(self, fn: Callable[[T], R]) -> "Result[R]":
        if not self.ok:
            return Result(ok=False, error=self.error)
        return Result.capture(fn, self.value)

    def get_or_raise(self) -> T:
        if not self.ok:
            raise self.error  # type: ignore[misc]
        return self.value  # type: ignore[return-value]


__all__ = ["Result"]
