from __future__ import annotations

import re
from typing import Any, Callable

from csvpipe.domain.errors import CsvConfigurationError


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    text = value.strip()
    if text == "":
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_int_strict(value: str) -> int:
    if value.strip() == "":
        raise ValueError("Empty int value")
    return int(value)


def is_blank(value: str | None) -> bool:
    return value is None or value.strip() == ""


def is_not_blank(value: str | None) -> bool:
    return not is_blank(value)


def has_length(value: str | None, length: int) -> bool:
    return value is not None and len(value) == length


def has_max_length(value: str | None, length: int) -> bool:
    return value is None or len(value) <= length


def is_int(value: str | None) -> bool:
    if value is None:
        return False
    try:
        parse_int_strict(value)
    except ValueError:
        return False
    return True


def is_float(value: str | None) -> bool:
    return _parse_float(value) is not None


def is_greater(value: str | None, bound: float) -> bool:
    number = _parse_float(value)
    return number is not None and number > bound


def is_greater_or_equal(value: str | None, bound: float) -> bool:
    number = _parse_float(value)
    return number is not None and number >= bound


def is_less(value: str | None, bound: float) -> bool:
    number = _parse_float(value)
    return number is not None and number < bound


def is_less_or_equal(value: str | None, bound: float) -> bool:
    number = _parse_float(value)
    return number is not None and number <= bound


def matches(value: str | None, pattern: str) -> bool:
    return value is not None and re.fullmatch(pattern, value) is not None


def is_one_of(value: str | None, *options: str) -> bool:
    return value in options


FIELD_CHECKS: dict[str, Callable[..., bool]] = {
    "is_blank": is_blank,
    "is_not_blank": is_not_blank,
    "has_length": has_length,
    "has_max_length": has_max_length,
    "is_int": is_int,
    "is_float": is_float,
    "is_greater": is_greater,
    "is_greater_or_equal": is_greater_or_equal,
    "is_less": is_less,
    "is_less_or_equal": is_less_or_equal,
    "matches": matches,
    "is_one_of": is_one_of,
}


def resolve_check(name: str, args: list[Any] | tuple[Any, ...] = ()) -> Callable[[str], bool]:
    """
    Назначение:
        Построить предикат по имени функции из FIELD_CHECKS и аргументам
        (используется для правил из job-файла).

    Ошибки:
        CsvConfigurationError: неизвестное имя функции.
    """
    fn = FIELD_CHECKS.get(name)
    if fn is None:
        raise CsvConfigurationError(
            f"Unknown check: {name!r}",
            details={"known": sorted(FIELD_CHECKS)},
        )
    bound = tuple(args)
    return lambda value: fn(value, *bound)


__all__ = [
    "FIELD_CHECKS",
    "resolve_check",
    "is_blank",
    "is_not_blank",
    "has_length",
    "has_max_length",
    "is_int",
    "is_float",
    "is_greater",
    "is_greater_or_equal",
    "is_less",
    "is_less_or_equal",
    "matches",
    "is_one_of",
]
