from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from csvpipe.domain.errors import CsvConfigurationError

QUOTE_CHAR = '"'
LINE_SEPARATORS = ("\n", "\r\n", "\r")


class QuoteMode(str, Enum):
    """
    Назначение:
        Политика кавычек при записи CSV.
    """

    NEVER = "never"
    MINIMAL = "minimal"
    ALL = "all"

    @classmethod
    def parse(cls, value: "str | QuoteMode") -> "QuoteMode":
        if isinstance(value, QuoteMode):
            return value
        normalized = (value or "").strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise CsvConfigurationError(f"Unsupported quote mode: {value}")


@dataclass(frozen=True)
class CsvFormat:
    """
    Назначение:
        Неизменяемое описание диалекта CSV: колонки, разделитель, кавычки, трим.

    Инварианты:
        - columns непустой, имена уникальны и непусты.
        - delimiter: один символ, не кавычка, не перевод строки,
          не встречается в именах колонок.
        - line_separator: один из LF, CRLF, CR.
        - Создаётся только через CsvFormat.builder().build() либо напрямую
          с проверкой в __post_init__.
    """

    columns: tuple[str, ...]
    delimiter: str = ","
    quote_mode: QuoteMode = QuoteMode.MINIMAL
    auto_trim: bool = False
    line_separator: str = "\n"

    def __post_init__(self) -> None:
        if not self.columns:
            raise CsvConfigurationError("CSV format requires at least one column")
        if len(self.delimiter) != 1:
            raise CsvConfigurationError(f"Delimiter must be a single character, got {self.delimiter!r}")
        if self.delimiter == QUOTE_CHAR or self.delimiter in "\r\n":
            raise CsvConfigurationError(f"Delimiter {self.delimiter!r} is not allowed")
        if self.line_separator not in LINE_SEPARATORS:
            raise CsvConfigurationError(f"Unsupported line separator: {self.line_separator!r}")
        seen: set[str] = set()
        for name in self.columns:
            if not isinstance(name, str) or name.strip() == "":
                raise CsvConfigurationError("Column names must be non-empty strings")
            if self.delimiter in name:
                raise CsvConfigurationError(
                    f"Column name {name!r} contains the delimiter {self.delimiter!r}"
                )
            if name in seen:
                raise CsvConfigurationError(f"Duplicate column name: {name!r}")
            seen.add(name)

    @classmethod
    def builder(cls) -> "CsvFormatBuilder":
        return CsvFormatBuilder()

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def index_of(self, column: str) -> int:
        try:
            return self.columns.index(column)
        except ValueError:
            raise CsvConfigurationError(f"Unknown column: {column!r}") from None

    def has_column(self, column: str) -> bool:
        return column in self.columns


class CsvFormatBuilder:
    """
    Назначение/ответственность:
        Пошаговая сборка CsvFormat; все инварианты проверяются в build().
    """

    def __init__(self) -> None:
        self._columns: tuple[str, ...] = ()
        self._delimiter = ","
        self._quote_mode = QuoteMode.MINIMAL
        self._auto_trim = False
        self._line_separator = "\n"

    def columns(self, *names: str) -> "CsvFormatBuilder":
        if len(names) == 1 and isinstance(names[0], (list, tuple)):
            names = tuple(names[0])
        self._columns = tuple(names)
        return self

    def delimiter(self, value: str) -> "CsvFormatBuilder":
        self._delimiter = value
        return self

    def quote_mode(self, value: "QuoteMode | str") -> "CsvFormatBuilder":
        self._quote_mode = QuoteMode.parse(value)
        return self

    def auto_trim(self, value: bool = True) -> "CsvFormatBuilder":
        self._auto_trim = bool(value)
        return self

    def line_separator(self, value: str) -> "CsvFormatBuilder":
        self._line_separator = value
        return self

    def build(self) -> CsvFormat:
        return CsvFormat(
            columns=self._columns,
            delimiter=self._delimiter,
            quote_mode=self._quote_mode,
            auto_trim=self._auto_trim,
            line_separator=self._line_separator,
        )


__all__ = ["CsvFormat", "CsvFormatBuilder", "QuoteMode", "QUOTE_CHAR"]
