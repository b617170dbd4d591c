from __future__ import annotations

from typing import Iterator

from csvpipe.domain.errors import UnknownColumnError


class CsvRecord:
    """
    Назначение:
        Одна логическая строка CSV: упорядоченное отображение колонка -> значение.

    Инварианты:
        - len(columns) == len(values).
        - index: порядковый номер записи данных в источнике (0-based, без заголовка).
        - Обращение к неизвестной колонке (record[name], record.get(name))
          выбрасывает UnknownColumnError (KeyError).
    """

    __slots__ = ("_columns", "_values", "_positions", "index", "line_no", "raw", "source")

    def __init__(
        self,
        columns: tuple[str, ...],
        values: tuple[str, ...],
        index: int,
        line_no: int | None = None,
        raw: str | None = None,
        source: str | None = None,
    ) -> None:
        if len(columns) != len(values):
            raise ValueError(f"Expected {len(columns)} values, got {len(values)}")
        self._columns = tuple(columns)
        self._values = tuple(values)
        self._positions = {name: pos for pos, name in enumerate(self._columns)}
        self.index = index
        self.line_no = line_no
        self.raw = raw
        self.source = source

    @classmethod
    def from_dict(cls, values: dict[str, str], index: int = 0, source: str | None = None) -> "CsvRecord":
        return cls(tuple(values.keys()), tuple(values.values()), index=index, source=source)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    def get(self, column: str) -> str:
        pos = self._positions.get(column)
        if pos is None:
            raise UnknownColumnError(column, self._columns)
        return self._values[pos]

    def __getitem__(self, column: str) -> str:
        return self.get(column)

    def __contains__(self, column: object) -> bool:
        return column in self._positions

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def keys(self) -> tuple[str, ...]:
        return self._columns

    def values(self) -> tuple[str, ...]:
        return self._values

    def items(self) -> list[tuple[str, str]]:
        return list(zip(self._columns, self._values))

    def to_dict(self) -> dict[str, str]:
        return dict(zip(self._columns, self._values))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CsvRecord):
            return NotImplemented
        return self._columns == other._columns and self._values == other._values and self.index == other.index

    def __hash__(self) -> int:
        return hash((self._columns, self._values, self.index))

    def __repr__(self) -> str:
        return f"CsvRecord(index={self.index}, source={self.source!r}, values={self.to_dict()!r})"
