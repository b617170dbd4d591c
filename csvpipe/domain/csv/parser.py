from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from csvpipe.domain.csv.format import QUOTE_CHAR, CsvFormat

_TERMINATORS = "\r\n"


@dataclass
class RawRecord:
    """
    Назначение:
        Результат разбора одной логической записи (до сопоставления с колонками).

    Поля:
        fields: значения полей после трима (если включён).
        line_no: номер физической строки начала записи (1-based).
        raw: исходный текст записи без завершающего перевода строки.
        error: описание структурной ошибки или None.
    """

    fields: list[str]
    line_no: int
    raw: str
    error: str | None = None

    def is_blank(self, auto_trim: bool = False) -> bool:
        """Пустая строка; строка из одних пробелов считается пустой только при auto_trim."""
        if self.error is not None or len(self.fields) != 1:
            return False
        return self.raw == "" or (auto_trim and self.raw.strip() == "")


class _State(Enum):
    FIELD_START = 1
    UNQUOTED = 2
    QUOTED = 3
    QUOTE_IN_QUOTED = 4
    AFTER_QUOTED = 5


@dataclass
class _RecordBuilder:
    line_no: int
    auto_trim: bool
    fields: list[str] = field(default_factory=list)
    chars: list[str] = field(default_factory=list)
    raw: list[str] = field(default_factory=list)
    quoted: bool = False
    state: _State = _State.FIELD_START
    error: str | None = None

    def end_field(self) -> None:
        value = "".join(self.chars)
        if self.auto_trim and not self.quoted:
            value = value.strip()
        self.fields.append(value)
        self.chars = []
        self.quoted = False
        self.state = _State.FIELD_START

    def finish(self) -> RawRecord:
        raw = "".join(self.raw).rstrip(_TERMINATORS)
        return RawRecord(fields=self.fields, line_no=self.line_no, raw=raw, error=self.error)


def iter_raw_records(lines: Iterable[str], fmt: CsvFormat) -> Iterator[RawRecord]:
    """
    Назначение:
        Разбирает поток физических строк (с сохранёнными окончаниями строк,
        как при open(newline="")) в логические записи CSV.

    Алгоритм:
        - Поля разделяются fmt.delimiter.
        - Поле, начинающееся с кавычки, продолжается до парной закрывающей
          кавычки; "" внутри: литеральная кавычка; разделители и переводы
          строк внутри кавычек входят в значение.
        - При auto_trim обрезаются только некавыченные поля; пробелы вокруг
          кавыченного поля отбрасываются.
        - Пустые строки пропускаются; строки из одних пробелов пропускаются
          только при auto_trim (иначе это значение единственного поля).

    Ошибки:
        Структурные ошибки не выбрасываются: запись возвращается с error,
        разбор продолжается со следующей физической строки. Незакрытая кавычка
        в конце входа возвращается последней записью с error.
    """
    delimiter = fmt.delimiter
    auto_trim = fmt.auto_trim
    line_no = 0
    current: _RecordBuilder | None = None

    for line in lines:
        line_no += 1
        if current is None:
            current = _RecordBuilder(line_no=line_no, auto_trim=auto_trim)
        current.raw.append(line)
        record_done = False

        for ch in line:
            state = current.state
            if state is _State.QUOTED:
                if ch == QUOTE_CHAR:
                    current.state = _State.QUOTE_IN_QUOTED
                else:
                    current.chars.append(ch)
                continue

            if ch in _TERMINATORS:
                # Конец строки вне кавычек завершает запись.
                current.end_field()
                record_done = True
                break

            if state is _State.FIELD_START:
                if ch == QUOTE_CHAR:
                    current.quoted = True
                    current.chars = []
                    current.state = _State.QUOTED
                elif ch == delimiter:
                    current.end_field()
                elif auto_trim and ch.isspace():
                    pass
                else:
                    current.chars.append(ch)
                    current.state = _State.UNQUOTED
            elif state is _State.UNQUOTED:
                if ch == delimiter:
                    current.end_field()
                else:
                    current.chars.append(ch)
            elif state is _State.QUOTE_IN_QUOTED:
                if ch == QUOTE_CHAR:
                    current.chars.append(QUOTE_CHAR)
                    current.state = _State.QUOTED
                elif ch == delimiter:
                    current.end_field()
                elif auto_trim and ch.isspace():
                    current.state = _State.AFTER_QUOTED
                else:
                    current.error = f"Unexpected character {ch!r} after closing quote"
                    record_done = True
                    break
            elif state is _State.AFTER_QUOTED:
                if ch == delimiter:
                    current.end_field()
                elif not ch.isspace():
                    current.error = f"Unexpected character {ch!r} after closing quote"
                    record_done = True
                    break

        if record_done:
            record = current.finish()
            current = None
            if not record.is_blank(auto_trim):
                yield record

    if current is None:
        return
    if current.state is _State.QUOTED:
        current.error = "Unterminated quoted field"
        yield current.finish()
        return
    # Последняя строка без перевода строки.
    current.end_field()
    record = current.finish()
    if not record.is_blank(auto_trim):
        yield record


def split_line(text: str, fmt: CsvFormat) -> list[str]:
    """
    Назначение:
        Разобрать одну запись из строки (удобно для тестов и заголовков).

    Ошибки:
        ValueError при структурной ошибке или если строка содержит больше одной записи.
    """
    records = list(iter_raw_records(text.splitlines(keepends=True), fmt))
    if len(records) != 1:
        raise ValueError(f"Expected exactly one CSV record, got {len(records)}")
    if records[0].error:
        raise ValueError(records[0].error)
    return records[0].fields


__all__ = ["RawRecord", "iter_raw_records", "split_line"]
