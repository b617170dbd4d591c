from __future__ import annotations

from typing import Any, Iterable

from csvpipe.domain.csv.format import QUOTE_CHAR, CsvFormat, QuoteMode

_DOUBLED_QUOTE = QUOTE_CHAR * 2


def _needs_quotes(value: str, delimiter: str) -> bool:
    return delimiter in value or QUOTE_CHAR in value or "\n" in value or "\r" in value


def format_field(value: Any, fmt: CsvFormat) -> str:
    """
    Назначение:
        Преобразует значение поля в текст CSV по политике кавычек формата.

    Алгоритм:
        - None -> "", прочие не-строки -> str(value).
        - auto_trim обрезает пробелы до решения о кавычках.
        - NEVER: без кавычек и экранирования.
        - MINIMAL: кавычки только при наличии разделителя, кавычки или
          перевода строки; кавычки внутри удваиваются.
        - ALL: кавычки всегда; кавычки внутри удваиваются.
    """
    text = "" if value is None else value if isinstance(value, str) else str(value)
    if fmt.auto_trim:
        text = text.strip()
    mode = fmt.quote_mode
    if mode is QuoteMode.NEVER:
        return text
    if mode is QuoteMode.MINIMAL and not _needs_quotes(text, fmt.delimiter):
        return text
    return QUOTE_CHAR + text.replace(QUOTE_CHAR, _DOUBLED_QUOTE) + QUOTE_CHAR


def format_line(values: Iterable[Any], fmt: CsvFormat) -> str:
    """
    Назначение:
        Собирает строку CSV без завершающего line_separator.

    Поведение:
        - Единственное пустое поле при MINIMAL пишется как "", иначе строка
          была бы пустой и парсер пропустил бы запись.
        - При NEVER такая запись неотличима от пустой строки и при чтении
          теряется; для однострочных форматов с пустыми значениями NEVER
          не подходит.
    """
    fields = [format_field(value, fmt) for value in values]
    if len(fields) == 1 and fields[0] == "" and fmt.quote_mode is QuoteMode.MINIMAL:
        return QUOTE_CHAR * 2
    return fmt.delimiter.join(fields)


def format_header(fmt: CsvFormat) -> str:
    return format_line(fmt.columns, fmt)


__all__ = ["format_field", "format_line", "format_header"]
