import pytest

from csvpipe.domain.csv.format import CsvFormat, QuoteMode
from csvpipe.domain.errors import CsvConfigurationError


def test_builder_defaults():
    fmt = CsvFormat.builder().columns("ID", "PRICE").build()
    assert fmt.columns == ("ID", "PRICE")
    assert fmt.delimiter == ","
    assert fmt.quote_mode is QuoteMode.MINIMAL
    assert fmt.auto_trim is False
    assert fmt.line_separator == "\n"
    assert fmt.column_count == 2


def test_builder_accepts_list_of_columns_and_options():
    fmt = (
        CsvFormat.builder()
        .columns(["A", "B", "C"])
        .delimiter(";")
        .quote_mode("all")
        .auto_trim()
        .line_separator("\r\n")
        .build()
    )
    assert fmt.columns == ("A", "B", "C")
    assert fmt.quote_mode is QuoteMode.ALL
    assert fmt.auto_trim is True
    assert fmt.index_of("C") == 2
    assert fmt.has_column("B")
    assert not fmt.has_column("Z")


@pytest.mark.parametrize(
    "builder",
    [
        lambda: CsvFormat.builder(),
        lambda: CsvFormat.builder().columns("A", "A"),
        lambda: CsvFormat.builder().columns("A", ""),
        lambda: CsvFormat.builder().columns("A").delimiter(";;"),
        lambda: CsvFormat.builder().columns("A").delimiter('"'),
        lambda: CsvFormat.builder().columns("A").delimiter("\n"),
        lambda: CsvFormat.builder().columns("A;B").delimiter(";"),
        lambda: CsvFormat.builder().columns("A").line_separator("\n\n"),
    ],
)
def test_invalid_formats_fail_at_build(builder):
    with pytest.raises(CsvConfigurationError):
        builder().build()


def test_unknown_quote_mode_rejected():
    with pytest.raises(CsvConfigurationError):
        CsvFormat.builder().quote_mode("sometimes")


def test_index_of_unknown_column():
    fmt = CsvFormat.builder().columns("A").build()
    with pytest.raises(CsvConfigurationError):
        fmt.index_of("B")
