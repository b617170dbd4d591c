import pytest

from csvpipe.domain.errors import CsvConfigurationError
from csvpipe.domain.validation import field_functions as ff


@pytest.mark.parametrize(
    "value, expected",
    [("12.50", True), (" 3 ", True), ("-1", True), ("1e3", True), ("abc", False), ("", False), (None, False)],
)
def test_is_float(value, expected):
    assert ff.is_float(value) is expected


def test_numeric_comparisons():
    assert ff.is_greater("12.50", 0)
    assert not ff.is_greater("-1", 0)
    assert not ff.is_greater("0", 0)
    assert ff.is_greater_or_equal("0", 0)
    assert ff.is_less("-0.5", 0)
    assert ff.is_less_or_equal("2", 2)
    assert not ff.is_less("x", 10)


def test_length_checks():
    assert ff.has_length("0000000001", 10)
    assert not ff.has_length("000000001", 10)
    assert not ff.has_length(None, 0)
    assert ff.has_max_length("abc", 3)
    assert not ff.has_max_length("abcd", 3)


def test_blank_int_matches_and_one_of():
    assert ff.is_blank("  ")
    assert ff.is_not_blank("x")
    assert ff.is_int("42")
    assert not ff.is_int("4.2")
    assert not ff.is_int(" ")
    assert ff.matches("AB-12", r"[A-Z]{2}-\d+")
    assert not ff.matches("AB-12x", r"[A-Z]{2}-\d+")
    assert ff.is_one_of("EUR", "EUR", "USD")
    assert not ff.is_one_of("GBP", "EUR", "USD")


def test_resolve_check_binds_arguments():
    predicate = ff.resolve_check("has_length", [10])
    assert predicate("0000000001")
    assert not predicate("1")

    one_of = ff.resolve_check("is_one_of", ("A", "B"))
    assert one_of("B")


def test_resolve_check_unknown_name():
    with pytest.raises(CsvConfigurationError) as exc_info:
        ff.resolve_check("is_purple")
    assert "is_float" in exc_info.value.details["known"]
