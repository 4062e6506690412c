import pytest

from packages.domain.classification.hs_codes import (
    filter_columns,
    format_code,
    get_column,
    get_key_column,
    is_zero_like,
    normalize_header,
    tokenize,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("123456", "1234.56"),
        ("12345678", "1234.56.78"),
        ("1234567890", "1234.56.78.90"),
        ("123456789", "1234.56.78.9"),
        ("12345", "1234.5"),
        ("1234567", "1234.56.7"),
        ("0101", "0101"),
        ("8471.30.00 00", "8471.30.00.00"),
        ("HS 8471-30", "8471.30"),
        ("123456789012", "1234.56.78.90"),
    ],
)
def test_format_code(raw, expected):
    assert format_code(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "no digits here"])
def test_format_code_without_digits(raw):
    assert format_code(raw) is None


@pytest.mark.parametrize("raw", ["1", "12345", "123456", "1234567", "123456789", "1234567890"])
def test_format_code_is_idempotent(raw):
    once = format_code(raw)
    assert format_code(once) == once


def test_tokenize_lowercases_and_deduplicates():
    assert tokenize("Steel POT, steel lid 2 x 20cm") == ["steel", "pot", "lid", "20cm"]


def test_normalize_header():
    assert normalize_header(" HS-Code ") == "hscode"
    assert normalize_header("H.S. code") == "hscode"


@pytest.mark.parametrize("value", ["0", "0.00", "0%", "0,000", "-0", "+0.", ".0", "   "])
def test_zero_like_values(value):
    assert is_zero_like(value)


@pytest.mark.parametrize("value", ["16%", "1,000", "abc", "0.5", "N/A", "0e5", "0_0", "0x0", "NaN"])
def test_non_zero_values(value):
    assert not is_zero_like(value)


def test_filter_columns_drops_blank_and_zero():
    columns = {"HS Code": "7323.93", "Duty": "0%", "VAT": " 16% ", "Notes": "  "}
    assert filter_columns(columns) == {"HS Code": "7323.93", "VAT": "16%"}


def test_column_accessors_are_case_insensitive():
    columns = {"HS code": "8471.30", "DESCRIPTION": "Laptops"}
    assert get_key_column(columns) == "8471.30"
    assert get_column(columns, "Description", "description") == "Laptops"
    assert get_column(columns, "missing") is None
    assert get_key_column(None) is None
