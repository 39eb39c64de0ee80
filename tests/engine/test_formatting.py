import pytest

from bizcase_engine import format_currency, format_percent
from bizcase_engine.formatting import currency_prefix, format_number
from bizcase_engine.numeric import normalize_to_float_list, round_half_up


@pytest.mark.parametrize(
    "value, digits, expected",
    [(0.5, 0, 1.0), (2.5, 0, 3.0), (-0.5, 0, 0.0), (-1.5, 0, -1.0), (1.005, 1, 1.0), (13.333, 2, 13.33)],
)
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == pytest.approx(expected)


def test_normalize_to_float_list():
    assert normalize_to_float_list((1, 2.5)) == [1.0, 2.5]


def test_format_currency_whole_units():
    assert format_currency(1234.5) == "€1,235"
    assert format_currency(-1234.4, "USD") == "-$1,234"
    assert format_currency(0.4, "GBP") == "£0"
    assert format_currency(-0.4) == "€0"
    assert format_currency(500, "CHF") == "CHF 500"


def test_format_currency_compact():
    assert format_currency(1_250_000, compact=True) == "€1.25M"
    assert format_currency(950_000, compact=True) == "€950K"
    assert format_currency(-2_500_000_000, "USD", compact=True) == "-$2.50B"
    assert format_currency(999, compact=True) == "€999"


def test_currency_prefix():
    assert currency_prefix("CAD") == "CA$"
    assert currency_prefix("SEK") == "SEK "
    assert "\xa0" not in format_currency(500, "SEK")


def test_format_number():
    assert format_number(1_234_567) == "1,234,567"
    assert format_number(0.1 + 0.2) == "0.3"
    assert format_number(-2.5) == "-2.5"
    assert format_number(0) == "0"


def test_format_percent():
    assert format_percent(0.125) == "12.5%"
    assert format_percent(-0.05, decimals=0) == "-5%"
