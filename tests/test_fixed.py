from decimal import Decimal

import pytest

from limitless_orders.errors import MalformedFieldError
from limitless_orders.fixed import (
    SHARES_SCALE,
    ceil_div,
    floor_div,
    format_decimal,
    fractional_digits,
    parse_decimal,
    scale_digits,
)


def test_parse_decimal_scales_without_float():
    assert parse_decimal("0.380", SHARES_SCALE) == 380_000
    assert parse_decimal("0.38", SHARES_SCALE) == 380_000
    assert parse_decimal("22.123896", SHARES_SCALE) == 22_123_896
    assert parse_decimal("50", SHARES_SCALE) == 50_000_000
    assert parse_decimal(".5", SHARES_SCALE) == 500_000
    assert parse_decimal("5.", SHARES_SCALE) == 5_000_000
    assert parse_decimal(" 1.25 ", SHARES_SCALE) == 1_250_000
    assert parse_decimal("-1.5", SHARES_SCALE) == -1_500_000
    assert parse_decimal(7, SHARES_SCALE) == 7_000_000
    assert parse_decimal(Decimal("0.38"), SHARES_SCALE) == 380_000


def test_parse_decimal_truncates_beyond_scale():
    assert parse_decimal("1.0000009", SHARES_SCALE) == 1_000_000
    assert parse_decimal("0.0019", 1000) == 1


def test_parse_decimal_rejects_malformed():
    for bad in ("abc", "1.2.3", "", ".", "1e-3", "0x10", "--1"):
        with pytest.raises(MalformedFieldError):
            parse_decimal(bad, SHARES_SCALE)
    with pytest.raises(MalformedFieldError):
        parse_decimal(None, SHARES_SCALE)


def test_parse_decimal_rejects_float_and_bool():
    with pytest.raises(TypeError):
        parse_decimal(0.38, SHARES_SCALE)
    with pytest.raises(TypeError):
        parse_decimal(True, SHARES_SCALE)


def test_malformed_error_names_field():
    with pytest.raises(MalformedFieldError) as excinfo:
        parse_decimal("abc", SHARES_SCALE, "price")
    assert excinfo.value.field == "price"


def test_fractional_digits_ignores_trailing_zeros():
    assert fractional_digits("0.380") == 2
    assert fractional_digits("22.123896") == 6
    assert fractional_digits("50.000000000") == 0
    assert fractional_digits("10") == 0


def test_format_decimal():
    assert format_decimal(22_123_000, SHARES_SCALE) == "22.123"
    assert format_decimal(50_000_000, SHARES_SCALE) == "50"
    assert format_decimal(1, SHARES_SCALE) == "0.000001"
    assert format_decimal(-1_500_000, SHARES_SCALE) == "-1.5"
    assert format_decimal(0, SHARES_SCALE) == "0"


def test_parse_format_round_trip():
    samples = ["0.38", "22.123896", "0.000001", "123456.654321", "1", "0.5", "999999.999999"]
    for text in samples:
        assert format_decimal(parse_decimal(text, SHARES_SCALE), SHARES_SCALE) == text


def test_ceil_and_floor_div():
    assert ceil_div(10, 3) == 4
    assert ceil_div(9, 3) == 3
    assert ceil_div(0, 5) == 0
    assert floor_div(10, 3) == 3
    assert floor_div(9, 3) == 3
    with pytest.raises(ZeroDivisionError):
        ceil_div(1, 0)
    with pytest.raises(ZeroDivisionError):
        floor_div(1, 0)


def test_scale_digits():
    assert scale_digits(1) == 0
    assert scale_digits(1000) == 3
    assert scale_digits(SHARES_SCALE) == 6
    with pytest.raises(ValueError):
        scale_digits(1500)
    with pytest.raises(ValueError):
        scale_digits(0)


def test_parse_decimal_rejects_non_ascii_digits():
    for bad in ("١.5", "1.٥", "1\n2"):
        with pytest.raises(MalformedFieldError):
            parse_decimal(bad, SHARES_SCALE)
