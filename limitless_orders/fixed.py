from __future__ import annotations

import re
from decimal import Decimal
from typing import Union

from .errors import MalformedFieldError

PRICE_SCALE = 1_000_000  # micro-dollars per dollar
SHARES_SCALE = 1_000_000  # micro-shares per share
COLLATERAL_SCALE = 1_000_000  # USDC base units
AMOUNT_DECIMALS = 6
DEFAULT_PRICE_TICK = "0.001"

DecimalInput = Union[str, int, Decimal]

_DECIMAL_RE = re.compile(r"([+-]?)([0-9]*)(?:\.([0-9]*))?")


def _to_text(value: DecimalInput, field: str) -> str:
    if value is None:
        raise MalformedFieldError(field, value, "value is None")
    if isinstance(value, (bool, float)):
        raise TypeError(f"expected a decimal string, got {type(value).__name__}: {value!r}")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise MalformedFieldError(field, value, "not a finite number")
        return format(value, "f")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    raise TypeError(f"expected a decimal string, got {type(value).__name__}: {value!r}")


def split_decimal(value: DecimalInput, field: str = "decimal") -> tuple[int, str, str]:
    """Split into (sign, integer digits, fractional digits) without float parsing."""
    text = _to_text(value, field)
    match = _DECIMAL_RE.fullmatch(text)
    if match is None:
        raise MalformedFieldError(field, value, "not a plain decimal number")
    sign_text, int_part, frac_part = match.group(1), match.group(2), match.group(3) or ""
    if not int_part and not frac_part:
        raise MalformedFieldError(field, value, "no digits")
    sign = -1 if sign_text == "-" else 1
    return sign, int_part or "0", frac_part


def scale_digits(scale: int) -> int:
    text = str(scale)
    if scale <= 0 or text != "1" + "0" * (len(text) - 1):
        raise ValueError(f"scale must be a power of ten: {scale}")
    return len(text) - 1


def fractional_digits(value: DecimalInput, field: str = "decimal") -> int:
    """Significant fractional digits; trailing zeros do not count."""
    _, _, frac_part = split_decimal(value, field)
    return len(frac_part.rstrip("0"))


def parse_decimal(value: DecimalInput, scale: int, field: str = "decimal") -> int:
    """Parse a decimal to a scaled integer, truncating digits beyond the scale."""
    digits = scale_digits(scale)
    sign, int_part, frac_part = split_decimal(value, field)
    frac = (frac_part + "0" * digits)[:digits]
    return sign * (int(int_part) * scale + int(frac or "0"))


def format_decimal(units: int, scale: int) -> str:
    digits = scale_digits(scale)
    sign = "-" if units < 0 else ""
    whole, frac = divmod(abs(units), scale)
    if digits == 0:
        return f"{sign}{whole}"
    frac_text = str(frac).rjust(digits, "0").rstrip("0")
    if not frac_text:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac_text}"


def ceil_div(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise ZeroDivisionError(f"denominator must be > 0: {denominator}")
    return (numerator + denominator - 1) // denominator


def floor_div(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise ZeroDivisionError(f"denominator must be > 0: {denominator}")
    return numerator // denominator


def canonical_decimal(value: DecimalInput, scale: int = PRICE_SCALE) -> str:
    return format_decimal(parse_decimal(value, scale), scale)
