"""
Decimal helpers for currency values.

Money is never handled as binary floating point inside the backend. Values
arrive from JSON as int/float/str, are converted through str() into Decimal,
and are only turned back into JSON numbers at serialization time.
"""
from __future__ import annotations

import decimal
from decimal import Decimal, InvalidOperation

CENTS = Decimal("0.01")
WHOLE_UNITS = Decimal("1")

ROUNDING_MODES = {
    "ROUND_HALF_UP": decimal.ROUND_HALF_UP,
    "ROUND_HALF_EVEN": decimal.ROUND_HALF_EVEN,
    "ROUND_HALF_DOWN": decimal.ROUND_HALF_DOWN,
    "ROUND_DOWN": decimal.ROUND_DOWN,
    "ROUND_UP": decimal.ROUND_UP,
    "ROUND_FLOOR": decimal.ROUND_FLOOR,
    "ROUND_CEILING": decimal.ROUND_CEILING,
}


def to_decimal(value) -> Decimal:
    """Convert a JSON scalar or Decimal to Decimal. Raises ValueError on junk."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}")
        if not result.is_finite():
            raise ValueError(f"not a finite number: {value!r}")
        return result
    raise ValueError(f"not a number: {value!r}")


def quantize_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=decimal.ROUND_HALF_UP)


def quantize_units(value: Decimal, rounding: str = "ROUND_HALF_UP") -> Decimal:
    return value.quantize(WHOLE_UNITS, rounding=rounding_mode(rounding))


def rounding_mode(name: str) -> str:
    try:
        return ROUNDING_MODES[name.upper()]
    except KeyError:
        raise ValueError(f"Unknown rounding mode: {name}")


def as_json_number(value: Decimal | None) -> float | int | None:
    """Render a Decimal for JSON output; whole values become ints."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)
