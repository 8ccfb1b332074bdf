from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

# Currency precision: 2 decimal places
CENT = Decimal("0.01")


def quantize(value) -> Decimal:
    """Round to currency precision, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_json_number(value) -> float | None:
    """Serialize a Numeric column value as a JSON number."""
    if value is None:
        return None
    return float(quantize(value))
