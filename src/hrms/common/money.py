from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..core.exceptions import ValidationError

CENT = Decimal("0.01")


def to_decimal(value, field_name: str = "amount") -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} is not a number: {value!r}")


def money(value) -> Decimal:
    """Round to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
