"""
Money helpers.

Every stored amount is a Decimal with two places, rounded half-up.
Floats are converted through str() so 0.1 stays 0.1.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, float, str]


def to_decimal(value: MoneyLike) -> Decimal:
    """Convert without rounding."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e


def quantize(value: MoneyLike) -> Decimal:
    """Round half-up to cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: MoneyLike | None) -> Decimal:
    """Like quantize(), with None meaning zero."""
    if value is None:
        return ZERO
    return quantize(value)
