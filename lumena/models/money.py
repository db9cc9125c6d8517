"""
Money Primitives

All amounts are held as ``Decimal`` quantized to the cent.
Values arriving from the UI or from an older saved document (floats,
ints, numeric strings) are converted exactly once, at the boundary,
rounding half-up to the nearest cent.

The legacy acceptance contract compares sums within one cent
(ALLOCATION_TOLERANCE). With exact cent arithmetic this only matters
for callers that hand in pre-rounded shares that drift by a cent.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BeforeValidator


CENT = Decimal("0.01")
ZERO = Decimal("0.00")
ALLOCATION_TOLERANCE = CENT


def to_money(value: Any) -> Decimal:
    """
    Convert a user-supplied amount to a cent-quantized Decimal.

    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        # repr gives the shortest round-tripping form (0.1, not 0.1000000000000000055)
        amount = Decimal(repr(value))
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(value.strip() if isinstance(value, str) else value)
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}") from None
    else:
        raise ValueError(f"Not a monetary amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")

    try:
        # Exceeds the context precision once quantized (e.g. 1e30)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount out of range: {value!r}") from None


def round2(value: Decimal) -> Decimal:
    """Round an exact intermediate result to the cent, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def within_tolerance(
    actual: Decimal,
    expected: Decimal,
    tolerance: Decimal = ALLOCATION_TOLERANCE,
) -> bool:
    """True when ``|actual - expected| <= tolerance``."""
    return abs(actual - expected) <= tolerance


Money = Annotated[Decimal, BeforeValidator(to_money)]
