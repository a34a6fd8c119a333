"""Money arithmetic shared by the cart and order schemas.

All amounts are ``Decimal``. Floats are converted through their shortest ``repr`` so a
value typed as ``10.005`` is treated as exactly 10.005 and not as its binary neighbour.

Totals are rounded per line and then summed. Summing un-rounded line totals and rounding
once at the end is not used anywhere.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = int | float | str | Decimal


def to_decimal(x: Number) -> Decimal:
    if isinstance(x, Decimal):
        return x
    if isinstance(x, bool):
        raise TypeError("bool is not a money amount")
    if isinstance(x, float):
        return Decimal(repr(x))
    return Decimal(x)


def round2(x: Number) -> Decimal:
    """Round to two decimal places, half away from zero."""

    return to_decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price: Number, quantity: int) -> Decimal:
    return round2(to_decimal(unit_price) * quantity)


def sum_money(values: Iterable[Number]) -> Decimal:
    total = ZERO
    for v in values:
        total += round2(v)
    return round2(total)
