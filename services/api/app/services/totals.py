from __future__ import annotations

import os
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation

from packages.shared.money import ZERO, Number, round2, sum_money, to_decimal
from packages.shared.schemas.cart_v1 import CartLineV1, CartTotalsV1

DEFAULT_TAX_RATE = Decimal("0.10")


def default_tax_rate() -> Decimal:
    """Tax rate from STOREFRONT_TAX_RATE, falling back to 10%."""

    raw = os.getenv("STOREFRONT_TAX_RATE", "").strip()
    if not raw:
        return DEFAULT_TAX_RATE
    try:
        rate = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(f"Invalid STOREFRONT_TAX_RATE={raw!r}. Expected a ratio like 0.08.") from e
    if not (0 <= rate <= 1):
        raise ValueError(f"STOREFRONT_TAX_RATE={raw!r} must be between 0 and 1.")
    return rate


def calculate_totals(
    lines: Sequence[CartLineV1],
    tax_rate: Number,
    shipping: Number = 0,
    discount: Number = 0,
) -> CartTotalsV1:
    """Derive cart totals.

    Line totals are already rounded per line; the subtotal is their rounded sum. The
    grand total is clamped at zero when the discount exceeds everything else.
    """

    rate = to_decimal(tax_rate)
    shipping_amount = round2(shipping)
    discount_amount = round2(discount)

    if rate < 0:
        raise ValueError("tax_rate must be non-negative")
    if shipping_amount < 0:
        raise ValueError("shipping must be non-negative")
    if discount_amount < 0:
        raise ValueError("discount must be non-negative")

    subtotal = sum_money(line.line_total for line in lines)
    tax = round2(subtotal * rate)
    grand_total = round2(subtotal + tax + shipping_amount - discount_amount)

    return CartTotalsV1(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping_amount,
        discount=discount_amount,
        grand_total=max(ZERO, grand_total),
        item_count=sum(line.quantity for line in lines),
    )
