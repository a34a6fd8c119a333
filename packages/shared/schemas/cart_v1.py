"""Shared cart schema (v1).

Cart lines are persisted on the device/session as a JSON list of ``CartLineV1`` payloads.
Keep field names stable; old snapshots must keep loading.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from packages.shared.money import ZERO, line_total
from pydantic import BaseModel, ConfigDict, Field, computed_field


class CartItemCandidate(BaseModel):
    """Input to add-to-cart.

    Quantity is deliberately unconstrained here; the cart store owns that rule and
    raises its own error for it.
    """

    product_id: str
    variant_id: str | None = None
    title: str
    variant_label: str | None = None
    sku: str | None = None
    image_ref: str | None = None
    unit_price: Decimal
    quantity: int = 1


class CartLineV1(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    variant_id: str | None = None

    title: str = Field(..., min_length=1)
    variant_label: str | None = None
    sku: str | None = None
    image_ref: str | None = None

    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_total(self) -> Decimal:
        return line_total(self.unit_price, self.quantity)

    def matches(self, product_id: str, variant_id: str | None) -> bool:
        return self.product_id == product_id and self.variant_id == variant_id


class CartTotalsV1(BaseModel):
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    shipping: Decimal = ZERO
    discount: Decimal = ZERO
    grand_total: Decimal = ZERO
    item_count: int = 0
