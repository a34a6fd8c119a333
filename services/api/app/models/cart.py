from __future__ import annotations

from decimal import Decimal

from packages.shared.schemas.cart_v1 import CartLineV1, CartTotalsV1
from pydantic import BaseModel, Field


class CartItemAddRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    title: str
    variant_label: str | None = None
    sku: str | None = None
    image_ref: str | None = None
    unit_price: Decimal
    quantity: int = 1


class CartQuantityUpdateRequest(BaseModel):
    quantity: int


class CartTaxRateRequest(BaseModel):
    tax_rate: Decimal


class CartResponse(BaseModel):
    session_id: str
    lines: list[CartLineV1] = Field(default_factory=list)
    totals: CartTotalsV1
    tax_rate: Decimal
