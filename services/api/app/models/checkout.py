from __future__ import annotations

from packages.shared.schemas.order_v1 import OrderV1
from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    user_id: str
    customer_email: str = Field(..., min_length=1)
    customer_name: str | None = None
    customer_phone: str | None = None

    # Falls back to the user's default (or oldest) saved address.
    address_id: str | None = None


class CheckoutResponse(BaseModel):
    status: str
    order: OrderV1
