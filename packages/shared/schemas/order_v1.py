"""Shared order schema (v1).

Orders are written once at checkout and are read-only from the storefront's side.
Status transitions after ``pending`` belong to fulfillment and payment systems.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from packages.shared.money import ZERO
from packages.shared.schemas.address_v1 import ShippingAddressV1
from pydantic import BaseModel, Field


class OrderStatusV1(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class FulfillmentStatusV1(str, Enum):
    UNFULFILLED = "unfulfilled"
    PARTIAL = "partial"
    FULFILLED = "fulfilled"


class PaymentStatusV1(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class CustomerIdentity(BaseModel):
    """Who is checking out, as supplied by the identity provider."""

    email: str = Field(..., min_length=1)
    customer_id: str | None = None
    name: str | None = None
    phone: str | None = None


class OrderLineItemV1(BaseModel):
    id: str
    product_id: str
    variant_id: str | None = None
    sku: str | None = None
    title: str
    variant_label: str | None = None

    quantity: int = Field(..., ge=1)
    unit_price: Decimal
    line_total: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_amount: Decimal = ZERO
    fulfillment_status: FulfillmentStatusV1 = FulfillmentStatusV1.UNFULFILLED


class OrderV1(BaseModel):
    id: str
    order_number: str

    customer_id: str | None = None
    customer_email: str
    customer_name: str | None = None
    customer_phone: str | None = None

    shipping_address: ShippingAddressV1
    billing_address: ShippingAddressV1

    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total: Decimal

    status: OrderStatusV1 = OrderStatusV1.PENDING
    fulfillment_status: FulfillmentStatusV1 = FulfillmentStatusV1.UNFULFILLED
    payment_status: PaymentStatusV1 = PaymentStatusV1.PENDING
    currency: str = "USD"
    source: str = "storefront"

    line_items: list[OrderLineItemV1] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None


class OrderSummaryMonthV1(BaseModel):
    month: str
    count: int
    total: Decimal


class OrderSummaryV1(BaseModel):
    total_orders: int = 0
    total_spent: Decimal = ZERO
    average_order_value: Decimal = ZERO
    last_order_date: datetime | None = None
    orders_by_status: dict[str, int] = Field(default_factory=dict)
    orders_by_month: list[OrderSummaryMonthV1] = Field(default_factory=list)


class CustomerV1(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    notes: str | None = None

    total_orders: int = 0
    total_spent: Decimal = ZERO
    last_order_date: datetime | None = None

    created_at: datetime
    updated_at: datetime | None = None
