from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from packages.shared.money import Number, round2
from packages.shared.schemas.address_v1 import AddressV1, ShippingAddressV1
from packages.shared.schemas.cart_v1 import CartLineV1
from packages.shared.schemas.order_v1 import CustomerIdentity, OrderLineItemV1, OrderV1
from services.api.app.services.cart_store import CartStore
from services.api.app.services.customer_service import CustomerService
from services.api.app.services.docstore_base import (
    DocumentStore,
    DocumentStoreError,
    Link,
    TxOp,
    Upsert,
)
from services.api.app.services.order_history import ORDER_ITEMS, ORDERS
from services.api.app.services.reporting import ErrorReporter, LoggingErrorReporter
from services.api.app.services.totals import calculate_totals

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 3


class OrderErrorCode(str, Enum):
    EMPTY_CART = "EMPTY_CART"
    MISSING_ADDRESS = "MISSING_ADDRESS"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class OrderError:
    code: OrderErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PlaceOrderResult:
    order: OrderV1 | None = None
    error: OrderError | None = None

    @property
    def ok(self) -> bool:
        return self.order is not None and self.error is None


class _OrderNumberExhaustedError(DocumentStoreError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not allocate a unique order number after {attempts} attempts")


def default_order_number(now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    return f"ORD-{millis % 1_000_000:06d}-{secrets.token_hex(4).upper()}"


class OrderAssembler:
    """Turns a cart into a persisted order.

    The order header, its line items and the header->item links go to the document store
    in a single ``transact`` batch, which the store applies all-or-nothing. A first-time
    customer record rides in the same batch, so a rejected checkout writes nothing. The
    cart is cleared only after that batch succeeded; on any failure it is left as it was.

    ``place_order`` never raises. Once the batch has been handed to the store, a caller
    that gives up waiting must assume the order may exist.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        customers: CustomerService | None = None,
        error_reporter: ErrorReporter | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        order_number_factory: Callable[[datetime], str] | None = None,
    ) -> None:
        self._store = store
        self._customers = customers
        self._reporter = error_reporter or LoggingErrorReporter()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._new_id = id_factory or (lambda: uuid4().hex)
        self._new_order_number = order_number_factory or default_order_number

    def place_order(
        self,
        cart: CartStore,
        address: AddressV1 | None,
        customer: CustomerIdentity,
        *,
        shipping: Number = 0,
        discount: Number = 0,
    ) -> PlaceOrderResult:
        try:
            with cart.exclusive():
                return self._place_order(cart, address, customer, shipping, discount)
        except DocumentStoreError as e:
            self._reporter.report(e, context="checkout.persist", session_id=cart.session_id)
            return _failed(OrderErrorCode.PERSISTENCE_FAILURE, str(e))
        except Exception as e:
            self._reporter.report(e, context="checkout", session_id=cart.session_id)
            return _failed(OrderErrorCode.UNKNOWN, "Unexpected error while placing order")

    def _place_order(
        self,
        cart: CartStore,
        address: AddressV1 | None,
        customer: CustomerIdentity,
        shipping: Number,
        discount: Number,
    ) -> PlaceOrderResult:
        lines = cart.snapshot()
        if not lines:
            return _failed(OrderErrorCode.EMPTY_CART, "Cart is empty")

        if address is None:
            return _failed(OrderErrorCode.MISSING_ADDRESS, "A delivery address is required")

        missing = address.missing_fields()
        if missing:
            return _failed(
                OrderErrorCode.INVALID_ADDRESS,
                f"Address is missing: {', '.join(missing)}",
                fields=missing,
            )

        # Totals always come from the snapshot, never from the caller.
        tax_rate = cart.tax_rate
        totals = calculate_totals(lines, tax_rate, shipping, discount)

        now = self._clock()
        order_id = self._new_id()
        order_number = self._allocate_order_number(now)
        customer, customer_ops = self._resolve_customer(customer)

        shipping_address = ShippingAddressV1.from_address(address)
        order = OrderV1(
            id=order_id,
            order_number=order_number,
            customer_id=customer.customer_id,
            customer_email=customer.email,
            customer_name=customer.name or address.name,
            customer_phone=address.phone or customer.phone,
            shipping_address=shipping_address,
            billing_address=shipping_address.model_copy(deep=True),
            subtotal=totals.subtotal,
            tax_amount=totals.tax,
            shipping_amount=totals.shipping,
            discount_amount=totals.discount,
            total=totals.grand_total,
            line_items=[self._line_item(line, tax_rate) for line in lines],
            created_at=now,
        )

        self._store.transact([*customer_ops, *order_documents(order)])
        cart.clear()

        logger.info(
            "Placed order id=%s number=%s items=%d total=%s",
            order.id,
            order.order_number,
            len(order.line_items),
            order.total,
        )

        self._refresh_customer_stats(customer.email)
        return PlaceOrderResult(order=order)

    def _line_item(self, line: CartLineV1, tax_rate: Decimal) -> OrderLineItemV1:
        return OrderLineItemV1(
            id=self._new_id(),
            product_id=line.product_id,
            variant_id=line.variant_id,
            sku=line.sku,
            title=line.title,
            variant_label=line.variant_label,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
            tax_rate=tax_rate,
            tax_amount=round2(line.line_total * tax_rate),
        )

    def _allocate_order_number(self, now: datetime) -> str:
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            candidate = self._new_order_number(now)
            taken = self._store.query_once(ORDERS, where={"order_number": candidate}, limit=1)
            if not taken:
                return candidate
            logger.warning("Order number collision on %s, retrying", candidate)
        raise _OrderNumberExhaustedError(ORDER_NUMBER_ATTEMPTS)

    def _resolve_customer(
        self, customer: CustomerIdentity
    ) -> tuple[CustomerIdentity, list[TxOp]]:
        """Attach a customer record, creating it inside the order batch when new."""

        if self._customers is None or customer.customer_id is not None:
            return customer, []

        record, ops = self._customers.prepare(
            customer.email, name=customer.name, phone=customer.phone
        )
        resolved = customer.model_copy(
            update={
                "customer_id": record.id,
                "name": customer.name or record.name,
                "phone": customer.phone or record.phone,
            }
        )
        return resolved, ops

    def _refresh_customer_stats(self, email: str) -> None:
        # The order is already committed; stats are best-effort.
        if self._customers is None:
            return
        try:
            self._customers.refresh_order_stats(email)
        except Exception as e:
            self._reporter.report(e, context="checkout.customer_stats", email=email)


def order_documents(order: OrderV1) -> list[TxOp]:
    header = order.model_dump(mode="json", exclude={"id", "line_items"})
    ops: list[TxOp] = [Upsert(ORDERS, order.id, header)]

    for position, item in enumerate(order.line_items):
        data = item.model_dump(mode="json", exclude={"id"})
        data["position"] = position
        ops.append(Upsert(ORDER_ITEMS, item.id, data))

    ops.extend(Link(ORDERS, order.id, ORDER_ITEMS, item.id) for item in order.line_items)
    return ops


def _failed(code: OrderErrorCode, message: str, **details: Any) -> PlaceOrderResult:
    return PlaceOrderResult(error=OrderError(code=code, message=message, details=details))
