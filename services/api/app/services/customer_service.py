from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

from packages.shared.money import ZERO, sum_money
from packages.shared.schemas.order_v1 import CustomerV1
from services.api.app.services.docstore_base import DocumentStore, TxOp, Upsert

logger = logging.getLogger(__name__)

CUSTOMERS = "customers"
ORDERS = "orders"

_PROFILE_FIELDS = {"name", "phone", "notes"}


class CustomerNotFoundError(Exception):
    def __init__(self, customer_id: str) -> None:
        super().__init__(f"Customer not found: {customer_id}")
        self.customer_id = customer_id


@dataclass(frozen=True, slots=True)
class CustomerOrderStats:
    total_orders: int = 0
    total_spent: Decimal = ZERO
    last_order_date: datetime | None = None
    recent_order_ids: list[str] = field(default_factory=list)


class CustomerService:
    """Customer records keyed by email, linked to the signed-in user at checkout."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def find_by_email(self, email: str) -> CustomerV1 | None:
        rows = self._store.query_once(CUSTOMERS, where={"email": email}, limit=1)
        return CustomerV1.model_validate(rows[0]) if rows else None

    def get_customer(self, customer_id: str) -> CustomerV1 | None:
        rows = self._store.query_once(CUSTOMERS, where={"id": customer_id}, limit=1)
        return CustomerV1.model_validate(rows[0]) if rows else None

    def find_or_create(
        self, email: str, *, name: str | None = None, phone: str | None = None
    ) -> CustomerV1:
        customer, ops = self.prepare(email, name=name, phone=phone)
        if ops:
            self._store.transact(ops)
            logger.info("Created customer id=%s", customer.id)
        return customer

    def prepare(
        self, email: str, *, name: str | None = None, phone: str | None = None
    ) -> tuple[CustomerV1, list[TxOp]]:
        """Return the customer for ``email`` and the ops that would create it.

        The ops list is empty when the customer already exists. Callers fold the ops into
        their own batch so the record is only written if that batch commits.
        """

        existing = self.find_by_email(email)
        if existing is not None:
            return existing, []

        customer = CustomerV1(
            id=uuid4().hex,
            # Email prefix until the user fills in a profile name.
            name=(name or "").strip() or email.split("@")[0],
            email=email,
            phone=phone,
            created_at=_utcnow(),
        )
        return customer, [Upsert(CUSTOMERS, customer.id, _dump(customer))]

    def update_profile(self, customer_id: str, updates: dict[str, Any]) -> CustomerV1:
        current = self.get_customer(customer_id)
        if current is None:
            raise CustomerNotFoundError(customer_id)

        changes = {k: v for k, v in updates.items() if k in _PROFILE_FIELDS and v is not None}
        updated = current.model_copy(update={**changes, "updated_at": _utcnow()})
        self._store.transact([Upsert(CUSTOMERS, customer_id, _dump(updated))])
        return updated

    def order_stats(self, email: str) -> CustomerOrderStats:
        rows = self._store.query_once(
            ORDERS, where={"customer_email": email}, order_by="created_at", descending=True
        )
        if not rows:
            return CustomerOrderStats()

        last = rows[0].get("created_at")
        return CustomerOrderStats(
            total_orders=len(rows),
            total_spent=sum_money(Decimal(str(r.get("total") or 0)) for r in rows),
            last_order_date=datetime.fromisoformat(last.replace("Z", "+00:00")) if last else None,
            recent_order_ids=[r["id"] for r in rows[:5]],
        )

    def refresh_order_stats(self, email: str) -> CustomerV1 | None:
        customer = self.find_by_email(email)
        if customer is None:
            return None

        stats = self.order_stats(email)
        updated = customer.model_copy(
            update={
                "total_orders": stats.total_orders,
                "total_spent": stats.total_spent,
                "last_order_date": stats.last_order_date,
                "updated_at": _utcnow(),
            }
        )
        self._store.transact([Upsert(CUSTOMERS, customer.id, _dump(updated))])
        logger.info(
            "Updated customer order stats id=%s orders=%d spent=%s",
            customer.id,
            stats.total_orders,
            stats.total_spent,
        )
        return updated


def _dump(customer: CustomerV1) -> dict[str, Any]:
    return customer.model_dump(mode="json", exclude={"id"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
