from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from packages.shared.money import ZERO, round2, sum_money
from packages.shared.schemas.order_v1 import OrderSummaryMonthV1, OrderSummaryV1, OrderV1
from services.api.app.services.docstore_base import DocumentStore

logger = logging.getLogger(__name__)

ORDERS = "orders"
ORDER_ITEMS = "orderitems"

DEFAULT_PAGE_SIZE = 50
SUMMARY_MONTHS = 12


@dataclass(frozen=True, slots=True)
class OrderHistoryFilters:
    status: str | None = None
    payment_status: str | None = None
    fulfillment_status: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    search: str | None = None

    def store_where(self) -> dict[str, str]:
        where: dict[str, str] = {}
        for key, value in (
            ("status", self.status),
            ("payment_status", self.payment_status),
            ("fulfillment_status", self.fulfillment_status),
        ):
            if value and value != "all":
                where[key] = value
        return where

    @property
    def needs_client_filtering(self) -> bool:
        return bool(self.search) or self.start is not None or self.end is not None

    def accepts(self, order: OrderV1) -> bool:
        if self.search:
            needle = self.search.lower()
            haystack = [order.order_number, order.customer_name or ""]
            if not any(needle in h.lower() for h in haystack):
                return False

        created = _aware(order.created_at)
        if self.start is not None and created < _aware(self.start):
            return False
        if self.end is not None and created > _aware(self.end):
            return False
        return True


class OrderHistoryService:
    """Read side of placed orders, always scoped to the customer's email."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_orders(
        self,
        email: str,
        filters: OrderHistoryFilters | None = None,
        *,
        limit: int | None = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[OrderV1]:
        filters = filters or OrderHistoryFilters()
        where = {"customer_email": email, **filters.store_where()}

        if not filters.needs_client_filtering:
            rows = self._store.query_once(
                ORDERS,
                where=where,
                order_by="created_at",
                descending=True,
                limit=limit,
                offset=offset,
                include=(ORDER_ITEMS,),
            )
            return [order_from_record(r) for r in rows]

        # Search and date range are applied before paging so pages stay full.
        rows = self._store.query_once(
            ORDERS, where=where, order_by="created_at", descending=True, include=(ORDER_ITEMS,)
        )
        orders = [o for o in (order_from_record(r) for r in rows) if filters.accepts(o)]
        start = max(0, offset)
        return orders[start:] if limit is None else orders[start : start + limit]

    def get_order(self, email: str, order_id: str) -> OrderV1 | None:
        rows = self._store.query_once(
            ORDERS,
            where={"id": order_id, "customer_email": email},
            limit=1,
            include=(ORDER_ITEMS,),
        )
        return order_from_record(rows[0]) if rows else None

    def search_orders(self, email: str, query: str, *, limit: int | None = None) -> list[OrderV1]:
        return self.list_orders(email, OrderHistoryFilters(search=query), limit=limit)

    def recent_orders(self, email: str, *, limit: int = 5) -> list[OrderV1]:
        return self.list_orders(email, limit=limit)

    def summary(self, email: str) -> OrderSummaryV1:
        orders = self.list_orders(email, limit=None)
        if not orders:
            return OrderSummaryV1()

        total_spent = sum_money(o.total for o in orders)

        by_status: dict[str, int] = {}
        by_month: dict[str, tuple[int, Decimal]] = {}
        for order in orders:
            by_status[order.status.value] = by_status.get(order.status.value, 0) + 1
            month = _aware(order.created_at).strftime("%Y-%m")
            count, total = by_month.get(month, (0, ZERO))
            by_month[month] = (count + 1, total + order.total)

        months = [
            OrderSummaryMonthV1(month=m, count=c, total=round2(t))
            for m, (c, t) in sorted(by_month.items(), reverse=True)
        ]

        logger.info("Computed order summary orders=%d", len(orders))
        return OrderSummaryV1(
            total_orders=len(orders),
            total_spent=total_spent,
            average_order_value=round2(total_spent / len(orders)),
            last_order_date=orders[0].created_at,
            orders_by_status=by_status,
            orders_by_month=months[:SUMMARY_MONTHS],
        )


def order_from_record(record: dict[str, Any]) -> OrderV1:
    data = dict(record)
    raw_items = data.pop(ORDER_ITEMS, None) or []
    items = sorted(raw_items, key=lambda i: (i.get("position", 0), i.get("id", "")))
    return OrderV1.model_validate({**data, "line_items": items})


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
