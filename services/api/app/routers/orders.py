from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException
from packages.shared.schemas.order_v1 import OrderSummaryV1, OrderV1
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.docstore_base import DocumentStoreError
from services.api.app.services.docstore_factory import get_document_store
from services.api.app.services.order_history import OrderHistoryFilters, OrderHistoryService

router = APIRouter()


@router.get("/v1/orders", response_model=list[OrderV1])
def list_orders(
    email: str,
    status: str | None = None,
    payment_status: str | None = None,
    fulfillment_status: str | None = None,
    search: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[OrderV1]:
    filters = OrderHistoryFilters(
        status=status,
        payment_status=payment_status,
        fulfillment_status=fulfillment_status,
        start=start,
        end=end,
        search=search,
    )
    try:
        return OrderHistoryService(get_document_store()).list_orders(
            email, filters, limit=min(max(1, limit), 200), offset=max(0, offset)
        )
    except DocumentStoreError as e:
        raise_http_error(e)


@router.get("/v1/orders/summary", response_model=OrderSummaryV1)
def order_summary(email: str) -> OrderSummaryV1:
    try:
        return OrderHistoryService(get_document_store()).summary(email)
    except DocumentStoreError as e:
        raise_http_error(e)


@router.get("/v1/orders/{order_id}", response_model=OrderV1)
def get_order(order_id: str, email: str) -> OrderV1:
    try:
        order = OrderHistoryService(get_document_store()).get_order(email, order_id)
    except DocumentStoreError as e:
        raise_http_error(e)

    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
