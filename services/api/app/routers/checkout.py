from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException
from packages.shared.schemas.address_v1 import AddressV1
from packages.shared.schemas.order_v1 import CustomerIdentity
from services.api.app.models.checkout import CheckoutRequest, CheckoutResponse
from services.api.app.routers.cart import DEFAULT_SESSION
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.address_service import AddressService
from services.api.app.services.cart_registry import get_cart_registry
from services.api.app.services.customer_service import CustomerService
from services.api.app.services.docstore_base import DocumentStoreError
from services.api.app.services.docstore_factory import get_document_store
from services.api.app.services.order_assembler import (
    OrderAssembler,
    OrderError,
    OrderErrorCode,
)

router = APIRouter()

_STATUS_BY_CODE = {
    OrderErrorCode.EMPTY_CART: 409,
    OrderErrorCode.MISSING_ADDRESS: 422,
    OrderErrorCode.INVALID_ADDRESS: 422,
    OrderErrorCode.PERSISTENCE_FAILURE: 502,
    OrderErrorCode.UNKNOWN: 500,
}


def _raise_order_http_error(error: OrderError) -> None:
    raise HTTPException(
        status_code=_STATUS_BY_CODE.get(error.code, 500),
        detail={"code": error.code.value, "message": error.message, **error.details},
    )


@router.post("/v1/checkout", response_model=CheckoutResponse)
def checkout(
    payload: CheckoutRequest, x_cart_session: str = Header(default=DEFAULT_SESSION)
) -> CheckoutResponse:
    store = get_document_store()
    cart = get_cart_registry().open(x_cart_session or DEFAULT_SESSION)
    customers = CustomerService(store)

    try:
        address = _resolve_address(AddressService(store), payload)
    except DocumentStoreError as e:
        raise_http_error(e)

    result = OrderAssembler(store, customers=customers).place_order(
        cart,
        address,
        CustomerIdentity(
            email=payload.customer_email,
            name=payload.customer_name,
            phone=payload.customer_phone,
        ),
    )
    if result.error is not None:
        _raise_order_http_error(result.error)

    assert result.order is not None
    return CheckoutResponse(status="PLACED", order=result.order)


def _resolve_address(addresses: AddressService, payload: CheckoutRequest) -> AddressV1 | None:
    if payload.address_id:
        address = addresses.get_address(payload.address_id)
        if address is None or address.user_id != payload.user_id:
            return None
        return address
    return addresses.preferred_address(payload.user_id)
