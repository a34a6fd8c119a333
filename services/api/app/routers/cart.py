from __future__ import annotations

from fastapi import APIRouter, Header, Response
from packages.shared.schemas.cart_v1 import CartItemCandidate
from services.api.app.models.cart import (
    CartItemAddRequest,
    CartQuantityUpdateRequest,
    CartResponse,
    CartTaxRateRequest,
)
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.cart_registry import get_cart_registry
from services.api.app.services.cart_store import CartError, CartStore

router = APIRouter()

DEFAULT_SESSION = "default"


def _cart(session_id: str) -> CartStore:
    return get_cart_registry().open(session_id or DEFAULT_SESSION)


def _cart_response(cart: CartStore) -> CartResponse:
    return CartResponse(
        session_id=cart.session_id or DEFAULT_SESSION,
        lines=cart.lines,
        totals=cart.totals(),
        tax_rate=cart.tax_rate,
    )


@router.get("/v1/cart", response_model=CartResponse)
def get_cart(x_cart_session: str = Header(default=DEFAULT_SESSION)) -> CartResponse:
    return _cart_response(_cart(x_cart_session))


@router.post("/v1/cart/items", response_model=CartResponse)
def add_cart_item(
    payload: CartItemAddRequest, x_cart_session: str = Header(default=DEFAULT_SESSION)
) -> CartResponse:
    cart = _cart(x_cart_session)
    try:
        cart.add_item(CartItemCandidate(**payload.model_dump()))
    except CartError as e:
        raise_http_error(e)
    return _cart_response(cart)


@router.patch("/v1/cart/items/{line_id}", response_model=CartResponse)
def update_cart_item(
    line_id: str,
    payload: CartQuantityUpdateRequest,
    x_cart_session: str = Header(default=DEFAULT_SESSION),
) -> CartResponse:
    cart = _cart(x_cart_session)
    try:
        cart.update_quantity(line_id, payload.quantity)
    except CartError as e:
        raise_http_error(e)
    return _cart_response(cart)


@router.delete("/v1/cart/items/{line_id}", response_model=CartResponse)
def remove_cart_item(
    line_id: str, x_cart_session: str = Header(default=DEFAULT_SESSION)
) -> CartResponse:
    cart = _cart(x_cart_session)
    cart.remove_item(line_id)
    return _cart_response(cart)


@router.delete("/v1/cart", status_code=204)
def clear_cart(x_cart_session: str = Header(default=DEFAULT_SESSION)) -> Response:
    _cart(x_cart_session).clear()
    return Response(status_code=204)


@router.put("/v1/cart/tax-rate", response_model=CartResponse)
def set_tax_rate(
    payload: CartTaxRateRequest, x_cart_session: str = Header(default=DEFAULT_SESSION)
) -> CartResponse:
    cart = _cart(x_cart_session)
    try:
        cart.set_tax_rate(payload.tax_rate)
    except CartError as e:
        raise_http_error(e)
    return _cart_response(cart)
