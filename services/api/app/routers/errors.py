from __future__ import annotations

from fastapi import HTTPException
from services.api.app.services.address_service import (
    AddressError,
    AddressNotFoundError,
    InvalidAddressUpdateError,
)
from services.api.app.services.cart_store import (
    CartError,
    InvalidCartItemError,
    InvalidQuantityError,
    InvalidTaxRateError,
    LineNotFoundError,
)
from services.api.app.services.customer_service import CustomerNotFoundError
from services.api.app.services.docstore_base import DocumentStoreError


def raise_http_error(e: Exception) -> None:
    if isinstance(e, LineNotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, (InvalidQuantityError, InvalidCartItemError, InvalidTaxRateError)):
        raise HTTPException(status_code=422, detail=str(e)) from e

    if isinstance(e, CartError):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, (AddressNotFoundError, CustomerNotFoundError)):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, InvalidAddressUpdateError):
        raise HTTPException(status_code=422, detail=str(e)) from e

    if isinstance(e, AddressError):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, DocumentStoreError):
        raise HTTPException(status_code=502, detail=str(e)) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e
