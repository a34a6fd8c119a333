from __future__ import annotations

from fastapi import APIRouter, HTTPException
from packages.shared.schemas.address_v1 import AddressInputV1, AddressV1
from services.api.app.models.address import (
    AddressCreateRequest,
    AddressDeleteResponse,
    AddressUpdateRequest,
)
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.address_service import AddressError, AddressService
from services.api.app.services.docstore_base import DocumentStoreError
from services.api.app.services.docstore_factory import get_document_store

router = APIRouter()


def _service() -> AddressService:
    return AddressService(get_document_store())


@router.get("/v1/addresses", response_model=list[AddressV1])
def list_addresses(user_id: str) -> list[AddressV1]:
    try:
        return _service().list_addresses(user_id)
    except DocumentStoreError as e:
        raise_http_error(e)


@router.post("/v1/addresses", response_model=AddressV1)
def create_address(payload: AddressCreateRequest) -> AddressV1:
    data = AddressInputV1.model_validate(payload.model_dump(exclude={"user_id"}))
    try:
        return _service().create_address(payload.user_id, data)
    except DocumentStoreError as e:
        raise_http_error(e)


@router.get("/v1/addresses/default", response_model=AddressV1)
def get_default_address(user_id: str) -> AddressV1:
    try:
        address = _service().get_default_address(user_id)
    except DocumentStoreError as e:
        raise_http_error(e)

    if address is None:
        raise HTTPException(status_code=404, detail="No default address")
    return address


@router.patch("/v1/addresses/{address_id}", response_model=AddressV1)
def update_address(address_id: str, payload: AddressUpdateRequest) -> AddressV1:
    try:
        return _service().update_address(address_id, payload.model_dump(exclude_unset=True))
    except (AddressError, DocumentStoreError) as e:
        raise_http_error(e)


@router.delete("/v1/addresses/{address_id}", response_model=AddressDeleteResponse)
def delete_address(address_id: str) -> AddressDeleteResponse:
    try:
        return AddressDeleteResponse(deleted=_service().delete_address(address_id))
    except DocumentStoreError as e:
        raise_http_error(e)


@router.post("/v1/addresses/{address_id}/default", response_model=AddressV1)
def set_default_address(address_id: str) -> AddressV1:
    try:
        return _service().set_default_address(address_id)
    except (AddressError, DocumentStoreError) as e:
        raise_http_error(e)
