from __future__ import annotations

from packages.shared.schemas.address_v1 import AddressInputV1
from pydantic import BaseModel


class AddressCreateRequest(AddressInputV1):
    user_id: str


class AddressUpdateRequest(BaseModel):
    name: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    phone: str | None = None
    is_default: bool | None = None


class AddressDeleteResponse(BaseModel):
    deleted: bool
