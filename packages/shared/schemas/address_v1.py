"""Shared address schemas (v1).

``AddressV1`` is the user's saved address book entry. ``ShippingAddressV1`` is the copy
embedded in a placed order; it is never updated when the saved address changes.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

DEFAULT_COUNTRY = "United States"


class AddressV1(BaseModel):
    id: str
    user_id: str
    name: str
    street: str
    city: str
    state: str
    zip_code: str
    country: str = DEFAULT_COUNTRY
    phone: str | None = None
    is_default: bool = False

    created_at: datetime
    updated_at: datetime | None = None

    def missing_fields(self) -> list[str]:
        required = {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
        }
        return [k for k, v in required.items() if not (v or "").strip()]


class ShippingAddressV1(BaseModel):
    address_id: str | None = None
    name: str
    first_name: str = ""
    last_name: str = ""
    street: str
    city: str
    state: str
    zip_code: str
    country: str = DEFAULT_COUNTRY
    phone: str | None = None

    @classmethod
    def from_address(cls, address: AddressV1) -> "ShippingAddressV1":
        parts = (address.name or "").split()
        return cls(
            address_id=address.id,
            name=address.name,
            first_name=parts[0] if parts else "",
            last_name=" ".join(parts[1:]),
            street=address.street,
            city=address.city,
            state=address.state,
            zip_code=address.zip_code,
            country=address.country or DEFAULT_COUNTRY,
            phone=address.phone,
        )


class AddressInputV1(BaseModel):
    name: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str | None = None
    phone: str | None = None
    is_default: bool = False
