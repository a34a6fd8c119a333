from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from packages.shared.schemas.address_v1 import DEFAULT_COUNTRY, AddressInputV1, AddressV1
from pydantic import ValidationError
from services.api.app.services.docstore_base import Delete, DocumentStore, TxOp, Upsert

logger = logging.getLogger(__name__)

ADDRESSES = "addresses"

_UPDATABLE_FIELDS = {
    "name",
    "street",
    "city",
    "state",
    "zip_code",
    "country",
    "phone",
    "is_default",
}


class AddressError(Exception):
    """Base class for address book errors."""


class AddressNotFoundError(AddressError):
    def __init__(self, address_id: str) -> None:
        super().__init__(f"Address not found: {address_id}")
        self.address_id = address_id


class InvalidAddressUpdateError(AddressError):
    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Address fields cannot be blank: {', '.join(fields)}")
        self.fields = fields


class AddressService:
    """Saved delivery addresses. At most one address per user is the default."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_addresses(self, user_id: str) -> list[AddressV1]:
        rows = self._store.query_once(ADDRESSES, where={"user_id": user_id}, order_by="created_at")
        return [AddressV1.model_validate(r) for r in rows]

    def get_address(self, address_id: str) -> AddressV1 | None:
        rows = self._store.query_once(ADDRESSES, where={"id": address_id}, limit=1)
        return AddressV1.model_validate(rows[0]) if rows else None

    def get_default_address(self, user_id: str) -> AddressV1 | None:
        rows = self._store.query_once(
            ADDRESSES, where={"user_id": user_id, "is_default": True}, limit=1
        )
        return AddressV1.model_validate(rows[0]) if rows else None

    def preferred_address(self, user_id: str) -> AddressV1 | None:
        """The default address, else the oldest one."""

        addresses = self.list_addresses(user_id)
        for address in addresses:
            if address.is_default:
                return address
        return addresses[0] if addresses else None

    def create_address(self, user_id: str, data: AddressInputV1) -> AddressV1:
        existing = self.list_addresses(user_id)
        now = _utcnow()

        address = AddressV1(
            id=uuid4().hex,
            user_id=user_id,
            name=data.name,
            street=data.street,
            city=data.city,
            state=data.state,
            zip_code=data.zip_code,
            country=data.country or DEFAULT_COUNTRY,
            phone=data.phone,
            is_default=data.is_default or not existing,
            created_at=now,
            updated_at=now,
        )

        ops: list[TxOp] = []
        if address.is_default:
            ops.extend(_unset_defaults(existing, now))
        ops.append(Upsert(ADDRESSES, address.id, _dump(address)))
        self._store.transact(ops)

        logger.info("Created address id=%s user=%s", address.id, user_id)
        return address

    def update_address(self, address_id: str, updates: dict[str, Any]) -> AddressV1:
        current = self.get_address(address_id)
        if current is None:
            raise AddressNotFoundError(address_id)

        changes = {k: v for k, v in updates.items() if k in _UPDATABLE_FIELDS}
        if "country" in changes and changes["country"] is None:
            changes["country"] = DEFAULT_COUNTRY
        if changes.get("is_default", False) is None:
            del changes["is_default"]

        blank = [
            k
            for k in ("name", "street", "city", "state", "zip_code")
            if k in changes and not str(changes[k] or "").strip()
        ]
        if blank:
            raise InvalidAddressUpdateError(blank)

        now = _utcnow()
        try:
            updated = AddressV1.model_validate(
                {**current.model_dump(), **changes, "updated_at": now}
            )
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise InvalidAddressUpdateError(fields) from e

        ops: list[TxOp] = []
        if changes.get("is_default"):
            others = [a for a in self.list_addresses(current.user_id) if a.id != address_id]
            ops.extend(_unset_defaults(others, now))
        ops.append(Upsert(ADDRESSES, address_id, _dump(updated)))
        self._store.transact(ops)

        logger.info("Updated address id=%s fields=%s", address_id, sorted(changes))
        return updated

    def delete_address(self, address_id: str) -> bool:
        if self.get_address(address_id) is None:
            return False
        self._store.transact([Delete(ADDRESSES, address_id)])
        logger.info("Deleted address id=%s", address_id)
        return True

    def set_default_address(self, address_id: str) -> AddressV1:
        return self.update_address(address_id, {"is_default": True})


def _unset_defaults(addresses: list[AddressV1], now: datetime) -> list[TxOp]:
    return [
        Upsert(ADDRESSES, a.id, {"is_default": False, "updated_at": now.isoformat()})
        for a in addresses
        if a.is_default
    ]


def _dump(address: AddressV1) -> dict[str, Any]:
    return address.model_dump(mode="json", exclude={"id"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
