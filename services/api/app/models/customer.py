from __future__ import annotations

from pydantic import BaseModel


class CustomerProfileRequest(BaseModel):
    name: str | None = None
    phone: str | None = None
    notes: str | None = None
