from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class FavoriteV1(BaseModel):
    id: str
    user_id: str
    product_id: str = Field(..., min_length=1)
    product_title: str | None = None
    created_at: datetime
