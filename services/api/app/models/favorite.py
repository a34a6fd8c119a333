from __future__ import annotations

from pydantic import BaseModel, Field


class FavoriteRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    product_title: str | None = None


class FavoriteStateResponse(BaseModel):
    product_id: str
    favorited: bool
