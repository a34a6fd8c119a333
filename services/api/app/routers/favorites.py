from __future__ import annotations

from fastapi import APIRouter
from packages.shared.schemas.favorite_v1 import FavoriteV1
from services.api.app.models.favorite import FavoriteRequest, FavoriteStateResponse
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.docstore_base import DocumentStoreError
from services.api.app.services.docstore_factory import get_document_store
from services.api.app.services.favorites_service import FavoritesService

router = APIRouter()


def _service() -> FavoritesService:
    return FavoritesService(get_document_store())


@router.get("/v1/favorites", response_model=list[FavoriteV1])
def list_favorites(user_id: str) -> list[FavoriteV1]:
    try:
        return _service().list_favorites(user_id)
    except DocumentStoreError as e:
        raise_http_error(e)


@router.get("/v1/favorites/{product_id}", response_model=FavoriteStateResponse)
def get_favorite_state(product_id: str, user_id: str) -> FavoriteStateResponse:
    try:
        favorited = _service().is_favorited(user_id, product_id)
    except DocumentStoreError as e:
        raise_http_error(e)
    return FavoriteStateResponse(product_id=product_id, favorited=favorited)


@router.post("/v1/favorites", response_model=FavoriteV1)
def add_favorite(payload: FavoriteRequest) -> FavoriteV1:
    try:
        return _service().add_favorite(
            payload.user_id, payload.product_id, product_title=payload.product_title
        )
    except DocumentStoreError as e:
        raise_http_error(e)


@router.post("/v1/favorites/toggle", response_model=FavoriteStateResponse)
def toggle_favorite(payload: FavoriteRequest) -> FavoriteStateResponse:
    try:
        favorited = _service().toggle_favorite(
            payload.user_id, payload.product_id, product_title=payload.product_title
        )
    except DocumentStoreError as e:
        raise_http_error(e)
    return FavoriteStateResponse(product_id=payload.product_id, favorited=favorited)


@router.delete("/v1/favorites/{product_id}", response_model=FavoriteStateResponse)
def remove_favorite(product_id: str, user_id: str) -> FavoriteStateResponse:
    try:
        _service().remove_favorite(user_id, product_id)
    except DocumentStoreError as e:
        raise_http_error(e)
    return FavoriteStateResponse(product_id=product_id, favorited=False)
