from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from packages.shared.schemas.favorite_v1 import FavoriteV1
from services.api.app.services.docstore_base import Delete, DocumentStore, Upsert

logger = logging.getLogger(__name__)

FAVORITES = "favorites"


class FavoritesService:
    """Per-user favorited products. A product appears at most once per user."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_favorites(self, user_id: str) -> list[FavoriteV1]:
        rows = self._store.query_once(
            FAVORITES, where={"user_id": user_id}, order_by="created_at", descending=True
        )
        return [FavoriteV1.model_validate(r) for r in rows]

    def favorite_product_ids(self, user_id: str) -> list[str]:
        return [f.product_id for f in self.list_favorites(user_id)]

    def get_favorite(self, user_id: str, product_id: str) -> FavoriteV1 | None:
        rows = self._store.query_once(
            FAVORITES, where={"user_id": user_id, "product_id": product_id}, limit=1
        )
        return FavoriteV1.model_validate(rows[0]) if rows else None

    def is_favorited(self, user_id: str, product_id: str) -> bool:
        return self.get_favorite(user_id, product_id) is not None

    def add_favorite(
        self, user_id: str, product_id: str, *, product_title: str | None = None
    ) -> FavoriteV1:
        existing = self.get_favorite(user_id, product_id)
        if existing is not None:
            return existing

        favorite = FavoriteV1(
            id=uuid4().hex,
            user_id=user_id,
            product_id=product_id,
            product_title=product_title,
            created_at=datetime.now(timezone.utc),
        )
        self._store.transact(
            [Upsert(FAVORITES, favorite.id, favorite.model_dump(mode="json", exclude={"id"}))]
        )
        logger.info("Added favorite user=%s product=%s", user_id, product_id)
        return favorite

    def remove_favorite(self, user_id: str, product_id: str) -> bool:
        existing = self.get_favorite(user_id, product_id)
        if existing is None:
            return False
        self._store.transact([Delete(FAVORITES, existing.id)])
        logger.info("Removed favorite user=%s product=%s", user_id, product_id)
        return True

    def toggle_favorite(
        self, user_id: str, product_id: str, *, product_title: str | None = None
    ) -> bool:
        """Flip the favorite state and return the new one."""

        if self.remove_favorite(user_id, product_id):
            return False
        self.add_favorite(user_id, product_id, product_title=product_title)
        return True
