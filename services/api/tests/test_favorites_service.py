from __future__ import annotations

import pytest
from services.api.app.services.docstore_memory import InMemoryDocumentStore
from services.api.app.services.favorites_service import FavoritesService


@pytest.fixture()
def favorites() -> FavoritesService:
    return FavoritesService(InMemoryDocumentStore())


def test_add_is_idempotent(favorites: FavoritesService) -> None:
    first = favorites.add_favorite("u1", "ring", product_title="Ring")
    second = favorites.add_favorite("u1", "ring")

    assert second.id == first.id
    assert favorites.favorite_product_ids("u1") == ["ring"]
    assert favorites.is_favorited("u1", "ring")
    assert not favorites.is_favorited("u2", "ring")


def test_toggle_flips_state(favorites: FavoritesService) -> None:
    assert favorites.toggle_favorite("u1", "chain") is True
    assert favorites.is_favorited("u1", "chain")

    assert favorites.toggle_favorite("u1", "chain") is False
    assert favorites.list_favorites("u1") == []


def test_remove(favorites: FavoritesService) -> None:
    favorites.add_favorite("u1", "ring")

    assert favorites.remove_favorite("u1", "ring") is True
    assert favorites.remove_favorite("u1", "ring") is False
    assert not favorites.is_favorited("u1", "ring")


def test_list_is_per_user(favorites: FavoritesService) -> None:
    favorites.add_favorite("u1", "ring")
    favorites.add_favorite("u1", "chain")
    favorites.add_favorite("u2", "watch")

    assert sorted(favorites.favorite_product_ids("u1")) == ["chain", "ring"]
    assert favorites.favorite_product_ids("u2") == ["watch"]
