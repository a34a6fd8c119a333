from pathlib import Path

import pytest
from services.api.app.services.docstore_base import (
    DanglingLinkError,
    Delete,
    DocumentStoreError,
    Link,
    Upsert,
)
from services.api.app.services.docstore_factory import get_document_store, reset_document_store
from services.api.app.services.docstore_memory import InMemoryDocumentStore


@pytest.fixture(params=["memory", "db"])
def store(request, tmp_path: Path, monkeypatch):
    if request.param == "memory":
        return InMemoryDocumentStore()

    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'docs.db'}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")

    from services.api.app.db.init_db import init_db
    from services.api.app.services.docstore_sql import SqlDocumentStore

    init_db()
    return SqlDocumentStore()


def _seed_orders(store) -> None:
    store.transact(
        [
            Upsert("orders", "o1", {"email": "a@x.com", "created_at": "2026-01-03T00:00:00"}),
            Upsert("orders", "o2", {"email": "a@x.com", "created_at": "2026-01-01T00:00:00"}),
            Upsert("orders", "o3", {"email": "b@x.com", "created_at": "2026-01-02T00:00:00"}),
        ]
    )


def test_upsert_creates_and_merges(store) -> None:
    store.transact([Upsert("orders", "o1", {"status": "pending", "total": "10.00"})])
    store.transact([Upsert("orders", "o1", {"status": "confirmed"})])

    rows = store.query_once("orders")
    assert rows == [{"id": "o1", "status": "confirmed", "total": "10.00"}]


def test_where_order_and_paging(store) -> None:
    _seed_orders(store)

    mine = store.query_once("orders", where={"email": "a@x.com"}, order_by="created_at")
    assert [r["id"] for r in mine] == ["o2", "o1"]

    newest = store.query_once("orders", order_by="created_at", descending=True, limit=2)
    assert [r["id"] for r in newest] == ["o1", "o3"]

    page = store.query_once("orders", order_by="created_at", limit=2, offset=2)
    assert [r["id"] for r in page] == ["o1"]


def test_include_returns_linked_documents(store) -> None:
    store.transact(
        [
            Upsert("orders", "o1", {"total": "3.00"}),
            Upsert("orderitems", "i1", {"title": "Ring"}),
            Upsert("orderitems", "i2", {"title": "Chain"}),
            Link("orders", "o1", "orderitems", "i1"),
            Link("orders", "o1", "orderitems", "i2"),
        ]
    )

    [order] = store.query_once("orders", include=["orderitems"])
    assert sorted(i["title"] for i in order["orderitems"]) == ["Chain", "Ring"]

    [plain] = store.query_once("orders")
    assert "orderitems" not in plain


def test_dangling_link_rejects_whole_batch(store) -> None:
    with pytest.raises(DanglingLinkError):
        store.transact(
            [
                Upsert("orders", "o1", {"total": "3.00"}),
                Upsert("orderitems", "i1", {"title": "Ring"}),
                Link("orders", "o1", "orderitems", "i1"),
                Link("orders", "o1", "orderitems", "missing"),
            ]
        )

    assert store.query_once("orders") == []
    assert store.query_once("orderitems") == []


def test_dangling_link_is_a_document_store_error(store) -> None:
    with pytest.raises(DocumentStoreError):
        store.transact([Link("orders", "ghost", "orderitems", "ghost")])


def test_delete_removes_document_and_links(store) -> None:
    store.transact(
        [
            Upsert("orders", "o1", {}),
            Upsert("orderitems", "i1", {"title": "Ring"}),
            Link("orders", "o1", "orderitems", "i1"),
        ]
    )

    store.transact([Delete("orderitems", "i1")])

    [order] = store.query_once("orders", include=["orderitems"])
    assert order["orderitems"] == []
    assert store.query_once("orderitems") == []


def test_factory_caches_per_backend(monkeypatch) -> None:
    reset_document_store()
    monkeypatch.setenv("STOREFRONT_DOCSTORE", "memory")

    first = get_document_store()
    assert get_document_store() is first

    reset_document_store()
    assert get_document_store() is not first


def test_factory_rejects_unknown_backend(monkeypatch) -> None:
    reset_document_store()
    monkeypatch.setenv("STOREFRONT_DOCSTORE", "mongo")
    with pytest.raises(ValueError, match="STOREFRONT_DOCSTORE"):
        get_document_store()


def test_where_matches_typed_values(store) -> None:
    store.transact(
        [
            Upsert("addresses", "a1", {"user_id": "u1", "is_default": True, "rank": 1}),
            Upsert("addresses", "a2", {"user_id": "u1", "is_default": False, "rank": 2}),
            Upsert("addresses", "a3", {"user_id": "u2", "is_default": True, "rank": 1}),
        ]
    )

    defaults = store.query_once("addresses", where={"user_id": "u1", "is_default": True})
    assert [r["id"] for r in defaults] == ["a1"]
    assert [r["id"] for r in store.query_once("addresses", where={"rank": 2})] == ["a2"]
    assert [r["id"] for r in store.query_once("addresses", where={"id": "a3"})] == ["a3"]
    assert store.query_once("addresses", where={"user_id": "u9"}) == []


def test_unordered_paging(store) -> None:
    store.transact([Upsert("orders", f"o{i}", {"email": "a@x.com"}) for i in range(5)])

    first = store.query_once("orders", where={"email": "a@x.com"}, limit=2)
    rest = store.query_once("orders", where={"email": "a@x.com"}, limit=10, offset=2)

    assert len(first) == 2
    assert len(rest) == 3
    assert {r["id"] for r in first} | {r["id"] for r in rest} == {f"o{i}" for i in range(5)}


def test_timestamps_order_as_instants(store) -> None:
    store.transact(
        [
            Upsert("orders", "whole", {"created_at": "2026-01-01T00:00:00Z"}),
            Upsert("orders", "half", {"created_at": "2026-01-01T00:00:00.500000Z"}),
            Upsert("orders", "earlier", {"created_at": "2025-12-31T23:59:59.900000+00:00"}),
        ]
    )

    newest = store.query_once("orders", order_by="created_at", descending=True)

    assert [r["id"] for r in newest] == ["half", "whole", "earlier"]
