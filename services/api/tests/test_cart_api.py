from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "storefront_cart.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("STOREFRONT_CART_STORAGE", "db")
    monkeypatch.setenv("STOREFRONT_DOCSTORE", "memory")
    monkeypatch.setenv("STOREFRONT_TAX_RATE", "0.10")

    from services.api.app.main import app
    from services.api.app.services.cart_registry import reset_cart_registry
    from services.api.app.services.docstore_factory import reset_document_store

    reset_cart_registry()
    reset_document_store()

    with TestClient(app) as c:
        yield c

    reset_cart_registry()
    reset_document_store()


def _add(client: TestClient, product_id: str, price: str, quantity: int = 1, **extra) -> dict:
    resp = client.post(
        "/v1/cart/items",
        json={
            "product_id": product_id,
            "title": product_id.title(),
            "unit_price": price,
            "quantity": quantity,
            **extra,
        },
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_empty_cart(client: TestClient) -> None:
    resp = client.get("/v1/cart")
    assert resp.status_code == 200
    body = resp.json()
    assert body["session_id"] == "default"
    assert body["lines"] == []
    assert body["totals"]["grand_total"] == "0.00"


def test_add_merges_and_totals(client: TestClient) -> None:
    _add(client, "ring", "100.00")
    _add(client, "chain", "50.00", 1)
    body = _add(client, "chain", "50.00", 1)

    lines = [(line["product_id"], line["quantity"]) for line in body["lines"]]
    assert lines == [("ring", 1), ("chain", 2)]
    assert body["lines"][1]["line_total"] == "100.00"
    totals = body["totals"]
    assert totals["subtotal"] == "200.00"
    assert totals["tax"] == "20.00"
    assert totals["grand_total"] == "220.00"
    assert totals["item_count"] == 3


def test_update_and_remove(client: TestClient) -> None:
    line_id = _add(client, "ring", "10.00")["lines"][0]["id"]

    resp = client.patch(f"/v1/cart/items/{line_id}", json={"quantity": 3})
    assert resp.status_code == 200
    assert resp.json()["lines"][0]["quantity"] == 3

    resp = client.patch(f"/v1/cart/items/{line_id}", json={"quantity": 0})
    assert resp.status_code == 200
    assert resp.json()["lines"] == []

    # Removing twice is harmless.
    assert client.delete(f"/v1/cart/items/{line_id}").status_code == 200


def test_update_unknown_line_is_404(client: TestClient) -> None:
    resp = client.patch("/v1/cart/items/nope", json={"quantity": 2})
    assert resp.status_code == 404
    assert "nope" in resp.json()["detail"]


def test_invalid_items_are_422(client: TestClient) -> None:
    resp = client.post(
        "/v1/cart/items", json={"product_id": "ring", "title": "Ring", "unit_price": "1", "quantity": 0}
    )
    assert resp.status_code == 422

    resp = client.post(
        "/v1/cart/items", json={"product_id": "ring", "title": "Ring", "unit_price": "-1"}
    )
    assert resp.status_code == 422


def test_sessions_are_isolated(client: TestClient) -> None:
    client.post(
        "/v1/cart/items",
        headers={"X-Cart-Session": "alice"},
        json={"product_id": "ring", "title": "Ring", "unit_price": "5.00"},
    )

    assert client.get("/v1/cart").json()["lines"] == []
    alice = client.get("/v1/cart", headers={"X-Cart-Session": "alice"}).json()
    assert alice["session_id"] == "alice"
    assert len(alice["lines"]) == 1


def test_cart_survives_registry_restart(client: TestClient) -> None:
    from services.api.app.services.cart_registry import reset_cart_registry

    _add(client, "ring", "19.99", 2)
    client.put("/v1/cart/tax-rate", json={"tax_rate": "0.08"})

    reset_cart_registry()

    body = client.get("/v1/cart").json()
    assert [(line["product_id"], line["quantity"]) for line in body["lines"]] == [("ring", 2)]
    assert body["tax_rate"] == "0.08"
    assert body["totals"]["tax"] == "3.20"


def test_tax_rate_out_of_range_is_422(client: TestClient) -> None:
    resp = client.put("/v1/cart/tax-rate", json={"tax_rate": "1.5"})
    assert resp.status_code == 422


def test_clear(client: TestClient) -> None:
    _add(client, "ring", "1.00")

    assert client.delete("/v1/cart").status_code == 204
    assert client.get("/v1/cart").json()["lines"] == []


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}
