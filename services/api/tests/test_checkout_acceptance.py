from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

USER = "user-1"
EMAIL = "ada@example.com"


@pytest.fixture(params=["memory", "db"])
def client(request, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "storefront_checkout.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("STOREFRONT_CART_STORAGE", request.param)
    monkeypatch.setenv("STOREFRONT_DOCSTORE", request.param)
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


def _fill_cart(client: TestClient) -> None:
    for product_id, title, price, qty in (
        ("ring", "Ring", "100.00", 1),
        ("chain", "Chain", "50.00", 2),
    ):
        resp = client.post(
            "/v1/cart/items",
            json={"product_id": product_id, "title": title, "unit_price": price, "quantity": qty},
        )
        assert resp.status_code == 200, resp.text


def _save_address(client: TestClient, **overrides) -> dict:
    payload = {
        "user_id": USER,
        "name": "Ada Lovelace",
        "street": "1 Analytical Way",
        "city": "London",
        "state": "LDN",
        "zip_code": "N1",
        **overrides,
    }
    resp = client.post("/v1/addresses", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_acceptance_cart_to_order_history(client: TestClient) -> None:
    _fill_cart(client)
    address = _save_address(client)
    assert address["is_default"] is True

    resp = client.post("/v1/checkout", json={"user_id": USER, "customer_email": EMAIL})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["status"] == "PLACED"

    order = body["order"]
    assert order["subtotal"] == "200.00"
    assert order["tax_amount"] == "20.00"
    assert order["total"] == "220.00"
    assert len(order["line_items"]) == 2
    assert order["shipping_address"]["street"] == "1 Analytical Way"
    assert order["status"] == "pending"

    assert client.get("/v1/cart").json()["lines"] == []

    listed = client.get("/v1/orders", params={"email": EMAIL})
    assert listed.status_code == 200
    assert [o["id"] for o in listed.json()] == [order["id"]]

    detail = client.get(f"/v1/orders/{order['id']}", params={"email": EMAIL})
    assert detail.status_code == 200
    assert [i["title"] for i in detail.json()["line_items"]] == ["Ring", "Chain"]

    # Another customer cannot read it.
    other = client.get(f"/v1/orders/{order['id']}", params={"email": "eve@example.com"})
    assert other.status_code == 404

    summary = client.get("/v1/orders/summary", params={"email": EMAIL}).json()
    assert summary["total_orders"] == 1
    assert summary["total_spent"] == "220.00"

    customer = client.get(f"/v1/customers/{EMAIL}").json()
    assert customer["name"] == "ada"
    assert customer["total_orders"] == 1


def test_checkout_empty_cart_is_409(client: TestClient) -> None:
    _save_address(client)

    resp = client.post("/v1/checkout", json={"user_id": USER, "customer_email": EMAIL})

    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "EMPTY_CART"


def test_checkout_without_address_keeps_cart(client: TestClient) -> None:
    _fill_cart(client)

    resp = client.post("/v1/checkout", json={"user_id": USER, "customer_email": EMAIL})

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "MISSING_ADDRESS"
    assert len(client.get("/v1/cart").json()["lines"]) == 2


def test_checkout_rejects_someone_elses_address(client: TestClient) -> None:
    _fill_cart(client)
    theirs = _save_address(client, user_id="user-2")

    resp = client.post(
        "/v1/checkout",
        json={"user_id": USER, "customer_email": EMAIL, "address_id": theirs["id"]},
    )

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "MISSING_ADDRESS"


def test_order_list_filters(client: TestClient) -> None:
    _save_address(client)
    for _ in range(2):
        _fill_cart(client)
        resp = client.post("/v1/checkout", json={"user_id": USER, "customer_email": EMAIL})
        assert resp.status_code == 200

    assert len(client.get("/v1/orders", params={"email": EMAIL, "limit": 1}).json()) == 1
    assert client.get("/v1/orders", params={"email": EMAIL, "status": "shipped"}).json() == []
    assert len(client.get("/v1/orders", params={"email": EMAIL, "status": "pending"}).json()) == 2


def test_address_endpoints(client: TestClient) -> None:
    first = _save_address(client)
    second = _save_address(client, street="2 Second St")

    listed = client.get("/v1/addresses", params={"user_id": USER}).json()
    assert [a["id"] for a in listed] == [first["id"], second["id"]]

    resp = client.post(f"/v1/addresses/{second['id']}/default")
    assert resp.status_code == 200
    default = client.get("/v1/addresses/default", params={"user_id": USER}).json()
    assert default["id"] == second["id"]

    resp = client.patch(f"/v1/addresses/{first['id']}", json={"city": ""})
    assert resp.status_code == 422

    resp = client.patch(f"/v1/addresses/{first['id']}", json={"city": "Paris"})
    assert resp.json()["city"] == "Paris"

    assert client.patch("/v1/addresses/nope", json={"city": "Rome"}).status_code == 404

    assert client.delete(f"/v1/addresses/{second['id']}").json() == {"deleted": True}
    missing = client.get("/v1/addresses/default", params={"user_id": USER})
    assert missing.status_code == 404


def test_customer_profile(client: TestClient) -> None:
    assert client.get(f"/v1/customers/{EMAIL}").status_code == 404

    resp = client.put(f"/v1/customers/{EMAIL}", json={"name": "Ada Lovelace", "phone": "555-0100"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Ada Lovelace"

    resp = client.put(f"/v1/customers/{EMAIL}", json={"notes": "VIP"})
    body = resp.json()
    assert (body["name"], body["phone"], body["notes"]) == ("Ada Lovelace", "555-0100", "VIP")


def test_rejected_checkout_creates_no_customer(client: TestClient) -> None:
    resp = client.post("/v1/checkout", json={"user_id": USER, "customer_email": EMAIL})
    assert resp.status_code == 409
    assert client.get(f"/v1/customers/{EMAIL}").status_code == 404

    _fill_cart(client)
    resp = client.post("/v1/checkout", json={"user_id": USER, "customer_email": EMAIL})
    assert resp.status_code == 422
    assert client.get(f"/v1/customers/{EMAIL}").status_code == 404


def test_null_address_fields_do_not_break_checkout(client: TestClient) -> None:
    address = _save_address(client)

    resp = client.patch(
        f"/v1/addresses/{address['id']}", json={"country": None, "is_default": None}
    )
    assert resp.status_code == 200
    assert resp.json()["country"] == "United States"
    assert resp.json()["is_default"] is True

    listed = client.get("/v1/addresses", params={"user_id": USER})
    assert listed.status_code == 200
    assert [a["id"] for a in listed.json()] == [address["id"]]

    _fill_cart(client)
    resp = client.post("/v1/checkout", json={"user_id": USER, "customer_email": EMAIL})
    assert resp.status_code == 200, resp.text
    assert resp.json()["order"]["shipping_address"]["country"] == "United States"


def test_favorites(client: TestClient) -> None:
    resp = client.post(
        "/v1/favorites", json={"user_id": USER, "product_id": "ring", "product_title": "Ring"}
    )
    assert resp.status_code == 200
    ring = resp.json()

    again = client.post("/v1/favorites", json={"user_id": USER, "product_id": "ring"}).json()
    assert again["id"] == ring["id"]

    toggled = client.post("/v1/favorites/toggle", json={"user_id": USER, "product_id": "chain"})
    assert toggled.json() == {"product_id": "chain", "favorited": True}

    listed = client.get("/v1/favorites", params={"user_id": USER}).json()
    assert sorted(f["product_id"] for f in listed) == ["chain", "ring"]
    assert client.get("/v1/favorites", params={"user_id": "user-2"}).json() == []

    state = client.get("/v1/favorites/ring", params={"user_id": USER}).json()
    assert state["favorited"] is True

    resp = client.delete("/v1/favorites/ring", params={"user_id": USER})
    assert resp.json() == {"product_id": "ring", "favorited": False}
    toggled = client.post("/v1/favorites/toggle", json={"user_id": USER, "product_id": "chain"})
    assert toggled.json()["favorited"] is False
    assert client.get("/v1/favorites", params={"user_id": USER}).json() == []
