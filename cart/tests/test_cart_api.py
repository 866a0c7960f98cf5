from decimal import Decimal

import pytest
from catalog.tests.factories import ProductFactory
from rest_framework.test import APIClient
from users.tests.factories import UserFactory

SESSION = "sess-api-1"


def _auth_client(user=None):
    client = APIClient()
    client.force_authenticate(user=user or UserFactory())
    return client


@pytest.mark.django_db
def test_cart_requires_session_header_for_anonymous_callers():
    client = APIClient()

    for method, url in (
        ("get", "/api/v1/cart/"),
        ("get", "/api/v1/cart/count/"),
        ("post", "/api/v1/cart/items/"),
        ("post", "/api/v1/cart/clear/"),
        ("post", "/api/v1/cart/checkout/"),
    ):
        resp = getattr(client, method)(url, {}, format="json")
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Missing X-Session-Id."}


@pytest.mark.django_db
def test_guest_cart_endpoints_add_update_delete_clear():
    product = ProductFactory(price=Decimal("20.00"), stock=5)
    client = APIClient()

    r_detail = client.get("/api/v1/cart/", HTTP_X_SESSION_ID=SESSION)
    assert r_detail.status_code == 200
    assert r_detail.json()["items"] == []
    assert r_detail.json()["subtotal"] == "0.00"
    assert r_detail.json()["owner"] == f"session:{SESSION}"

    r_add = client.post(
        "/api/v1/cart/items/",
        {"product_id": product.id, "quantity": 2},
        format="json",
        HTTP_X_SESSION_ID=SESSION,
    )
    assert r_add.status_code == 201
    assert r_add.json()["adjusted"] is False
    item_id = r_add.json()["id"]

    r_upd = client.patch(
        f"/api/v1/cart/items/{item_id}/",
        {"quantity": 3},
        format="json",
        HTTP_X_SESSION_ID=SESSION,
    )
    assert r_upd.status_code == 200
    assert r_upd.json()["id"] == item_id
    assert r_upd.json()["quantity"] == 3

    body = client.get("/api/v1/cart/", HTTP_X_SESSION_ID=SESSION).json()
    assert body["count"] == 3
    assert Decimal(body["subtotal"]) == Decimal("60.00")
    assert Decimal(body["shipping"]) == Decimal("0.00")
    assert Decimal(body["tax"]) == Decimal("5.10")

    assert client.get("/api/v1/cart/count/", HTTP_X_SESSION_ID=SESSION).json() == {"count": 3}

    r_del = client.delete(f"/api/v1/cart/items/{item_id}/", HTTP_X_SESSION_ID=SESSION)
    assert r_del.status_code == 204

    r_clear = client.post("/api/v1/cart/clear/", HTTP_X_SESSION_ID=SESSION)
    assert r_clear.status_code == 200
    assert r_clear.json()["items"] == []


@pytest.mark.django_db
def test_add_item_reports_clamping_warning():
    product = ProductFactory(stock=2)
    client = _auth_client()

    resp = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 5}, format="json")

    assert resp.status_code == 201
    assert resp.json()["quantity"] == 2
    assert resp.json()["adjusted"] is True
    assert resp.json()["warning"] == "Quantity adjusted to available stock"


@pytest.mark.django_db
def test_add_item_error_mapping():
    sold_out = ProductFactory(stock=0)
    client = _auth_client()

    r_missing = client.post("/api/v1/cart/items/", {"product_id": 987654, "quantity": 1}, format="json")
    assert r_missing.status_code == 404
    assert r_missing.json()["code"] == "not_found"

    r_stock = client.post("/api/v1/cart/items/", {"product_id": sold_out.id, "quantity": 1}, format="json")
    assert r_stock.status_code == 409
    assert r_stock.json()["code"] == "insufficient_stock"
    assert r_stock.json()["available"] == 0

    r_qty = client.post("/api/v1/cart/items/", {"product_id": sold_out.id, "quantity": 0}, format="json")
    assert r_qty.status_code == 400


@pytest.mark.django_db
def test_update_item_above_stock_returns_conflict():
    product = ProductFactory(stock=3)
    client = _auth_client()
    item_id = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 1}, format="json").json()["id"]

    resp = client.patch(f"/api/v1/cart/items/{item_id}/", {"quantity": 4}, format="json")

    assert resp.status_code == 409
    assert resp.json()["requested"] == 4


@pytest.mark.django_db
def test_update_unknown_item_returns_not_found():
    client = _auth_client()

    resp = client.patch("/api/v1/cart/items/nope/", {"quantity": 1}, format="json")

    assert resp.status_code == 404


@pytest.mark.django_db
def test_users_cannot_touch_each_others_lines():
    product = ProductFactory(stock=5)
    owner_client = _auth_client()
    item_id = owner_client.post(
        "/api/v1/cart/items/", {"product_id": product.id, "quantity": 1}, format="json"
    ).json()["id"]
    other = _auth_client()

    assert other.patch(f"/api/v1/cart/items/{item_id}/", {"quantity": 2}, format="json").status_code == 404
    assert other.delete(f"/api/v1/cart/items/{item_id}/").status_code == 204
    assert owner_client.get("/api/v1/cart/count/").json() == {"count": 1}


@pytest.mark.django_db
def test_promo_endpoint_applies_and_rejects_codes():
    product = ProductFactory(price=Decimal("20.00"), stock=5)
    client = _auth_client()
    client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 3}, format="json")

    r_bad = client.post("/api/v1/cart/promo/", {"code": "NOPE"}, format="json")
    assert r_bad.status_code == 400
    assert r_bad.json()["fields"] == ["code"]

    r_ok = client.post("/api/v1/cart/promo/", {"code": "WELCOME10"}, format="json")
    assert r_ok.status_code == 200
    assert r_ok.json()["discount"] == "6.00"
    assert r_ok.json()["total"] == "59.10"


@pytest.mark.django_db
def test_promo_on_empty_cart_returns_empty_cart_error():
    client = _auth_client()

    resp = client.post("/api/v1/cart/promo/", {"code": "WELCOME10"}, format="json")

    assert resp.status_code == 400
    assert resp.json()["code"] == "empty_cart"


@pytest.mark.django_db
def test_validate_endpoint_reports_removed_lines():
    product = ProductFactory(stock=5)
    client = _auth_client()
    item_id = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json").json()[
        "id"
    ]
    product.stock = 0
    product.save(update_fields=["stock", "updated_at"])

    resp = client.post("/api/v1/cart/validate/")

    assert resp.status_code == 200
    assert resp.json()["removed"] == [item_id]
    assert resp.json()["cart"]["items"] == []


@pytest.mark.django_db
def test_merge_guest_endpoint_requires_auth_and_header():
    product = ProductFactory(stock=2)
    guest = APIClient()
    guest.post(
        "/api/v1/cart/items/",
        {"product_id": product.id, "quantity": 2},
        format="json",
        HTTP_X_SESSION_ID="sess-merge-api",
    )

    assert guest.post("/api/v1/cart/merge-guest/", HTTP_X_SESSION_ID="sess-merge-api").status_code in (401, 403)

    client = _auth_client()
    client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 1}, format="json")
    assert client.post("/api/v1/cart/merge-guest/").status_code == 400

    resp = client.post("/api/v1/cart/merge-guest/", HTTP_X_SESSION_ID="sess-merge-api")
    assert resp.status_code == 200
    assert resp.json()["count"] == 2

    leftover = guest.get("/api/v1/cart/", HTTP_X_SESSION_ID="sess-merge-api").json()
    assert leftover["items"] == []
