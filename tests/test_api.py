"""Tests for the cart API"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, AsyncMock

from api.index import app
from snackshop.auth import create_web_session
from snackshop.cart import MemoryCartStorage
from snackshop.checkout import OrderClient
from snackshop.errors import MSG_INVALID_QUANTITY, OrderSubmissionError
from snackshop.routers.deps import CartEngineFactory

HEADERS = {"X-Cart-Id": "browser-1"}


@pytest.fixture
def factory():
    """Engine factory over in-memory storage"""
    return CartEngineFactory(MemoryCartStorage())


@pytest.fixture
def client(factory):
    """Test client bound to the in-memory factory"""
    with patch("snackshop.routers.deps.get_engine_factory", return_value=factory):
        yield TestClient(app)


def _add(client, product, quantity=1, headers=HEADERS):
    return client.post("/api/cart/add", json={"product": product, "quantity": quantity}, headers=headers)


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_cart_requires_cart_id(client):
    """Test the browser cart id header is mandatory"""
    response = client.get("/api/cart")
    assert response.status_code == 422


def test_empty_cart(client):
    """Test a new browser gets an empty cart"""
    response = client.get("/api/cart", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["items"] == []
    assert data["totals"]["total"] == 0
    assert data["view"]["is_empty"] is True


def test_add_and_discount(client, sample_product):
    """Test add then apply a code through the API"""
    response = _add(client, {**sample_product, "image_url": sample_product["imageUrl"]}, 2)
    assert response.status_code == 200
    assert response.json()["totals"]["itemCount"] == 2

    response = client.post("/api/cart/discount", json={"code": "save10"}, headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["discountCode"] == "SAVE10"
    assert data["totals"]["total"] == pytest.approx(17.82)
    assert data["view"]["summary"]["total"] == "$17.82"


def test_invalid_discount_code(client, sample_product):
    """Test unknown codes are a 400"""
    _add(client, sample_product)

    response = client.post("/api/cart/discount", json={"code": "NOPE"}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid discount code."


def test_invalid_quantity(client, sample_product):
    """Test a zero quantity add is rejected"""
    response = _add(client, sample_product, 0)

    assert response.status_code == 400
    assert response.json()["detail"] == MSG_INVALID_QUANTITY


def test_update_and_remove(client, sample_product, plain_product):
    """Test quantity edits and removal"""
    _add(client, sample_product)
    _add(client, plain_product)

    response = client.patch("/api/cart/item", json={"product_id": "soda-02", "quantity": 4}, headers=HEADERS)
    assert response.json()["totals"]["itemCount"] == 5

    response = client.patch("/api/cart/item", json={"product_id": "soda-02", "quantity": 0}, headers=HEADERS)
    assert [item["id"] for item in response.json()["items"]] == ["chips-01"]

    response = client.delete("/api/cart/item", params={"product_id": "chips-01"}, headers=HEADERS)
    assert response.json()["items"] == []

    # Removing again is harmless
    response = client.delete("/api/cart/item", params={"product_id": "chips-01"}, headers=HEADERS)
    assert response.status_code == 200


def test_clear_needs_confirm(client, sample_product):
    """Test clear only happens with confirm=true"""
    _add(client, sample_product)

    response = client.post("/api/cart/clear", json={}, headers=HEADERS)
    assert response.json()["cleared"] is False
    assert len(response.json()["items"]) == 1

    response = client.post("/api/cart/clear", json={"confirm": True}, headers=HEADERS)
    assert response.json()["cleared"] is True
    assert response.json()["items"] == []


def test_carts_are_per_browser(client, sample_product):
    """Test different cart ids do not share items"""
    _add(client, sample_product)

    response = client.get("/api/cart", headers={"X-Cart-Id": "browser-2"})

    assert response.json()["items"] == []


def test_checkout_data(client, sample_product):
    """Test the checkout payload endpoint"""
    _add(client, sample_product, 3)

    response = client.get("/api/cart/checkout", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["itemCount"] == 3


def test_checkout_requires_login(client, sample_product):
    """Test anonymous checkout is a 401"""
    _add(client, sample_product)

    response = client.post("/api/cart/checkout", json={}, headers=HEADERS)

    assert response.status_code == 401


def test_checkout_empty_cart(client):
    """Test checkout of an empty cart is a 400"""
    response = client.post("/api/cart/checkout", json={}, headers=HEADERS)
    assert response.status_code == 400


def test_checkout_submits_order(client, sample_product):
    """Test a logged-in checkout posts the order"""
    token = create_web_session("user-42", "snacker")
    headers = {**HEADERS, "Authorization": f"Bearer {token}"}
    _add(client, sample_product, 2, headers=headers)

    with patch.object(OrderClient, "submit", new=AsyncMock(return_value={"id": "order-7"})) as submit:
        response = client.post("/api/cart/checkout", json={"payment_method": "cod"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["order"] == {"id": "order-7"}
    payload = submit.await_args.args[0]
    assert payload["userId"] == "user-42"
    assert payload["paymentMethod"] == "cod"


def test_checkout_order_api_down(client, sample_product):
    """Test order API failures are a 502"""
    token = create_web_session("user-42")
    headers = {**HEADERS, "Authorization": f"Bearer {token}"}
    _add(client, sample_product, headers=headers)

    with patch.object(OrderClient, "submit", new=AsyncMock(side_effect=OrderSubmissionError("down"))):
        response = client.post("/api/cart/checkout", json={}, headers=headers)

    assert response.status_code == 502


def test_checkout_unknown_payment_method(client, sample_product):
    """Test payment methods are validated before anything is submitted"""
    token = create_web_session("user-42")
    headers = {**HEADERS, "Authorization": f"Bearer {token}"}
    _add(client, sample_product, headers=headers)

    with patch.object(OrderClient, "submit", new=AsyncMock()) as submit:
        response = client.post("/api/cart/checkout", json={"payment_method": "barter"}, headers=headers)

    assert response.status_code == 422
    submit.assert_not_awaited()


def test_session_is_per_request(client, sample_product):
    """Test a logged-in request does not leak its session into the next one"""
    token = create_web_session("user-42")
    _add(client, sample_product, headers={**HEADERS, "Authorization": f"Bearer {token}"})

    with patch.object(OrderClient, "submit", new=AsyncMock()) as submit:
        response = client.post("/api/cart/checkout", json={}, headers=HEADERS)

    assert response.status_code == 401
    submit.assert_not_awaited()


# ==================== engine factory ====================

@pytest.mark.asyncio
async def test_factory_opens_fresh_engines(factory, sample_product):
    """Test each open hydrates a new engine with its own session"""
    token = create_web_session("user-1")

    first = await factory.open("browser-9", token)
    await first.add_item(sample_product, 2)
    second = await factory.open("browser-9")

    assert second is not first
    assert second.get_item_count() == 2
    assert second.storage_key == factory.storage_key("browser-9")
    assert first.session.current_user().id == "user-1"
    assert second.session.current_user() is None
