"""Integration tests for Checkout API endpoints via TestClient."""

import inspect
from datetime import UTC, datetime, timedelta

import pytest
from checkout.api import checkout_router, coupon_router, register_checkout_exception_handlers
from checkout.api.routes import create_checkout_session, preview_order
from checkout.session.session import CheckoutSession, CheckoutStatus
from checkout.tax import get_tax_provider, set_tax_provider
from checkout.tax.fake_adapter import FakeTaxProvider
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain

ITEMS = [{"product_id": "prod-001", "name": "Mug", "quantity": 2, "unit_price": 25.00}]


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(checkout_router)
    app.include_router(coupon_router)
    register_checkout_exception_handlers(app)
    return TestClient(app)


def _create_coupon(client, **overrides):
    defaults = {"code": "SAVE20", "coupon_type": "PERCENTAGE", "value": 20, "max_uses": 5}
    defaults.update(overrides)
    response = client.post("/coupons", json=defaults)
    assert response.status_code == 201
    return response.json()["coupon_id"]


def _create_session(client, **overrides):
    defaults = {"user_id": "user-001", "items": ITEMS}
    defaults.update(overrides)
    response = client.post("/checkout/sessions", json=defaults)
    assert response.status_code == 201
    return response.json()["session_id"]


class TestPreviewAPI:
    def test_preview(self, client):
        response = client.post("/checkout/preview", json={"user_id": "user-001", "items": ITEMS})
        assert response.status_code == 200
        body = response.json()
        assert body["subtotal"] == 50.00
        assert body["tax"] == 5.00
        assert body["shipping_cost"] == 10.00
        assert body["discount"] == 0.0
        assert body["total"] == 65.00
        assert body["items"][0]["product_id"] == "prod-001"

    def test_preview_ignores_unknown_coupon(self, client):
        response = client.post(
            "/checkout/preview",
            json={"user_id": "user-001", "items": ITEMS, "coupon_code": "GHOST"},
        )
        assert response.status_code == 200
        assert response.json()["discount"] == 0.0

    def test_preview_with_coupon_and_address(self, client):
        _create_coupon(client)
        response = client.post(
            "/checkout/preview",
            json={
                "user_id": "user-001",
                "items": ITEMS,
                "coupon_code": "SAVE20",
                "shipping_address": {"country": "US"},
            },
        )
        body = response.json()
        assert body["discount"] == 10.00
        assert body["shipping_cost"] == 2.00
        assert body["coupon_code"] == "SAVE20"

    def test_empty_cart_returns_400(self, client):
        response = client.post("/checkout/preview", json={"user_id": "user-001", "items": []})
        assert response.status_code == 400
        assert response.json()["error"] == "Cart is empty"

    def test_item_without_price_returns_400(self, client):
        response = client.post(
            "/checkout/preview",
            json={"user_id": "user-001", "items": [{"product_id": "p1", "quantity": 1}]},
        )
        assert response.status_code == 400

    def test_price_alias(self, client):
        response = client.post(
            "/checkout/preview",
            json={"user_id": "user-001", "items": [{"product_id": "p1", "quantity": 2, "price": 25.0}]},
        )
        assert response.json()["subtotal"] == 50.00


class TestShippingOptionsAPI:
    def test_options_with_dates(self, client):
        response = client.post(
            "/checkout/shipping-options",
            json={"address": {"country": "US", "pincode": "94105"}, "order_weight": 1},
        )
        assert response.status_code == 200
        options = response.json()["options"]
        assert [o["method"] for o in options] == ["STANDARD", "EXPRESS", "OVERNIGHT"]
        assert options[0]["cost"] == 12.00
        assert options[0]["estimated_delivery"]["earliest"] is not None

    def test_invalid_pincode_returns_400(self, client):
        response = client.post("/checkout/shipping-options", json={"address": {"country": "US", "pincode": "12"}})
        assert response.status_code == 400


class TestCheckoutSessionAPI:
    def test_create_and_read(self, client):
        session_id = _create_session(client, shipping_address={"country": "US", "pincode": "10001"})
        response = client.get(f"/checkout/sessions/{session_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == CheckoutStatus.PENDING.value
        assert body["totals"]["subtotal"] == 50.00
        assert body["shipping_address"]["pincode"] == "10001"
        assert body["items"][0]["name"] == "Mug"

    def test_unknown_session_returns_404(self, client):
        assert client.get("/checkout/sessions/missing").status_code == 404

    def test_invalid_coupon_returns_400(self, client):
        response = client.post(
            "/checkout/sessions",
            json={"user_id": "user-001", "items": ITEMS, "coupon_code": "GHOST"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Coupon not found"

    def test_complete(self, client):
        session_id = _create_session(client)
        response = client.post(f"/checkout/sessions/{session_id}/complete", json={"payment_intent_id": "pi_1"})
        assert response.status_code == 200
        assert response.json()["status"] == CheckoutStatus.COMPLETED.value
        assert response.json()["payment_intent_id"] == "pi_1"

    def test_complete_twice_returns_409(self, client):
        session_id = _create_session(client)
        client.post(f"/checkout/sessions/{session_id}/complete", json={"payment_intent_id": "pi_1"})
        response = client.post(f"/checkout/sessions/{session_id}/complete", json={"payment_intent_id": "pi_2"})
        assert response.status_code == 409

    def test_complete_lapsed_returns_410(self, client):
        session_id = _create_session(client)
        repo = current_domain.repository_for(CheckoutSession)
        session = repo.get(session_id)
        session.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        repo.add(session)

        response = client.post(f"/checkout/sessions/{session_id}/complete", json={"payment_intent_id": "pi_1"})
        assert response.status_code == 410
        assert repo.get(session_id).status == CheckoutStatus.EXPIRED.value

    def test_expire_and_fail(self, client):
        expired_id = _create_session(client)
        failed_id = _create_session(client)

        response = client.post(f"/checkout/sessions/{expired_id}/expire")
        assert response.json()["status"] == CheckoutStatus.EXPIRED.value

        response = client.post(f"/checkout/sessions/{failed_id}/fail", json={"reason": "Card declined"})
        assert response.json()["status"] == CheckoutStatus.FAILED.value

    def test_expire_is_idempotent(self, client):
        session_id = _create_session(client)
        client.post(f"/checkout/sessions/{session_id}/expire")
        response = client.post(f"/checkout/sessions/{session_id}/expire")
        assert response.status_code == 200

    def test_expire_lapsed(self, client):
        _create_session(client)
        as_of = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
        response = client.post("/checkout/sessions/expire-lapsed", json={"as_of": as_of})
        assert response.status_code == 200
        assert response.json()["expired_count"] == 1

    def test_expire_lapsed_without_body(self, client):
        assert client.post("/checkout/sessions/expire-lapsed").json() == {"expired_count": 0}

        response = client.post("/checkout/sessions/expire-lapsed", json={})
        assert response.status_code == 200
        assert response.json()["expired_count"] == 0

    def test_expire_lapsed_with_batch_size(self, client):
        for _ in range(2):
            _create_session(client)
        as_of = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
        response = client.post("/checkout/sessions/expire-lapsed", json={"as_of": as_of, "batch_size": 1})
        assert response.json()["expired_count"] == 1


class TestTaxConfigureAPI:
    def test_installs_fake_provider(self, client):
        response = client.post("/checkout/tax/configure", json={"should_succeed": True, "rate": 0.05})
        assert response.status_code == 200
        assert response.json()["provider"] == "FakeTaxProvider"
        assert get_tax_provider().rate == 0.05

    def test_forbidden_in_production(self, client, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        response = client.post("/checkout/tax/configure", json={})
        assert response.status_code == 403


class TestBlockingTaxLookup:
    def test_pricing_routes_run_in_threadpool(self):
        # Both routes may call the external tax service
        assert not inspect.iscoroutinefunction(preview_order)
        assert not inspect.iscoroutinefunction(create_checkout_session)

    def test_preview_uses_tax_provider_with_address(self, client):
        set_tax_provider(FakeTaxProvider(rate=0.05))
        response = client.post(
            "/checkout/preview",
            json={"user_id": "user-001", "items": ITEMS, "shipping_address": {"country": "US"}},
        )
        assert response.json()["tax"] == 2.50
