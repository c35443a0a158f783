import json

import pytest

from shop_backend.payments.errors import ProviderError


def test_widget_checkout_scenario(client, store, provider, widget_checkout):
    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 200
    assert res.json()["url"]

    payment = store.payments["cs_test_1"]
    assert payment["amount_total"] == 10000
    assert payment["currency"] == "zar"
    [order] = store.orders.values()
    assert order["status"] == "pending_payment"
    assert order["customer_email"] == "jane@example.com"

def test_booking_checkout_redirects_to_thank_you(client, provider, booking_checkout):
    res = client.post("/create-checkout-session", json=booking_checkout)

    assert res.status_code == 200
    assert provider.created[0]["success_url"] == (
        "https://shop.test/thank-you.html?bookingId=bk_42&sessionId={CHECKOUT_SESSION_ID}"
    )

def test_empty_cart_makes_no_calls(client, store, provider, mailer, widget_checkout):
    widget_checkout["cart"] = []

    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 400
    assert res.json() == {"error": "Cart is empty"}
    assert provider.calls == []
    assert store.calls == []
    assert mailer.sent == []

@pytest.mark.parametrize("field", ["customerName", "customerEmail", "customerPhone", "customerAddress"])
def test_missing_customer_field_makes_no_calls(client, store, provider, widget_checkout, field):
    widget_checkout.pop(field)

    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Missing required customer details (name, email, phone, address)"
    assert body["missing"] == [field]
    assert provider.calls == []
    assert store.calls == []

def test_invalid_item_is_rejected(client, provider, widget_checkout):
    widget_checkout["cart"][0]["quantity"] = 0

    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 400
    assert res.json()["error"] == "Invalid cart item"
    assert provider.calls == []

def test_invalid_json_body(client, provider):
    res = client.post("/create-checkout-session", content=b"{oops", headers={"content-type": "application/json"})

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid JSON body"}

def test_provider_failure_returns_structured_500(client, store, provider, widget_checkout):
    provider.create_error = RuntimeError("Stripe is unreachable")

    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 500
    body = res.json()
    assert body["error"] == "Checkout failed. Please try again."
    assert body["message"] == "Stripe is unreachable"
    assert body["type"] == "RuntimeError"
    assert set(body) == {"error", "message", "type", "code", "param"}
    assert store.orders == {}

@pytest.mark.parametrize("failing", ["upsert_customer", "upsert_payment", "insert_order", "add_event", "update_order"])
def test_store_failures_do_not_change_response(client, store, widget_checkout, failing):
    store.failing.add(failing)

    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 200
    assert res.json()["url"]

def test_email_failure_does_not_change_response(client, mailer, widget_checkout):
    mailer.ok = False

    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 200
    assert res.json()["url"]

def test_checkout_is_rate_limited_with_local_fallback(client, monkeypatch, widget_checkout):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client.app.state._rl_store = {}

    statuses = [client.post("/create-checkout-session", json=widget_checkout).status_code for _ in range(11)]

    assert statuses[:10] == [200] * 10
    assert statuses[10] == 429
    client.app.state._rl_store = {}

def test_provider_error_class_is_500():
    assert ProviderError.status_code == 500

def test_infinite_price_is_rejected_without_side_effects(client, store, provider, widget_checkout):
    raw = json.dumps(widget_checkout).replace('"price": 50', '"price": Infinity')

    res = client.post("/create-checkout-session", content=raw, headers={"content-type": "application/json"})

    assert res.status_code == 400
    assert res.json()["error"] == "Invalid cart item"
    assert provider.calls == []
    assert store.calls == []

def test_non_cart_type_error_is_generic_request_error(client, store, widget_checkout):
    widget_checkout["customerName"] = 12345

    res = client.post("/create-checkout-session", json=widget_checkout)

    assert res.status_code == 400
    assert res.json()["error"] == "Invalid checkout request"
    assert res.json()["message"].startswith("customerName")
    assert store.calls == []
