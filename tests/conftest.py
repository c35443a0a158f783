import copy
import json
import os
from dataclasses import replace
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

# Avant l'import de l'app: pas de Redis en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from shop_backend.app import app as fastapi_app
from shop_backend.config import Settings, get_settings
from shop_backend.notifications.service import NotificationResult
from shop_backend.payments.errors import WebhookPayloadError, WebhookSignatureError
from shop_backend.payments.provider import CheckoutSession, PaymentProvider, ProviderSession, get_payment_provider

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


VALID_SIGNATURE = "t=1,v1=valid"


class FakeStore:
    """
    Stockage en mémoire substitué aux fonctions des repositories.
    - calls: noms des fonctions appelées (dans l'ordre)
    - failing: noms des fonctions qui lèvent RuntimeError (injection de panne)
    """

    def __init__(self):
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.bookings: Dict[str, Dict[str, Any]] = {}
        self.events: List[Dict[str, Any]] = []
        self.calls: List[str] = []
        self.failing = set()

    def _hit(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise RuntimeError(f"{name} failed")

    # customers
    def upsert_customer(self, *, email, name, phone):
        self._hit("upsert_customer")
        customer_id = (email or "").strip().lower()
        if not customer_id:
            return None
        row = self.customers.setdefault(customer_id, {"id": customer_id, "phones": [phone], "emails": [customer_id]})
        row["name"] = name
        return customer_id

    # payments / bookings
    def get_payment(self, session_id):
        self._hit("get_payment")
        return copy.deepcopy(self.payments.get(session_id))

    def upsert_payment(self, session_id, fields):
        self._hit("upsert_payment")
        self.payments.setdefault(session_id, {"session_id": session_id}).update(fields)

    def get_booking(self, booking_id):
        self._hit("get_booking")
        return copy.deepcopy(self.bookings.get(str(booking_id)))

    def upsert_booking(self, booking_id, fields):
        self._hit("upsert_booking")
        self.bookings.setdefault(str(booking_id), {"id": str(booking_id)}).update(fields)

    # orders
    def insert_order(self, fields):
        self._hit("insert_order")
        order_id = f"order-{len(self.orders) + 1}"
        self.orders[order_id] = {"id": order_id, **fields}
        return order_id

    def update_order(self, order_id, fields):
        self._hit("update_order")
        if order_id in self.orders:
            self.orders[order_id].update(fields)

    def get_order(self, order_id):
        self._hit("get_order")
        return copy.deepcopy(self.orders.get(order_id))

    def get_order_by_session(self, session_id):
        self._hit("get_order_by_session")
        for order in self.orders.values():
            if order.get("session_id") == session_id:
                return copy.deepcopy(order)
        return None

    def list_recent_orders(self, limit=10):
        self._hit("list_recent_orders")
        rows = sorted(self.orders.values(), key=lambda o: o.get("created_at") or "", reverse=True)
        return copy.deepcopy(rows[:limit])

    def list_orders_since(self, since):
        self._hit("list_orders_since")
        return [copy.deepcopy(o) for o in self.orders.values() if (o.get("created_at") or "") >= since.isoformat()]

    # events
    def add_event(self, parent_type, parent_id, event_type, payload=None):
        self._hit("add_event")
        self.events.append({"parent_type": parent_type, "parent_id": str(parent_id), "type": event_type, "payload": payload})

    def list_events(self, parent_type, parent_id):
        self._hit("list_events")
        return [e for e in self.events if e["parent_type"] == parent_type and e["parent_id"] == str(parent_id)]

    def events_of(self, parent_id, event_type=None) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["parent_id"] == str(parent_id) and (event_type is None or e["type"] == event_type)]

    def install(self, monkeypatch) -> "FakeStore":
        patches = {
            "shop_backend.customers.repository": ["upsert_customer"],
            "shop_backend.payments.repository": ["get_payment", "upsert_payment", "get_booking", "upsert_booking"],
            "shop_backend.orders.repository": [
                "insert_order", "update_order", "get_order", "get_order_by_session",
                "list_recent_orders", "list_orders_since",
            ],
            "shop_backend.events.repository": ["add_event", "list_events"],
        }
        for module, names in patches.items():
            for name in names:
                monkeypatch.setattr(f"{module}.{name}", getattr(self, name))
        return self


class FakeProvider(PaymentProvider):
    """Fournisseur de paiement simulé: sessions en mémoire, signature 'valide' fixe."""

    name = "fake"

    def __init__(self):
        self.created: List[Dict[str, Any]] = []
        self.sessions: List[ProviderSession] = []
        self.create_error: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.calls: List[str] = []

    def create_checkout(self, *, line_items, success_url, cancel_url, metadata, customer_email=None):
        self.calls.append("create_checkout")
        if self.create_error is not None:
            raise self.create_error
        self.created.append({
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "customer_email": customer_email,
        })
        session_id = f"cs_test_{len(self.created)}"
        return CheckoutSession(session_id=session_id, url=f"https://checkout.test/pay/{session_id}")

    def construct_webhook_event(self, payload, signature, secret):
        self.calls.append("construct_webhook_event")
        if secret and signature != VALID_SIGNATURE:
            raise WebhookSignatureError()
        try:
            event = json.loads(payload)
        except ValueError as e:
            raise WebhookPayloadError(message=str(e))
        if not isinstance(event, dict):
            raise WebhookPayloadError(message="event must be a JSON object")
        return event

    def list_sessions(self, *, since, max_pages=3):
        self.calls.append("list_sessions")
        if self.list_error is not None:
            raise self.list_error
        return [s for s in self.sessions if s.created >= since]

    def latest_session(self):
        self.calls.append("latest_session")
        if self.list_error is not None:
            raise self.list_error
        return max(self.sessions, key=lambda s: s.created) if self.sessions else None


class FakeMailer:
    """Remplace les deux envois du service de notifications (client, opérations)."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.ok = True

    async def send_customer_confirmation(self, req, *, settings, origin=""):
        self.sent.append({"audience": "customer", "to": req.customer_email})
        return NotificationResult(self.ok, "emailjs" if self.ok else None)

    async def send_internal_notification(self, req, *, settings, origin=""):
        self.sent.append({"audience": "admin", "to": settings.order_notify_email})
        return NotificationResult(self.ok, "emailjs" if self.ok else None)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test_123",
        currency="zar",
        base_url="https://shop.test",
        order_notify_email="ops@shop.test",
        provider_timeout=2.0,
        notify_timeout=2.0,
    )

@pytest.fixture
def unsigned_settings(settings) -> Settings:
    return replace(settings, stripe_webhook_secret="", stripe_webhook_allow_unsigned=True)

@pytest.fixture
def store(monkeypatch) -> FakeStore:
    return FakeStore().install(monkeypatch)

@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()

@pytest.fixture
def mailer(monkeypatch) -> FakeMailer:
    fake = FakeMailer()
    monkeypatch.setattr("shop_backend.notifications.service.send_customer_confirmation", fake.send_customer_confirmation)
    monkeypatch.setattr("shop_backend.notifications.service.send_internal_notification", fake.send_internal_notification)
    return fake

@pytest.fixture(autouse=True)
def _no_local_rate_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app, settings, provider, store, mailer) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_payment_provider] = lambda: provider
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()

@pytest.fixture
def widget_checkout() -> Dict[str, Any]:
    return {
        "cart": [{"name": "Widget", "price": 50, "quantity": 2}],
        "customerName": "Jane Doe",
        "customerEmail": "jane@example.com",
        "customerPhone": "0820000000",
        "customerAddress": "1 Main St",
    }

@pytest.fixture
def booking_checkout() -> Dict[str, Any]:
    return {
        "cart": [{"name": "Booking: Irrigation Repair", "description": "On-site visit", "price": 450, "quantity": 1}],
        "customerName": "Sam Green",
        "customerEmail": "Sam@Example.com ",
        "customerPhone": 27821234567,
        "customerAddress": "22 Garden Rd",
        "bookingId": "bk_42",
        "bookingDateTime": "2025-10-01T09:00",
        "bookingHours": 2,
        "bookingEmergency": True,
        "bookingMessage": "Leak near the gate",
    }
