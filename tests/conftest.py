import copy
import hashlib
import hmac
import os
import threading
import time
import uuid
from collections import defaultdict
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from storefront import config
from storefront.app import app as fastapi_app
from storefront.errors import CartNotFoundError

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


# --- Store Supabase en mémoire (contraintes d'unicité comprises) ---

class _Resp:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


class _Query:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List = []
        self._limit: Optional[int] = None

    def select(self, *cols, **kwargs):
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, col, value):
        self.filters.append(lambda r: r.get(col) == value)
        return self

    def in_(self, col, values):
        self.filters.append(lambda r: r.get(col) in values)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _match(self, row) -> bool:
        return all(f(row) for f in self.filters)

    def execute(self):
        failure = self.db.failures.get((self.table_name, self.op))
        if failure is not None:
            raise failure
        with self.db.lock:
            rows = self.db.tables[self.table_name]
            if self.op == "insert":
                row = dict(self.payload)
                for col in self.db.UNIQUE.get(self.table_name, ()):
                    if row.get(col) is not None and any(r.get(col) == row[col] for r in rows):
                        raise APIError({
                            "code": "23505",
                            "message": f'duplicate key value violates unique constraint "{self.table_name}_{col}_key"',
                            "details": f"Key ({col})=({row[col]}) already exists.",
                            "hint": None,
                        })
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                return _Resp([copy.deepcopy(row)])
            matched = [r for r in rows if self._match(r)]
            if self.op == "update":
                for r in matched:
                    r.update(self.payload)
                return _Resp([copy.deepcopy(r) for r in matched])
            if self.op == "delete":
                self.db.tables[self.table_name] = [r for r in rows if not self._match(r)]
                return _Resp([copy.deepcopy(r) for r in matched])
            if self._limit is not None:
                matched = matched[: self._limit]
            return _Resp([copy.deepcopy(r) for r in matched])


class FakeSupabase:
    UNIQUE = {
        "payment_event_claims": ("idempotency_key",),
        "order_mirrors": ("payment_event_id", "payment_reference"),
    }

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.failures: Dict[tuple, Exception] = {}
        self.lock = threading.Lock()

    def table(self, name: str) -> _Query:
        return _Query(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables[name]


# --- Backend Medusa simulé ---

class FakeMedusa:
    """
    Paniers au format Medusa store API (montants en unités mineures).
    complete_cart est idempotent par panier, comme le vrai backend.
    """

    def __init__(self):
        self.carts: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.complete_calls = 0
        self.shipping_options: Dict[str, Dict[str, Any]] = {}
        self.lock = threading.Lock()

    def add_cart(self, cart_id="cart_1", items=None, shipping=None, tax_total=0, currency="usd", email="buyer@example.com"):
        items = items if items is not None else [
            {"id": "li_1", "variant_id": "variant_a", "title": "Intake kit", "quantity": 1, "unit_price": 6000},
            {"id": "li_2", "variant_id": "variant_b", "title": "Spark plugs", "quantity": 2, "unit_price": 2000},
        ]
        methods = [shipping] if shipping else []
        self.carts[cart_id] = {
            "id": cart_id,
            "currency_code": currency,
            "email": email,
            "items": items,
            "shipping_methods": methods,
            "tax_total": tax_total,
            "completed_at": None,
        }
        self._recompute(cart_id)
        return self.carts[cart_id]

    def _recompute(self, cart_id):
        cart = self.carts[cart_id]
        subtotal = sum(i["unit_price"] * i["quantity"] for i in cart["items"])
        shipping = sum(m["amount"] for m in cart["shipping_methods"])
        cart["subtotal"] = subtotal
        cart["shipping_total"] = shipping
        cart["total"] = subtotal + shipping + cart["tax_total"]

    def set_item_price(self, cart_id, line_id, unit_price):
        for item in self.carts[cart_id]["items"]:
            if item["id"] == line_id:
                item["unit_price"] = unit_price
        self._recompute(cart_id)

    def get_cart(self, cart_id):
        if cart_id not in self.carts:
            raise CartNotFoundError("Cart not found")
        return copy.deepcopy(self.carts[cart_id])

    def update_line_item(self, cart_id, line_id, quantity):
        for item in self.carts[cart_id]["items"]:
            if item["id"] == line_id:
                item["quantity"] = quantity
        self._recompute(cart_id)
        return self.get_cart(cart_id)

    def delete_line_item(self, cart_id, line_id):
        cart = self.carts[cart_id]
        cart["items"] = [i for i in cart["items"] if i["id"] != line_id]
        self._recompute(cart_id)

    def add_shipping_method(self, cart_id, option_id, data=None):
        option = self.shipping_options[option_id]
        self.carts[cart_id]["shipping_methods"] = [dict(option, shipping_option_id=option_id, id=f"sm_{option_id}")]
        self._recompute(cart_id)
        return self.get_cart(cart_id)

    def list_shipping_options(self, cart_id):
        return [dict(o, id=k) for k, o in self.shipping_options.items()]

    def complete_cart(self, cart_id, payment_reference):
        with self.lock:
            self.complete_calls += 1
            cart = self.carts[cart_id]
            if cart_id not in self.orders:
                cart["completed_at"] = "2026-01-01T00:00:00Z"
                self.orders[cart_id] = {
                    "id": f"order_{len(self.orders) + 1}",
                    "display_id": 1000 + len(self.orders) + 1,
                    "email": cart["email"],
                    "total": cart["total"],
                    "payment_reference": payment_reference,
                }
            return dict(self.orders[cart_id])

    @staticmethod
    def ups(amount=500):
        return {
            "id": "sm_ups",
            "shipping_option_id": "so_ups",
            "name": "UPS Ground",
            "amount": amount,
            "provider_id": "shippo",
            "data": {"carrier": "UPS", "service": "ground"},
        }

    @staticmethod
    def fedex(amount=900):
        return {
            "id": "sm_fedex",
            "shipping_option_id": "so_fedex",
            "name": "FedEx 2Day",
            "amount": amount,
            "data": {"carrier": "fedex"},
        }


@pytest.fixture(autouse=True)
def _test_config(monkeypatch):
    """Configuration déterministe: aucun appel réseau, pas d'attente entre retries."""
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
    monkeypatch.setattr(config, "MEDUSA_BACKEND_URL", "https://medusa.test")
    monkeypatch.setattr(config, "MEDUSA_PUBLISHABLE_KEY", "pk_test")
    monkeypatch.setattr(config, "ALLOWED_CARRIERS", ["ups", "usps"])
    monkeypatch.setattr(config, "COMMERCE_AMOUNT_SCALE", 1)
    monkeypatch.setattr(config, "RETRY_ATTEMPTS", 3)
    monkeypatch.setattr(config, "RETRY_BASE_DELAY", 0.0)
    monkeypatch.setattr(config, "RETRY_MAX_DELAY", 0.0)
    monkeypatch.setattr(config, "CLAIM_LEASE_SECONDS", 600)
    monkeypatch.setattr(config, "RESEND_API_KEY", "")
    monkeypatch.setattr(config, "ALERT_EMAIL_TO", "")
    monkeypatch.setattr(config, "BASE_URL", "https://shop.test")


@pytest.fixture(autouse=True)
def store(monkeypatch) -> FakeSupabase:
    """Remplace le client Supabase service-role dans tous les repositories."""
    db = FakeSupabase()
    for target in (
        "storefront.infra.supabase_client.get_service_supabase",
        "storefront.orders.repository.get_service_supabase",
        "storefront.quotes.repository.get_service_supabase",
        "storefront.health.service.get_service_supabase",
    ):
        monkeypatch.setattr(target, lambda: db)
    return db


@pytest.fixture()
def medusa(monkeypatch) -> FakeMedusa:
    fake = FakeMedusa()
    for name in (
        "get_cart", "update_line_item", "delete_line_item",
        "add_shipping_method", "list_shipping_options", "complete_cart",
    ):
        monkeypatch.setattr(f"storefront.commerce.repository.{name}", getattr(fake, name))
    return fake


@pytest.fixture()
def stripe_calls(monkeypatch) -> Dict[str, List[Dict[str, Any]]]:
    """Capture les appels Stripe sortants (Checkout Session, PaymentIntent)."""
    import stripe

    calls: Dict[str, List[Dict[str, Any]]] = {"sessions": [], "intents": []}

    def _create_session(**params):
        calls["sessions"].append(params)
        n = len(calls["sessions"])
        return SimpleNamespace(id=f"cs_test_{n}", url=f"https://checkout.stripe.test/c/cs_test_{n}")

    def _create_intent(**params):
        calls["intents"].append(params)
        n = len(calls["intents"])
        return SimpleNamespace(
            id=f"pi_test_{n}", client_secret=f"pi_test_{n}_secret_x",
            amount=params["amount"], currency=params["currency"],
        )

    monkeypatch.setattr(stripe.checkout.Session, "create", _create_session)
    monkeypatch.setattr(stripe.PaymentIntent, "create", _create_intent)
    return calls


def _stripe_signature(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    # Même schéma que Stripe: v1 = HMAC-SHA256(secret, "<t>.<payload>")
    ts = int(timestamp if timestamp is not None else time.time())
    digest = hmac.new(secret.encode("utf-8"), f"{ts}.".encode("utf-8") + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


@pytest.fixture()
def sign():
    """sign(payload_bytes, secret=None) -> valeur de l'en-tête Stripe-Signature."""
    def _sign(payload: bytes, secret: Optional[str] = None, timestamp: Optional[int] = None) -> str:
        return _stripe_signature(payload, secret or config.STRIPE_WEBHOOK_SECRET, timestamp)
    return _sign


def payment_event(cart_id="cart_1", amount=10500, event_id="evt_1", pi_id="pi_1", currency="usd", **metadata):
    """Événement payment_intent.succeeded tel que Stripe l'envoie."""
    meta = {"medusa_cart_id": cart_id, "carrier": "ups", "medusa_shipping_method_id": "sm_ups"}
    meta.update(metadata)
    if cart_id is None:
        meta.pop("medusa_cart_id")
    return {
        "id": event_id,
        "object": "event",
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": pi_id,
                "object": "payment_intent",
                "amount": amount,
                "amount_received": amount,
                "currency": currency,
                "metadata": meta,
            }
        },
    }


@pytest.fixture()
def make_event():
    return payment_event
