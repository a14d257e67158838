import os

# Pas de Redis pendant les tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import copy
import json
import threading
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from clubsphere.app_setup.factory import create_app
from clubsphere.errors import InvalidSessionError, ValidationError
from clubsphere.infra.supabase_client import get_store
from clubsphere.payments.dependencies import get_payment_provider
from clubsphere.payments.ledger import EntitlementLedger
from clubsphere.payments.metadata import make_metadata
from clubsphere.payments.service import CheckoutInitiator, PaymentConfirmationResolver

CLUB_ID = "7b0c9a52-3f1e-4d5a-9c1b-2a6f0e4d8c11"
FREE_CLUB_ID = "c3e5a1f0-8d2b-4c6e-b7a9-1f2e3d4c5b60"
PENDING_CLUB_ID = "e9d8c7b6-a5f4-4e3d-8c2b-1a0f9e8d7c6b"
EVENT_ID = "4a6b8c0d-2e4f-4a1b-9c3d-5e7f9a1b3c5d"
FREE_EVENT_ID = "9f8e7d6c-5b4a-4c3d-8e2f-1a0b9c8d7e6f"
PAST_EVENT_ID = "1b2c3d4e-5f6a-4b7c-8d9e-0f1a2b3c4d5e"

MEMBER_EMAIL = "member@example.com"
OTHER_EMAIL = "other@example.com"
ADMIN_EMAIL = "admin@example.com"

FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


# --- Faux client Supabase (tables en mémoire + index uniques) ---

class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, store: "FakeStore", table: str):
        self.store = store
        self.table = table
        self.filters: List = []
        self.order_by: Optional[tuple] = None
        self.max_rows: Optional[int] = None
        self.to_insert: Optional[Dict[str, Any]] = None
        self.to_update: Optional[Dict[str, Any]] = None

    def select(self, *_columns):
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def insert(self, row):
        self.to_insert = dict(row)
        return self

    def update(self, values):
        self.to_update = dict(values)
        return self

    def execute(self):
        if self.to_insert is not None:
            op = "insert"
        elif self.to_update is not None:
            op = "update"
        else:
            op = "select"
        self.store.calls.append((self.table, op))
        if self.store.fail_tables and self.table in self.store.fail_tables:
            raise APIError({"message": "connection refused", "code": "08006", "hint": None, "details": None})
        if self.to_insert is not None:
            return FakeResult([self.store.insert(self.table, self.to_insert)])
        if self.to_update is not None:
            return FakeResult(self.store.update(self.table, self.filters, self.to_update))
        rows = [r for r in self.store.rows(self.table) if all(f(r) for f in self.filters)]
        if self.order_by:
            column, desc = self.order_by
            rows.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return FakeResult([copy.deepcopy(r) for r in rows])


class FakeAuth:
    def __init__(self, tokens: Dict[str, Dict[str, Any]]):
        self.tokens = tokens

    def get_user(self, token):
        if token not in self.tokens:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=dict(self.tokens[token]))


class FakeStore:
    """Tables en mémoire; les index uniques reproduisent ceux de infra/schema.sql."""

    UNIQUE = {
        "payments": [(("transaction_id",), None)],
        "memberships": [(("user_email", "club_id"), lambda r: r.get("status") == "active")],
        "eventRegistrations": [(("user_email", "event_id"), None)],
        "users": [(("email",), None)],
    }

    def __init__(self):
        self._tables: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self.calls: List = []
        self.fail_tables = set()
        self.auth = FakeAuth({})

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, table):
        with self._lock:
            return list(self._tables.get(table, []))

    def seed(self, table, *rows):
        for row in rows:
            self._tables.setdefault(table, []).append(dict(row))

    def insert(self, table, row):
        with self._lock:
            existing = self._tables.setdefault(table, [])
            for columns, predicate in self.UNIQUE.get(table, []):
                if predicate and not predicate(row):
                    continue
                key = tuple(row.get(c) for c in columns)
                for other in existing:
                    if predicate and not predicate(other):
                        continue
                    if tuple(other.get(c) for c in columns) == key:
                        raise APIError({
                            "message": f'duplicate key value violates unique constraint "{table}_unique"',
                            "code": "23505",
                            "hint": None,
                            "details": None,
                        })
            stored = dict(row)
            stored.setdefault("id", str(uuid.uuid4()))
            existing.append(stored)
            return copy.deepcopy(stored)

    def update(self, table, filters, values):
        with self._lock:
            updated = []
            for row in self._tables.get(table, []):
                if all(f(row) for f in filters):
                    row.update(values)
                    updated.append(copy.deepcopy(row))
            return updated

    def count(self, table):
        return len(self.rows(table))

    def writes(self):
        return [c for c in self.calls if c[1] in ("insert", "update")]


# --- Faux prestataire Stripe ---

class FakeProvider:
    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []
        self.retrieved: List[str] = []
        self.barrier: Optional[threading.Barrier] = None

    def create_session(self, **params):
        self.created.append(params)
        sid = f"cs_test_{len(self.created)}"
        return {"id": sid, "url": f"https://checkout.stripe.test/pay/{sid}"}

    def retrieve_session(self, session_id):
        self.retrieved.append(session_id)
        if session_id not in self.sessions:
            raise InvalidSessionError("Session introuvable")
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        return copy.deepcopy(self.sessions[session_id])

    def construct_event(self, payload, sig_header):
        if sig_header != "valid-signature":
            raise ValidationError("Signature Stripe invalide")
        return json.loads(payload)


def _session(session_id, *, kind, target_id, club_id, target_name, email,
             amount_total, payment_status="paid", status="complete", payment_intent="pi_123"):
    return {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": payment_status,
        "status": status,
        "amount_total": amount_total,
        "currency": "usd",
        "payment_intent": payment_intent,
        "metadata": make_metadata(
            purchase_kind=kind,
            target_id=target_id,
            target_name=target_name,
            subject_email=email,
            club_id=club_id,
        ),
    }


@pytest.fixture()
def store() -> FakeStore:
    s = FakeStore()
    s.seed(
        "club",
        {"id": CLUB_ID, "club_name": "Chess Club", "status": "approved", "membership_fee": 25.00,
         "created_at": "2025-01-02T10:00:00+00:00"},
        {"id": FREE_CLUB_ID, "club_name": "Running Club", "status": "approved", "membership_fee": 0,
         "created_at": "2025-01-05T10:00:00+00:00"},
        {"id": PENDING_CLUB_ID, "club_name": "Secret Club", "status": "pending", "membership_fee": 10,
         "created_at": "2025-01-07T10:00:00+00:00"},
    )
    s.seed(
        "events",
        {"id": EVENT_ID, "club_id": CLUB_ID, "title": "Spring Open", "is_paid": True, "event_fee": 12.5,
         "event_date": "2099-04-01T18:00:00+00:00"},
        {"id": FREE_EVENT_ID, "club_id": CLUB_ID, "title": "Blitz Night", "is_paid": False, "event_fee": 0,
         "event_date": "2099-02-01T18:00:00+00:00"},
        {"id": PAST_EVENT_ID, "club_id": FREE_CLUB_ID, "title": "New Year Run", "is_paid": False,
         "event_date": "2020-01-01T09:00:00+00:00"},
    )
    s.seed(
        "users",
        {"id": "u-member", "email": MEMBER_EMAIL, "name": "Mia Member", "role": "member"},
        {"id": "u-other", "email": OTHER_EMAIL, "name": "Oscar Other", "role": "member"},
        {"id": "u-admin", "email": ADMIN_EMAIL, "name": "Ada Admin", "role": "admin"},
    )
    s.auth = FakeAuth({
        "member-token": {"id": "u-member", "email": MEMBER_EMAIL},
        "other-token": {"id": "u-other", "email": OTHER_EMAIL},
        "admin-token": {"id": "u-admin", "email": ADMIN_EMAIL},
    })
    s.calls.clear()
    return s


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def paid_session(provider):
    """Enregistre une session Stripe chez le faux prestataire et la renvoie."""
    def _make(session_id="cs_test_paid", kind="membership", target_id=CLUB_ID, club_id=CLUB_ID,
              target_name="Chess Club", email=MEMBER_EMAIL, amount_total=2500, **kwargs):
        session = _session(
            session_id, kind=kind, target_id=target_id, club_id=club_id,
            target_name=target_name, email=email, amount_total=amount_total, **kwargs,
        )
        provider.sessions[session_id] = session
        return session
    return _make


@pytest.fixture()
def ledger(store) -> EntitlementLedger:
    return EntitlementLedger(store, clock=lambda: FIXED_NOW)


@pytest.fixture()
def initiator(store, provider, ledger) -> CheckoutInitiator:
    return CheckoutInitiator(
        store,
        provider,
        ledger,
        success_url="http://localhost:5173/dashboard/payment-success",
        cancel_url="http://localhost:5173/dashboard/payment-cancelled",
        currency="usd",
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture()
def resolver(provider, ledger) -> PaymentConfirmationResolver:
    return PaymentConfirmationResolver(provider, ledger, clock=lambda: FIXED_NOW)


@pytest.fixture()
def app(store, provider):
    application = create_app()
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_payment_provider] = lambda: provider
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


def _bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def member_headers():
    return _bearer("member-token")


@pytest.fixture()
def other_headers():
    return _bearer("other-token")


@pytest.fixture()
def admin_headers():
    return _bearer("admin-token")


@pytest.fixture()
def ids():
    """Identifiants des données de départ du faux Supabase."""
    return SimpleNamespace(
        club=CLUB_ID,
        free_club=FREE_CLUB_ID,
        pending_club=PENDING_CLUB_ID,
        event=EVENT_ID,
        free_event=FREE_EVENT_ID,
        past_event=PAST_EVENT_ID,
        member=MEMBER_EMAIL,
        other=OTHER_EMAIL,
        admin=ADMIN_EMAIL,
        now=FIXED_NOW,
    )
