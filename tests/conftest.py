"""
Shared fixtures: an in-memory stand-in for RecordStore and an API client wired to it.
"""
import copy
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest

from modules.shared.errors import RecordNotFound
from modules.shared.response import serialize_data
from modules.shared.store import EMERGENCIES, REQUESTORS, RESPONDERS, USERS, TABLE_COLUMNS

ADMIN = {"id": "00000000-0000-0000-0000-000000000001", "name": "Admin", "email": "admin@example.com", "role": "admin"}


class FakeStore:
    """
    Dict-backed implementation of the RecordStore interface.

    fail_on(op, table, error) makes the next matching call raise error, which lets
    tests break a workflow between its two writes.
    """

    def __init__(self):
        self.tables = {name: {} for name in TABLE_COLUMNS}
        self.calls = []
        self._failures = []
        self._in_tx = False

    @property
    def in_transaction(self):
        return self._in_tx

    def fail_on(self, op, table, error):
        self._failures.append((op, table, error))

    def _maybe_fail(self, op, table):
        self.calls.append((op, table))
        for i, (f_op, f_table, error) in enumerate(self._failures):
            if f_op == op and f_table == table:
                del self._failures[i]
                raise error

    def add(self, table, **row):
        row.setdefault("id", str(uuid.uuid4()))
        self.tables[table][row["id"]] = serialize_data(row)
        return copy.deepcopy(self.tables[table][row["id"]])

    def row(self, table, record_id):
        return copy.deepcopy(self.tables[table][record_id])

    @staticmethod
    def _matches(row, filters):
        for column, value in (filters or {}).items():
            if isinstance(value, (list, tuple)):
                if row.get(column) not in value:
                    return False
            elif row.get(column) != value:
                return False
        return True

    async def list(self, table, filters=None, order_by=None, descending=False, limit=None):
        self._maybe_fail("list", table)
        rows = [copy.deepcopy(r) for r in self.tables[table].values() if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        return rows if limit is None else rows[:limit]

    async def get(self, table, record_id):
        self._maybe_fail("get", table)
        if record_id not in self.tables[table]:
            raise RecordNotFound(f"{table} record {record_id} not found", table)
        return copy.deepcopy(self.tables[table][record_id])

    async def count(self, table, filters=None):
        self._maybe_fail("count", table)
        return sum(1 for r in self.tables[table].values() if self._matches(r, filters))

    async def insert(self, table, payload):
        self._maybe_fail("insert", table)
        return self.add(table, **payload)

    async def update(self, table, record_id, changes):
        self._maybe_fail("update", table)
        if record_id not in self.tables[table]:
            raise RecordNotFound(f"{table} record {record_id} not found", table)
        self.tables[table][record_id].update(serialize_data(changes))
        return copy.deepcopy(self.tables[table][record_id])

    async def delete(self, table, record_id):
        self._maybe_fail("delete", table)
        if self.tables[table].pop(record_id, None) is None:
            raise RecordNotFound(f"{table} record {record_id} not found", table)
        return True

    @asynccontextmanager
    async def transaction(self):
        if self._in_tx:
            yield self
            return
        snapshot = copy.deepcopy(self.tables)
        self._in_tx = True
        try:
            yield self
        except BaseException:
            self.tables = snapshot
            raise
        finally:
            self._in_tx = False


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def seeded(store):
    """One requestor, two responders and a pending emergency"""
    reporter = store.add(USERS, name="Juan Dela Cruz", email="juan@example.com", phone="0917", role="requestor")
    requestor = store.add(REQUESTORS, user_id=reporter["id"], name="Juan Dela Cruz",
                          email="juan@example.com", phone="09174445555")
    medic_user = store.add(USERS, name="Dr. Maria Santos", email="maria@example.com", role="responder")
    medic = store.add(RESPONDERS, user_id=medic_user["id"], name="Dr. Maria Santos", email="maria@example.com",
                      phone="09171112222", type="medical", status="available", responding_to=None)
    police_user = store.add(USERS, name="Officer Juan Cruz", email="cruz@example.com", role="responder")
    police = store.add(RESPONDERS, user_id=police_user["id"], name="Officer Juan Cruz", email="cruz@example.com",
                       phone="09172223333", type="police", status="available", responding_to=None)
    emergency = store.add(EMERGENCIES, user_id=reporter["id"], type="medical", description="Man collapsed",
                          location={"lat": 9.63, "lng": 124.09}, address="Poblacion", status="pending",
                          priority="high", reported_at="2026-10-17T08:00:00+00:00",
                          updated_at="2026-10-17T08:00:00+00:00", responder_id=None, responder=None)
    return {
        "reporter": reporter,
        "requestor": requestor,
        "medic": medic,
        "police": police,
        "emergency": emergency,
    }


@pytest.fixture
def client(store):
    from fastapi.testclient import TestClient
    from main import app
    from modules.auth.manager import get_current_admin
    from modules.shared.store import get_store

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_admin] = lambda: ADMIN
    # No context manager: startup (database pool, schema, seeding) is skipped
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_token(monkeypatch):
    """Sign tokens the way the identity backend does, with a test secret"""
    from jose import jwt
    from modules.auth.utils import ALGORITHM

    monkeypatch.setenv("JWT_SECRET", "test-secret")

    def _make(user_id):
        expire = datetime.now(timezone.utc) + timedelta(hours=1)
        return jwt.encode({"sub": user_id, "exp": expire}, "test-secret", algorithm=ALGORITHM)
    return _make
