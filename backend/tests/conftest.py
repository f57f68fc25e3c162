"""
KeepWise Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── sql_store:        SqlNoteStore on a temporary SQLite file (migrated)
    ├── fake_firestore:   In-memory stand-in for the async Firestore client
    ├── firestore_store:  FirestoreNoteStore wired to fake_firestore
    ├── make_token:       Signs HS256 test tokens for a uid
    ├── test_client:      HTTPX AsyncClient, authentication disabled
    └── auth_client:      HTTPX AsyncClient, JWT verification enabled
"""

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

# Override settings for testing BEFORE any keepwise imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["NOTE_STORE"] = "sql"
os.environ["AUTH_PROVIDER"] = "none"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"  # No backoff sleeps in tests
os.environ["LOG_LEVEL"] = "WARNING"

import jwt
import pytest
import pytest_asyncio
from google.cloud import firestore
from httpx import ASGITransport, AsyncClient

from keepwise.config import settings
from keepwise.main import create_app
from keepwise.services.auth_base import AnonymousTokenVerifier
from keepwise.services.jwt_auth import JWTTokenVerifier
from keepwise.stores.firestore_store import FirestoreNoteStore
from keepwise.stores.sql_store import SqlNoteStore

JWT_TEST_SECRET = "test-secret-with-enough-length-for-hs256"


# ══════════════════════════════════════════════════════════════════════════
# In-memory Firestore double
# ══════════════════════════════════════════════════════════════════════════

class FakeSnapshot:
    def __init__(self, reference: "FakeDocumentRef", data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, collection: "FakeCollection", doc_id: str):
        self._collection = collection
        self.id = doc_id

    async def set(self, data: Dict[str, Any]) -> None:
        self._collection.docs[self.id] = {
            key: self._collection.server_time() if value is firestore.SERVER_TIMESTAMP else value
            for key, value in data.items()
        }

    async def get(self) -> FakeSnapshot:
        return FakeSnapshot(self, self._collection.docs.get(self.id))

    async def delete(self) -> None:
        self._collection.docs.pop(self.id, None)


class FakeQuery:
    """Supports the subset used by FirestoreNoteStore: ==, order_by, limit."""

    def __init__(self, collection: "FakeCollection", filters=(), order=None, limit_to=None):
        self._collection = collection
        self._filters = tuple(filters)
        self._order = order
        self._limit = limit_to

    def where(self, filter) -> "FakeQuery":
        assert filter.op_string == "=="
        return FakeQuery(self._collection, self._filters + (filter,), self._order, self._limit)

    def order_by(self, field: str, direction: str = firestore.Query.ASCENDING) -> "FakeQuery":
        return FakeQuery(self._collection, self._filters, (field, direction), self._limit)

    def limit(self, count: int) -> "FakeQuery":
        return FakeQuery(self._collection, self._filters, self._order, count)

    async def stream(self):
        items = [
            (doc_id, data)
            for doc_id, data in self._collection.docs.items()
            if all(data.get(f.field_path) == f.value for f in self._filters)
        ]
        if self._order is not None:
            field, direction = self._order
            items.sort(
                key=lambda item: item[1][field],
                reverse=direction == firestore.Query.DESCENDING,
            )
        if self._limit is not None:
            items = items[: self._limit]
        for doc_id, data in items:
            yield FakeSnapshot(FakeDocumentRef(self._collection, doc_id), dict(data))


class FakeCollection(FakeQuery):
    def __init__(self):
        super().__init__(self)
        self.docs: Dict[str, Dict[str, Any]] = {}
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def server_time(self) -> datetime:
        # Strictly increasing, like commit timestamps of sequential writes
        self._clock += timedelta(milliseconds=1)
        return self._clock

    def document(self, doc_id: Optional[str] = None) -> FakeDocumentRef:
        return FakeDocumentRef(self, doc_id or uuid.uuid4().hex[:20])


class FakeFirestoreClient:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


# ══════════════════════════════════════════════════════════════════════════
# Store fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'notes.db'}"


@pytest_asyncio.fixture
async def sql_store(sqlite_url):
    """A migrated SqlNoteStore on a fresh SQLite file."""
    store = SqlNoteStore(sqlite_url, settings)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def fake_firestore() -> FakeFirestoreClient:
    return FakeFirestoreClient()


@pytest_asyncio.fixture
async def firestore_store(fake_firestore):
    store = FirestoreNoteStore("notes", settings, client=fake_firestore)
    await store.initialize()
    yield store
    await store.close()


# ══════════════════════════════════════════════════════════════════════════
# Auth fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_token():
    """Returns a function signing an HS256 token for `uid`."""

    def _make(uid: str, email: Optional[str] = None, expires_in: int = 3600, **claims: Any) -> str:
        payload = {
            "sub": uid,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            **claims,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, JWT_TEST_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def jwt_secret() -> str:
    return JWT_TEST_SECRET


@pytest.fixture
def jwt_verifier(jwt_secret) -> JWTTokenVerifier:
    return JWTTokenVerifier(secret=jwt_secret)


# ══════════════════════════════════════════════════════════════════════════
# HTTP client fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(sql_store):
    """
    HTTPX AsyncClient talking to the app in-process, authentication disabled.

    ASGITransport does not run the lifespan, so the store is injected already
    initialized.
    """
    app = create_app(store=sql_store, verifier=AnonymousTokenVerifier())
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_client(sql_store, jwt_verifier):
    """Like test_client, but bearer tokens are verified as HS256 JWTs."""
    app = create_app(store=sql_store, verifier=jwt_verifier)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
