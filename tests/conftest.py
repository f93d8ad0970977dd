import itertools
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from taskboard.main import create_app
from taskboard.repositories import InMemoryRecordStore
from taskboard.settings import Settings

# Low iteration count keeps password hashing fast in tests
TEST_SETTINGS = Settings(persistence_backend="memory", password_hash_iterations=1000)

_counter = itertools.count(1)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def client(store):
    app = create_app(settings=TEST_SETTINGS, store=store)
    with TestClient(app) as c:
        yield c


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client):
    """Register a fresh user and return (token, user, headers)."""

    def _make(name="Test User", email=None, password="secret1"):
        email = email or f"user{next(_counter)}@example.com"
        res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        body = res.json()
        return body["token"], body["user"], auth_headers(body["token"])

    return _make


def parse_ts(value: str) -> datetime:
    """Parse an ISO8601 timestamp as serialized by the API (UTC with 'Z' suffix)."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
