import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Memory backend, a known signing secret and cheap bcrypt for the whole test run
os.environ["PERSISTENCE_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

from task_api.main import app  # noqa: E402
from task_api.repositories import (  # noqa: E402
    InMemoryRepository,
    InMemoryUserRepository,
    get_repository,
    get_user_repository,
)


@pytest.fixture(autouse=True)
def clock(monkeypatch):
    """Store clock that advances one second per reading, so creation order is unambiguous."""
    state = {"now": datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)}

    def tick():
        state["now"] += timedelta(seconds=1)
        return state["now"]

    monkeypatch.setattr("task_api.repositories.utcnow", tick)
    monkeypatch.setattr("task_api.db.utcnow", tick)
    return tick


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def client(repo, users):
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_user_repository] = lambda: users
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def register(client, name="Alice", email=None, password="secret123"):
    """Register a user and return (auth headers, user json)."""
    email = email or f"{name.lower()}@example.com"
    res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    body = res.json()
    return {"Authorization": f"Bearer {body['token']}"}, body["user"]


@pytest.fixture
def alice(client):
    return register(client, "Alice")


@pytest.fixture
def bob(client):
    return register(client, "Bob")


def parse_dt(value):
    """Parse an API timestamp; older Pythons' fromisoformat does not accept 'Z'."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
