"""
tests/conftest.py -- Shared test fixtures for AccessGate.

This module provides:
  - TEST_SECRET: signing secret used by every test that mints tokens
  - store / todo_store / notifier: unit-test collaborators (plain in-memory SQLite, outbox)
  - _patch_lifespan(): wires test collaborators into app.state, bypassing real startup
  - api: module-scoped TestClient harness with an admin and a user account

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API harness because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

The DEBUG env var must be set before any api/ import so get_settings() (used
lazily by the rate limiter) auto-generates JWT_SECRET instead of raising
ConfigurationError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate JWT_SECRET in dev mode instead of raising ConfigurationError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import Credential, Role
from auth.store import CredentialStore
from auth.tokens import create_access_token, hash_password
from core.config import Settings
from notify.mailer import RecordingNotifier
from todos.store import TodoStore

TEST_SECRET = "test-signing-secret-0123456789abcdef0123456789"

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"
USER_EMAIL = "user@example.com"
USER_PASSWORD = "userpass123"


def make_settings(**overrides) -> Settings:
    values = {"jwt_secret": TEST_SECRET, "debug": True, "_env_file": None}
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def todo_store() -> Generator[TodoStore, None, None]:
    s = TodoStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# ---------------------------------------------------------------------------
# API harness
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    store: CredentialStore
    todos: TodoStore
    notifier: RecordingNotifier
    settings: Settings
    admin_id: int
    user_id: int
    admin_token: str
    user_token: str

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


def _patch_lifespan(settings: Settings, store: CredentialStore, todos: TodoStore, notifier: RecordingNotifier):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.store = store
        app.state.todos = todos
        app.state.notifier = notifier
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness backed by an isolated shared-memory store.

    One verified admin and one verified user exist before the client starts;
    tokens for both are minted with TEST_SECRET. Rate limiting is disabled
    so repeated logins across a module never trip it; the one test that
    exercises the limiter re-enables it locally.
    """
    db_name = request.module.__name__.rsplit(".", 1)[-1]
    db_url = f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true"
    store = CredentialStore(db_url)
    todos = TodoStore(db_url)
    notifier = RecordingNotifier()
    settings = make_settings()

    admin_id = store.insert(
        Credential(
            email=ADMIN_EMAIL,
            hashed_password=hash_password(ADMIN_PASSWORD),
            role=Role.ADMIN,
            first_name="Ada",
            is_verified=True,
        )
    )
    user_id = store.insert(
        Credential(
            email=USER_EMAIL,
            hashed_password=hash_password(USER_PASSWORD),
            role=Role.USER,
            first_name="Uma",
            is_verified=True,
        )
    )

    app.router.lifespan_context = _patch_lifespan(settings, store, todos, notifier)
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            store=store,
            todos=todos,
            notifier=notifier,
            settings=settings,
            admin_id=admin_id,
            user_id=user_id,
            admin_token=create_access_token(admin_id, Role.ADMIN, TEST_SECRET),
            user_token=create_access_token(user_id, Role.USER, TEST_SECRET),
        )

    limiter.enabled = True
    todos.close()
    store.close()
