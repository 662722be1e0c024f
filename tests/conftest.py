"""
tests/conftest.py -- Shared test fixtures for tokenward.

This module provides:
  - settings / services: domain services over a private in-memory SQLite store
  - file_services: the same over a file-backed SQLite DB, for thread tests
  - api_client: TestClient over the real app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

Thread-concurrency tests use a file in tmp_path instead: shared-cache memory
databases use table-level locks that fail fast rather than wait, which would
turn a lost race into a spurious StoreError.

Environment must be set before any api/core import so get_settings() can
auto-generate secrets in dev mode instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.services import AuthServices, build_auth_services
from auth.store import UserStore
from core.config import Settings

ACCESS_SECRET = "a" * 32 + "-access-signing-secret"
REFRESH_SECRET = "r" * 32 + "-refresh-signing-secret"


def make_settings(**overrides) -> Settings:
    values = {
        "debug": False,
        "access_token_secret": ACCESS_SECRET,
        "refresh_token_secret": REFRESH_SECRET,
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    """Return make_settings, for tests that need non-default settings."""
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def services(settings: Settings, store: UserStore) -> AuthServices:
    return build_auth_services(settings, store)


@pytest.fixture
def file_services(settings: Settings, tmp_path) -> Generator[AuthServices, None, None]:
    s = UserStore(f"sqlite:///{tmp_path / 'auth.db'}")
    yield build_auth_services(settings, s)
    s.close()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(services: AuthServices):
    """Return a lifespan that wires pre-built test services into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth = services
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, AuthServices], None, None]:
    """Yield (client, services) for API integration tests.

    One isolated shared-memory DB per test module; tests use distinct emails.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    services = build_auth_services(make_settings(), user_store)

    app.router.lifespan_context = _patch_lifespan(services)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, services

    user_store.close()
