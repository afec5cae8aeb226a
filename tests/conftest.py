"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • an in-memory key-value store behind a real FixedWindowRateLimiter
  • a real EmailDispatcher talking to a fake Mailtrap API (no network)
  • a known API key and the production CORS allow-list

Components are swapped in through ``app.dependency_overrides``; the app
lifespan still runs so startup/shutdown are exercised too.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from contact_api.cors import CorsPolicy
from contact_api.dependencies import (
    get_api_key,
    get_cors_policy,
    get_dispatcher,
    get_rate_limiter,
)
from contact_api.main import app
from contact_api.rate_limit import FixedWindowRateLimiter
from tests.mocks.mail_api import FakeMailApi
from tests.mocks.settings import ALLOWED_ORIGINS, SITE_ORIGIN, TEST_API_KEY
from tests.mocks.stores import SpyKeyValueStore


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def store() -> SpyKeyValueStore:
    return SpyKeyValueStore()


@pytest.fixture()
def limiter(store: SpyKeyValueStore) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(store, window_ms=900_000, max_requests=5)


@pytest.fixture()
def mail_api() -> FakeMailApi:
    return FakeMailApi()


@pytest.fixture()
def client(limiter: FixedWindowRateLimiter, mail_api: FakeMailApi) -> TestClient:
    """TestClient with the fakes above and the X-API-Key header preset."""
    dispatcher = mail_api.dispatcher()

    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_cors_policy] = lambda: CorsPolicy(ALLOWED_ORIGINS)
    app.dependency_overrides[get_api_key] = lambda: TEST_API_KEY

    with TestClient(
        app,
        raise_server_exceptions=False,
        headers={"X-API-Key": TEST_API_KEY, "Origin": SITE_ORIGIN},
    ) as tc:
        yield tc

    app.dependency_overrides.clear()
