"""
Pytest configuration and fixtures for backend tests.

This module provides the core testing infrastructure including:
- A throw-away service account backed by a freshly generated RSA key
- A fake token/FCM backend wired into httpx.MockTransport
- Test client for API integration tests
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from fcm_relay.api.deps import get_http_client, get_service_account
from fcm_relay.core.service_account import ServiceAccountCredential
from fcm_relay.main import app
from fcm_relay.services.access_tokens import token_cache
from fcm_relay.testing import FakeFCM, create_service_account


@pytest.fixture(autouse=True)
def _reset_token_cache():
    """Keep cached access tokens from leaking between tests."""
    token_cache.clear()
    yield
    token_cache.clear()


@pytest.fixture
def service_account() -> ServiceAccountCredential:
    return create_service_account()


@pytest.fixture
def fake_fcm() -> FakeFCM:
    return FakeFCM()


@pytest.fixture
async def fcm_http_client(fake_fcm: FakeFCM) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Outbound HTTP client whose requests are answered by ``fake_fcm``."""
    async with fake_fcm.client() as outbound:
        yield outbound


@pytest.fixture
async def client(
    service_account: ServiceAccountCredential,
    fcm_http_client: httpx.AsyncClient,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing API endpoints.

    This fixture:
    - Overrides the service-account dependency (startup hooks do not run
      under ASGITransport)
    - Routes all outbound calls to the fake FCM backend

    Usage:
        async def test_endpoint(client: AsyncClient):
            response = await client.options("/")
            assert response.status_code == 200

    Tests that need a different credential override ``service_account``.
    """

    async def override_get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
        yield fcm_http_client

    app.dependency_overrides[get_service_account] = lambda: service_account
    app.dependency_overrides[get_http_client] = override_get_http_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
