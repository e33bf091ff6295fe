"""Shared test fixtures for Stream Auth test suite."""

import asyncio
import pytest
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlsplit

from stream_auth.api.client import StreamAPIClient
from stream_auth.config import load_settings
from stream_auth.oauth.client import OAuthClient, RedirectResult
from stream_auth.oauth.storage import (
    AuthSession,
    MemoryKeyValueStore,
    SessionStore,
    UserProfile,
)

# Sample values used across tests
SAMPLE_CLIENT_ID = "client_test123"
SAMPLE_TOKEN = "T"
SAMPLE_REDIRECT_URI = "http://localhost:3000/callback"
SAMPLE_SCOPES = ["openid", "user:read:email", "user:read:follows"]


# ============================================================================
# Mock Response Data
# ============================================================================

MOCK_USER = {
    "id": 1,
    "display_name": "a",
    "email": "a@x.com",
    "profile_image_url": "u",
}

MOCK_USERS_RESPONSE = {"data": [MOCK_USER]}

SAMPLE_PROFILE = UserProfile(id=1, display_name="a", email="a@x.com", profile_image_url="u")


# ============================================================================
# Fakes
# ============================================================================

class FakeRedirectAgent:
    """Redirect agent that answers without a browser.

    By default it echoes the state from the authorization URL and returns
    ``token``. ``result`` overrides the answer entirely; ``gate`` holds the
    call open until set.
    """

    def __init__(
        self,
        token: str = SAMPLE_TOKEN,
        result: RedirectResult | None = None,
        error: BaseException | None = None,
        gate: asyncio.Event | None = None,
    ):
        self.redirect_uri = SAMPLE_REDIRECT_URI
        self.token = token
        self.result = result
        self.error = error
        self.gate = gate
        self.calls: list[str] = []

    async def perform_authorization_redirect(self, url: str) -> RedirectResult:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        state = parse_qs(urlsplit(url).query)["state"][0]
        return RedirectResult(type="success", params={"state": state, "access_token": self.token})

    @property
    def sent_states(self) -> list[str]:
        return [parse_qs(urlsplit(url).query)["state"][0] for url in self.calls]


class FailingKeyValueStore(MemoryKeyValueStore):
    """Store whose writes fail."""

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")

    def remove(self, key: str) -> None:
        raise OSError("read-only filesystem")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; reset between tests."""
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def sample_session():
    return AuthSession(profile=SAMPLE_PROFILE, access_token=SAMPLE_TOKEN)


@pytest.fixture
def memory_backend():
    return MemoryKeyValueStore()


@pytest.fixture
def session_store(memory_backend):
    return SessionStore(memory_backend)


@pytest.fixture
def oauth_client():
    return OAuthClient(client_id=SAMPLE_CLIENT_ID, scopes=SAMPLE_SCOPES)


@pytest.fixture
def agent():
    return FakeRedirectAgent()


@pytest.fixture
def mock_response():
    """Factory fixture to create mock HTTP responses."""
    def _create_response(data: Any, status_code: int = 200):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = data
        response.raise_for_status = MagicMock()
        if status_code >= 400:
            from httpx import HTTPStatusError
            response.raise_for_status.side_effect = HTTPStatusError(
                f"HTTP {status_code}", request=MagicMock(), response=response
            )
        return response
    return _create_response


@pytest.fixture
def api(mock_response):
    """StreamAPIClient whose GET returns the sample user."""
    client = StreamAPIClient(client_id=SAMPLE_CLIENT_ID)
    client._client.get = AsyncMock(return_value=mock_response(MOCK_USERS_RESPONSE))
    return client
