"""Twitch Helix API client - shared httpx client carrying the auth headers."""

from __future__ import annotations

from typing import Any

import httpx

from ..config import TWITCH_API_BASE, AuthSettings


class StreamAPIClient:
    """Twitch Helix API client.

    Default headers set here are sent with every request, so the bearer
    token only needs to be set once per session.

    Usage:
        async with StreamAPIClient(client_id="abc") as api:
            api.set_bearer_token(token)
            users = await api.users.get_users()
    """

    def __init__(
        self,
        client_id: str | None = None,
        base_url: str = TWITCH_API_BASE,
        timeout: float = 30.0,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
        if client_id:
            self.set_header("Client-Id", client_id)

        # Sub-clients for different resources
        self.users = UsersClient(self)

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> "StreamAPIClient":
        return cls(
            client_id=settings.client_id,
            base_url=settings.api_base_url,
            timeout=settings.http_timeout_seconds,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    # Default headers

    @property
    def headers(self) -> httpx.Headers:
        return self._client.headers

    def set_header(self, name: str, value: str) -> None:
        self._client.headers[name] = value

    def remove_header(self, name: str) -> None:
        self._client.headers.pop(name, None)

    @property
    def authorization(self) -> str | None:
        """Current Authorization header value, if any."""
        return self._client.headers.get("Authorization")

    def set_bearer_token(self, token: str) -> None:
        self.set_header("Authorization", f"Bearer {token}")

    def clear_bearer_token(self) -> None:
        self.remove_header("Authorization")

    def restore_authorization(self, value: str | None) -> None:
        """Put back a previously captured Authorization header value."""
        if value is None:
            self.clear_bearer_token()
        else:
            self.set_header("Authorization", value)

    # Requests

    async def get(self, path: str) -> dict[str, Any]:
        """GET request."""
        response = await self._client.get(path)
        response.raise_for_status()
        return response.json()


class UsersClient:
    """Users API."""

    def __init__(self, client: StreamAPIClient):
        self._client = client

    async def get_users(self) -> dict[str, Any]:
        """Get the user owning the bearer token, wrapped in a ``data`` list."""
        return await self._client.get("/users")
