"""OAuth 2.0 implicit-grant client for Twitch.

Handles the implicit flow:
1. Generate a single-use state nonce and the authorization URL
2. Hand the URL to a redirect agent and wait for its terminal result
3. Validate the result and extract the access token
4. Revoke tokens on sign-out
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

import httpx

from ..config import TWITCH_AUTH_URL, TWITCH_REVOKE_URL, AuthSettings
from ..errors import StreamAuthError


logger = logging.getLogger(__name__)

# Random bytes behind each state nonce (40 URL-safe characters)
STATE_NONCE_BYTES = 30


class OAuthError(StreamAuthError):
    """OAuth-related error."""

    def __init__(self, message: str, error_code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class InvalidStateError(OAuthError):
    """The returned state does not match the nonce that was sent."""

    def __init__(self, message: str = "State mismatch - possible forged redirect"):
        super().__init__(message, error_code="state_mismatch")


class AuthorizationDeniedError(OAuthError):
    """The user declined, dismissed the agent, or the provider returned an error."""

    pass


class FlowState(str, Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    VALIDATED = "validated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class PendingFlowState:
    """Scoped to one authorization round-trip. Never persisted."""

    state_nonce: str
    redirect_uri: str


@dataclass
class RedirectResult:
    """Terminal result from a redirect agent."""

    type: str  # "success", "error" or "cancel"
    params: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.type == "success"

    @property
    def error(self) -> str | None:
        return self.params.get("error")

    @property
    def state(self) -> str | None:
        return self.params.get("state")

    @property
    def access_token(self) -> str | None:
        return self.params.get("access_token")

    @classmethod
    def from_params(cls, params: dict[str, str]) -> "RedirectResult":
        """Build a result from redirect parameters."""
        return cls(type="error" if params.get("error") else "success", params=dict(params))

    @classmethod
    def from_url(cls, url: str) -> "RedirectResult":
        """Build a result from a full redirect URL.

        Implicit-grant tokens arrive in the fragment, provider errors in the
        query. Fragment values win when both carry the same key.
        """
        parts = urlsplit(url)
        params = dict(parse_qsl(parts.query))
        params.update(parse_qsl(parts.fragment))
        return cls.from_params(params)


class RedirectAgent(Protocol):
    """Opens an authorization URL and returns the redirect outcome."""

    @property
    def redirect_uri(self) -> str: ...

    async def perform_authorization_redirect(self, url: str) -> RedirectResult: ...


class OAuthClient:
    """OAuth 2.0 implicit-grant client.

    Usage:
        client = OAuthClient(client_id="your_client_id", scopes=["user:read:email"])

        # Run the flow through a redirect agent
        access_token = await client.authorize(agent)

        # Later, on sign-out
        await client.revoke_token(access_token)
    """

    def __init__(
        self,
        client_id: str,
        scopes: list[str] | None = None,
        authorization_url: str = TWITCH_AUTH_URL,
        revocation_url: str = TWITCH_REVOKE_URL,
        force_verify: bool = True,
        timeout: float = 30.0,
    ):
        self.client_id = client_id
        self.scopes = scopes or []
        self.authorization_url = authorization_url
        self.revocation_url = revocation_url
        self.force_verify = force_verify
        self.timeout = timeout

        self.state = FlowState.IDLE
        self._pending: PendingFlowState | None = None

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> "OAuthClient":
        return cls(
            client_id=settings.client_id,
            scopes=settings.scope_list,
            authorization_url=settings.authorization_url,
            revocation_url=settings.revocation_url,
            force_verify=settings.force_verify,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def pending(self) -> PendingFlowState | None:
        """The in-flight authorization attempt, if any."""
        return self._pending

    def generate_state(self) -> str:
        """Generate a fresh random state nonce."""
        return secrets.token_urlsafe(STATE_NONCE_BYTES)

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        """Generate the authorization URL for user consent.

        Args:
            redirect_uri: Where the provider sends the user back
            state: Single-use nonce echoed back by the provider

        Returns:
            URL to open in the redirect agent
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "token",
            "scope": " ".join(self.scopes),
            "force_verify": "true" if self.force_verify else "false",
            "state": state,
        }
        return f"{self.authorization_url}?{urlencode(params, quote_via=quote)}"

    def verify_state(self, expected: str, received: str | None) -> bool:
        """Verify the state parameter from the redirect matches exactly."""
        if not expected or received is None:
            return False
        return secrets.compare_digest(expected.encode(), received.encode())

    async def authorize(self, agent: RedirectAgent) -> str:
        """Run one authorization round-trip and return the access token.

        Args:
            agent: Redirect agent that opens the URL and reports the outcome

        Returns:
            The validated access token

        Raises:
            AuthorizationDeniedError: If the agent did not succeed or the provider returned an error
            InvalidStateError: If the returned state does not match the nonce sent
            OAuthError: If the result carries no access token
        """
        self._pending = PendingFlowState(
            state_nonce=self.generate_state(),
            redirect_uri=agent.redirect_uri,
        )
        self.state = FlowState.REQUESTED
        logger.debug("Authorization requested (redirect_uri=%s)", self._pending.redirect_uri)

        try:
            url = self.get_authorization_url(self._pending.redirect_uri, self._pending.state_nonce)
            result = await agent.perform_authorization_redirect(url)
            token = self._validate(result, self._pending.state_nonce)
        except BaseException:
            self.state = FlowState.REJECTED
            raise
        finally:
            self._pending = None

        self.state = FlowState.VALIDATED
        logger.debug("Authorization validated")
        return token

    def _validate(self, result: RedirectResult, expected_state: str) -> str:
        if not result.success or result.error:
            error = result.error or result.type
            raise AuthorizationDeniedError(
                result.params.get("error_description") or f"Authorization not granted: {error}",
                error_code=error,
                details={"type": result.type},
            )

        # Mismatch fails closed, same as an explicit protocol error
        if not self.verify_state(expected_state, result.state):
            raise InvalidStateError()

        token = result.access_token
        if not token:
            raise OAuthError(
                "Invalid redirect response: missing access_token",
                error_code="invalid_response",
                details={"response_keys": sorted(result.params)},
            )
        return token

    async def revoke_token(self, token: str) -> None:
        """Revoke an access token with the provider.

        Raises:
            OAuthError: If the request fails or the provider rejects it
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.revocation_url,
                    data={"client_id": self.client_id, "token": token},
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            raise OAuthError(f"Token revocation failed: {e}", error_code="revoke_failed") from e

        if response.status_code != 200:
            raise OAuthError(
                f"Token revocation failed: {response.status_code}",
                error_code="revoke_failed",
                details=_error_details(response),
            )


def _error_details(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json() if response.content else {}
    except ValueError:
        data = {"raw_response": response.text[:500]}
    return data if isinstance(data, dict) else {"raw_response": data}
