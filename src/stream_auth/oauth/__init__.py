"""OAuth module for Twitch implicit-grant authentication.

Usage:
    from stream_auth.oauth import OAuthClient, LocalRedirectAgent, SessionStore

    client = OAuthClient(client_id="your_client_id", scopes=["user:read:email"])
    agent = LocalRedirectAgent(port=3000)

    # Opens the browser and waits for the redirect
    access_token = await client.authorize(agent)

    # Persisted session record
    store = SessionStore()
    session = store.load()
"""

from .client import (
    OAuthClient,
    OAuthError,
    InvalidStateError,
    AuthorizationDeniedError,
    FlowState,
    PendingFlowState,
    RedirectAgent,
    RedirectResult,
)
from .storage import (
    AuthSession,
    UserProfile,
    SessionStore,
    KeyValueStore,
    FileKeyValueStore,
    MemoryKeyValueStore,
)
from .server import LocalRedirectAgent

__all__ = [
    "OAuthClient",
    "OAuthError",
    "InvalidStateError",
    "AuthorizationDeniedError",
    "FlowState",
    "PendingFlowState",
    "RedirectAgent",
    "RedirectResult",
    "AuthSession",
    "UserProfile",
    "SessionStore",
    "KeyValueStore",
    "FileKeyValueStore",
    "MemoryKeyValueStore",
    "LocalRedirectAgent",
]
