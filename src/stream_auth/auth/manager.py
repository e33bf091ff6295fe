"""Session manager for the signed-in Twitch account.

Owns the in-memory session, keeps the API client's auth header and the
persisted record in step with it, and guards sign-in/sign-out against
overlapping calls.
"""

from __future__ import annotations

import logging

from ..api.client import StreamAPIClient
from ..config import AuthSettings
from ..errors import AlreadyInProgressError, AuthenticationFailedError
from ..oauth.client import OAuthClient, OAuthError, RedirectAgent
from ..oauth.storage import AuthSession, FileKeyValueStore, SessionStore, UserProfile
from .profile import ProfileFetcher


logger = logging.getLogger(__name__)


class SessionManager:
    """Sign-in/sign-out orchestration for a single account.

    Usage:
        manager = SessionManager.from_settings(settings, agent=LocalRedirectAgent())
        manager.bootstrap()  # once, at startup

        if manager.user is None:
            profile = await manager.sign_in()

        await manager.sign_out()
    """

    def __init__(
        self,
        oauth: OAuthClient,
        agent: RedirectAgent,
        api: StreamAPIClient,
        store: SessionStore,
        profile_fetcher: ProfileFetcher | None = None,
    ):
        self.oauth = oauth
        self.agent = agent
        self.api = api
        self.store = store
        self.profile_fetcher = profile_fetcher or ProfileFetcher(api)

        self._session: AuthSession | None = None
        self._signing_in = False
        self._signing_out = False

    @classmethod
    def from_settings(
        cls,
        settings: AuthSettings,
        agent: RedirectAgent,
        store: SessionStore | None = None,
        api: StreamAPIClient | None = None,
    ) -> "SessionManager":
        """Wire a manager from configuration."""
        return cls(
            oauth=OAuthClient.from_settings(settings),
            agent=agent,
            api=api or StreamAPIClient.from_settings(settings),
            store=store or SessionStore(FileKeyValueStore(settings.config_path)),
        )

    # Read-only state

    @property
    def session(self) -> AuthSession | None:
        return self._session

    @property
    def user(self) -> UserProfile | None:
        """Current profile, None when signed out."""
        return self._session.profile if self._session else None

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_signing_in(self) -> bool:
        return self._signing_in

    @property
    def is_signing_out(self) -> bool:
        return self._signing_out

    # Operations

    def bootstrap(self) -> AuthSession | None:
        """Restore the persisted session without running the flow.

        Call once during application startup.
        """
        self.api.set_header("Client-Id", self.oauth.client_id)

        session = self.store.load()
        if session is None:
            logger.debug("No stored session")
            return None

        self._session = session
        self.api.set_bearer_token(session.access_token)
        logger.info("Restored session for %s", session.profile.display_name)
        return session

    async def sign_in(self) -> UserProfile:
        """Run the authorization flow and commit the resulting session.

        Returns:
            The signed-in user's profile

        Raises:
            AlreadyInProgressError: If a sign-in or sign-out is in flight
            AuthenticationFailedError: If authorization or the profile fetch
                failed; the session and auth header are left as they were
        """
        if self._signing_in or self._signing_out:
            raise AlreadyInProgressError("sign-out" if self._signing_out else "sign-in")

        self._signing_in = True
        previous_authorization = self.api.authorization
        try:
            try:
                token = await self.oauth.authorize(self.agent)
                profile = await self.profile_fetcher.fetch_profile(token)
            except Exception as e:
                self.api.restore_authorization(previous_authorization)
                if isinstance(e, OAuthError):
                    logger.warning("Sign-in rejected: %s (%s)", e, e.error_code)
                else:
                    logger.warning("Sign-in failed: %s", e)
                raise AuthenticationFailedError() from e
            except BaseException:
                # Cancelled: roll back and let the cancellation through
                self.api.restore_authorization(previous_authorization)
                raise

            session = AuthSession(profile=profile, access_token=token)
            self._session = session
            self.api.set_bearer_token(token)

            try:
                self.store.save(session)
            except Exception as e:
                logger.warning("Signed in, but the session could not be persisted: %s", e)

            logger.info("Signed in as %s", profile.display_name)
            return profile
        finally:
            self._signing_in = False

    async def sign_out(self) -> None:
        """Revoke the token and drop the session.

        Revocation is best-effort. Local state is always cleared and no error
        reaches the caller.
        """
        if self._signing_in or self._signing_out:
            logger.info("Sign-out ignored: another operation is in progress")
            return

        self._signing_out = True
        try:
            token = self.access_token
            if token:
                try:
                    await self.oauth.revoke_token(token)
                except Exception as e:
                    logger.warning("Token revocation failed: %s", e)
        finally:
            self._session = None
            try:
                self.store.clear()
            except Exception as e:
                logger.warning("Could not clear stored session: %s", e)
            finally:
                self.api.clear_bearer_token()
                self._signing_out = False
            logger.info("Signed out")
