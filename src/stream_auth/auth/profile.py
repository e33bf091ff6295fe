"""Exchange a bearer token for the signed-in user's profile."""

from __future__ import annotations

import httpx

from ..api.client import StreamAPIClient
from ..errors import ProfileFetchError
from ..oauth.storage import UserProfile


class ProfileFetcher:
    """Fetches the canonical profile through the shared API client."""

    def __init__(self, api: StreamAPIClient):
        self.api = api

    async def fetch_profile(self, token: str) -> UserProfile:
        """Set the bearer token on the API client and fetch the profile.

        The users endpoint returns a list even for the token's own user;
        the first element is the canonical profile.

        Raises:
            ProfileFetchError: On HTTP failure or a malformed/empty response
        """
        self.api.set_bearer_token(token)

        try:
            payload = await self.api.users.get_users()
        except httpx.HTTPStatusError as e:
            raise ProfileFetchError(
                f"Profile request failed: {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ProfileFetchError(f"Profile request failed: {e}") from e
        except ValueError as e:
            raise ProfileFetchError("Profile response is not valid JSON") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or not data:
            raise ProfileFetchError("Profile response contains no users")

        try:
            return UserProfile.from_dict(data[0])
        except (KeyError, TypeError) as e:
            raise ProfileFetchError(f"Profile response is missing {e}") from e
