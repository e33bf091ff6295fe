"""Twitch API client."""

from .client import StreamAPIClient, UsersClient

__all__ = ["StreamAPIClient", "UsersClient"]
