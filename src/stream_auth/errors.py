"""Exception hierarchy shared across stream_auth."""

from __future__ import annotations


class StreamAuthError(Exception):
    """Base exception for stream_auth errors."""

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)


class ConfigError(StreamAuthError):
    """Missing or invalid configuration."""

    pass


class StorageError(StreamAuthError):
    """The persistent key-value store could not be read or written."""

    pass


class ProfileFetchError(StreamAuthError):
    """The profile endpoint failed or returned a malformed/empty payload."""

    pass


class AlreadyInProgressError(StreamAuthError):
    """A sign-in or sign-out is already in flight."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot start: {operation} already in progress")


class AuthenticationFailedError(StreamAuthError):
    """Sign-in failed.

    Opaque to the UI layer. The underlying error is available
    as ``__cause__``.
    """

    def __init__(self, message: str = "Sign-in failed"):
        super().__init__(message)
