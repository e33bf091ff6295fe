"""Session persistence on top of a key-value store.

The authenticated session is stored as a single JSON record under a fixed
key. The store is a best-effort cache: the in-memory session owned by
``SessionManager`` is the source of truth for the running process.

Note: Tokens are stored in plaintext and protected by file permissions (0o600).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Protocol

from ..errors import StorageError


logger = logging.getLogger(__name__)

# Default storage directory
DEFAULT_CONFIG_DIR = Path.home() / ".stream-auth"

SESSION_KEY = "@stream.data:user"


@dataclass(frozen=True)
class UserProfile:
    """Canonical profile of the signed-in account."""

    id: str | int
    display_name: str
    email: str
    profile_image_url: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserProfile":
        """Create from a provider or storage payload, ignoring extra keys."""
        return cls(
            id=data["id"],
            display_name=data["display_name"],
            email=data["email"],
            profile_image_url=data["profile_image_url"],
        )


@dataclass(frozen=True)
class AuthSession:
    """An authenticated session: the profile plus the token that owns it."""

    profile: UserProfile
    access_token: str

    def to_record(self) -> dict[str, Any]:
        """Flatten into the persisted record format."""
        return {**self.profile.to_dict(), "access_token": self.access_token}

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "AuthSession":
        token = data["access_token"]
        if not isinstance(token, str) or not token:
            raise ValueError("access_token must be a non-empty string")
        return cls(profile=UserProfile.from_dict(data), access_token=token)


class KeyValueStore(Protocol):
    """Persistent string key-value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store, for embedding and tests."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore:
    """Key-value store backed by a JSON file with restrictive permissions.

    Usage:
        store = FileKeyValueStore()  # ~/.stream-auth/storage.json
        store.set("key", "value")
        store.get("key")
        store.remove("key")
    """

    def __init__(self, config_dir: Path | str | None = None):
        self.config_dir = Path(config_dir).expanduser() if config_dir else DEFAULT_CONFIG_DIR
        self.storage_file = self.config_dir / "storage.json"

    def _read(self) -> dict[str, str]:
        if not self.storage_file.exists():
            return {}

        try:
            with open(self.storage_file) as f:
                data = json.load(f)
        except OSError as e:
            raise StorageError(f"Could not read {self.storage_file}: {e}") from e
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt storage file {self.storage_file}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Corrupt storage file {self.storage_file}: expected an object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.storage_file, "w") as f:
                json.dump(data, f, indent=2)

            # Set restrictive permissions
            os.chmod(self.storage_file, 0o600)
        except OSError as e:
            raise StorageError(f"Could not write {self.storage_file}: {e}") from e

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key not in data:
            return
        del data[key]
        self._write(data)


class SessionStore:
    """Persists the single authenticated session record.

    Usage:
        store = SessionStore(FileKeyValueStore())

        store.save(session)
        session = store.load()  # None if nothing usable is stored
        store.clear()
    """

    def __init__(self, backend: KeyValueStore | None = None, key: str = SESSION_KEY):
        self.backend = backend if backend is not None else FileKeyValueStore()
        self.key = key

    def load(self) -> AuthSession | None:
        """Load the persisted session.

        Unreadable or malformed records are treated as absent.
        """
        try:
            raw = self.backend.get(self.key)
        except (StorageError, OSError) as e:
            logger.warning("Could not read stored session: %s", e)
            return None

        if raw is None:
            return None

        try:
            return AuthSession.from_record(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed stored session: %s", e)
            return None

    def save(self, session: AuthSession) -> None:
        """Overwrite the persisted session.

        Raises:
            StorageError: If the backend write fails
        """
        content = json.dumps(session.to_record())
        try:
            self.backend.set(self.key, content)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"Could not save session: {e}") from e

    def clear(self) -> None:
        """Remove the persisted session. No error if nothing is stored.

        Raises:
            StorageError: If the backend removal fails
        """
        try:
            self.backend.remove(self.key)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"Could not clear session: {e}") from e
