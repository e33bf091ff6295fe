"""Tests for session storage."""

import json
import os
import pytest

from stream_auth.errors import StorageError
from stream_auth.oauth.storage import (
    SESSION_KEY,
    AuthSession,
    FileKeyValueStore,
    MemoryKeyValueStore,
    SessionStore,
    UserProfile,
)

from tests.conftest import FailingKeyValueStore, SAMPLE_PROFILE


class TestUserProfile:
    """Tests for UserProfile dataclass."""

    def test_from_dict_ignores_extra_keys(self):
        """Should keep only the canonical profile fields."""
        profile = UserProfile.from_dict({
            "id": "141981764",
            "login": "twitchdev",
            "display_name": "TwitchDev",
            "email": "dev@example.com",
            "profile_image_url": "https://example.com/avatar.png",
            "broadcaster_type": "partner",
        })

        assert profile.id == "141981764"
        assert profile.display_name == "TwitchDev"
        assert "login" not in profile.to_dict()

    def test_from_dict_missing_field(self):
        """Should raise KeyError when a field is missing."""
        with pytest.raises(KeyError):
            UserProfile.from_dict({"id": 1, "display_name": "a"})


class TestAuthSession:
    """Tests for AuthSession record format."""

    def test_to_record_is_flat(self, sample_session):
        """Record should be a single flat object with the token."""
        assert sample_session.to_record() == {
            "id": 1,
            "display_name": "a",
            "email": "a@x.com",
            "profile_image_url": "u",
            "access_token": "T",
        }

    def test_from_record_rejects_empty_token(self):
        """Should refuse a record without a usable token."""
        with pytest.raises(ValueError):
            AuthSession.from_record({**SAMPLE_PROFILE.to_dict(), "access_token": ""})


class TestFileKeyValueStore:
    """Tests for FileKeyValueStore."""

    @pytest.fixture
    def store(self, tmp_path):
        return FileKeyValueStore(config_dir=tmp_path / "config")

    def test_get_missing_returns_none(self, store):
        """Should return None when nothing stored."""
        assert store.get("missing") is None

    def test_set_creates_dir_and_file(self, store):
        """Should create the config directory on first write."""
        store.set("key", "value")

        assert store.storage_file.exists()
        assert store.get("key") == "value"

    def test_file_permissions(self, store):
        """Storage file should have restrictive permissions."""
        store.set("key", "value")

        mode = os.stat(store.storage_file).st_mode & 0o777
        assert mode == 0o600

    def test_set_preserves_other_keys(self, store):
        """Should not drop unrelated keys."""
        store.set("a", "1")
        store.set("b", "2")

        assert store.get("a") == "1"
        assert store.get("b") == "2"

    def test_remove_is_idempotent(self, store):
        """Removing a missing key should not fail."""
        store.set("key", "value")
        store.remove("key")
        store.remove("key")

        assert store.get("key") is None

    def test_corrupt_file_raises_storage_error(self, store):
        """Should raise StorageError on an unreadable file."""
        store.config_dir.mkdir(parents=True)
        store.storage_file.write_text("not valid json {")

        with pytest.raises(StorageError):
            store.get("key")

    def test_non_object_file_raises_storage_error(self, store):
        """Should raise StorageError when the file is not a JSON object."""
        store.config_dir.mkdir(parents=True)
        store.storage_file.write_text("[1, 2, 3]")

        with pytest.raises(StorageError):
            store.get("key")


class TestSessionStore:
    """Tests for SessionStore."""

    def test_load_returns_none_when_empty(self, session_store):
        """Should return None when no session stored."""
        assert session_store.load() is None

    def test_save_and_load(self, session_store, sample_session):
        """Loaded session should equal the saved one."""
        session_store.save(sample_session)

        assert session_store.load() == sample_session

    def test_save_uses_fixed_key(self, session_store, memory_backend, sample_session):
        """Should write one JSON record under the session key."""
        session_store.save(sample_session)

        assert list(memory_backend.data) == [SESSION_KEY]
        assert json.loads(memory_backend.data[SESSION_KEY])["access_token"] == "T"

    def test_save_overwrites(self, session_store, sample_session):
        """Saving again should replace the record."""
        session_store.save(sample_session)
        newer = AuthSession(profile=SAMPLE_PROFILE, access_token="T2")
        session_store.save(newer)

        assert session_store.load().access_token == "T2"

    def test_load_malformed_json_returns_none(self, memory_backend):
        """Malformed records should be treated as absent."""
        memory_backend.set(SESSION_KEY, "{not json")

        assert SessionStore(memory_backend).load() is None

    def test_load_missing_field_returns_none(self, memory_backend):
        """Records missing fields should be treated as absent."""
        memory_backend.set(SESSION_KEY, json.dumps({"id": 1, "access_token": "T"}))

        assert SessionStore(memory_backend).load() is None

    def test_load_non_object_returns_none(self, memory_backend):
        """A JSON value that is not an object should be treated as absent."""
        memory_backend.set(SESSION_KEY, json.dumps(["T"]))

        assert SessionStore(memory_backend).load() is None

    def test_load_unreadable_file_returns_none(self, tmp_path):
        """Backend read failures should be treated as absent."""
        backend = FileKeyValueStore(config_dir=tmp_path)
        backend.storage_file.write_text("garbage")

        assert SessionStore(backend).load() is None

    def test_clear_is_idempotent(self, session_store, sample_session):
        """Clearing twice should not fail."""
        session_store.save(sample_session)
        session_store.clear()
        session_store.clear()

        assert session_store.load() is None

    def test_save_failure_raises_storage_error(self, sample_session):
        """Backend OSError should surface as StorageError."""
        store = SessionStore(FailingKeyValueStore())

        with pytest.raises(StorageError):
            store.save(sample_session)

    def test_clear_failure_raises_storage_error(self):
        """Backend OSError on remove should surface as StorageError."""
        store = SessionStore(FailingKeyValueStore())

        with pytest.raises(StorageError):
            store.clear()

    def test_round_trip_through_file(self, tmp_path, sample_session):
        """Session saved by one store instance is visible to a new one."""
        SessionStore(FileKeyValueStore(tmp_path)).save(sample_session)

        assert SessionStore(FileKeyValueStore(tmp_path)).load() == sample_session

    def test_custom_key(self, sample_session):
        """Should honour a custom storage key."""
        backend = MemoryKeyValueStore()
        SessionStore(backend, key="other").save(sample_session)

        assert "other" in backend.data
        assert SessionStore(backend).load() is None
