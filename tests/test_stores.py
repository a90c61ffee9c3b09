"""Tests for the binding stores and user session backends."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

from conftest import FakeClock
from sso_broker.config import BrokerConfig
from sso_broker.stores import (
    FileSessionBackend,
    FileSessionStore,
    MemorySessionBackend,
    MemorySessionStore,
    SessionBackend,
    SessionStore,
    create_stores,
)

SID = "SSO-server1-abc-0123456789abcdef"


# ============================================================================
# Session Store (bindings)
# ============================================================================


class TestMemorySessionStore:
    """Tests for MemorySessionStore."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def store(self, clock: FakeClock) -> MemorySessionStore:
        return MemorySessionStore(clock=clock)

    def test_satisfies_protocol(self, store: MemorySessionStore) -> None:
        assert isinstance(store, SessionStore)

    def test_get_returns_stored_value(self, store: MemorySessionStore) -> None:
        """Given a stored binding, get returns the user session id."""
        store.set(SID, "user-session-1", 60)

        assert store.get(SID) == "user-session-1"

    def test_get_missing_returns_none(self, store: MemorySessionStore) -> None:
        assert store.get(SID) is None

    def test_entry_expires_after_ttl(self, store: MemorySessionStore, clock: FakeClock) -> None:
        """Given an entry older than its TTL, get returns None and drops it."""
        # Arrange
        store.set(SID, "user-session-1", 60)

        # Act
        clock.advance(59)
        before = store.get(SID)
        clock.advance(1)
        after = store.get(SID)

        # Assert
        assert before == "user-session-1"
        assert after is None
        assert len(store) == 0

    def test_last_write_wins(self, store: MemorySessionStore) -> None:
        """Given two writes to one key, the later value is kept."""
        store.set(SID, "first", 60)
        store.set(SID, "second", 60)

        assert store.get(SID) == "second"

    def test_rewrite_refreshes_ttl(self, store: MemorySessionStore, clock: FakeClock) -> None:
        store.set(SID, "value", 10)
        clock.advance(8)
        store.set(SID, "value", 10)
        clock.advance(8)

        assert store.get(SID) == "value"


class TestFileSessionStore:
    """Tests for FileSessionStore."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def store(self, tmp_path: Path, clock: FakeClock) -> FileSessionStore:
        return FileSessionStore(tmp_path, clock=clock)

    def test_satisfies_protocol(self, store: FileSessionStore) -> None:
        assert isinstance(store, SessionStore)

    def test_get_returns_stored_value(self, store: FileSessionStore) -> None:
        store.set(SID, "user-session-1", 60)

        assert store.get(SID) == "user-session-1"

    def test_entry_file_is_named_by_key_hash(self, store: FileSessionStore) -> None:
        """Given a stored key, its file is <sha256(key)>.json holding the original key."""
        # Act
        store.set(SID, "user-session-1", 60)

        # Assert
        path = store.directory / f"{hashlib.sha256(SID.encode()).hexdigest()}.json"
        assert path.exists()
        document = json.loads(path.read_text())
        assert document["key"] == SID
        assert document["value"] == "user-session-1"

    def test_bindings_survive_new_instance(self, tmp_path: Path, clock: FakeClock) -> None:
        """Given a binding written by one store, another store on the same directory reads it."""
        FileSessionStore(tmp_path, clock=clock).set(SID, "user-session-1", 60)

        assert FileSessionStore(tmp_path, clock=clock).get(SID) == "user-session-1"

    def test_expired_entry_is_removed(self, store: FileSessionStore, clock: FakeClock) -> None:
        """Given an expired entry, get returns None and deletes the file."""
        # Arrange
        store.set(SID, "user-session-1", 60)
        clock.advance(60)

        # Act
        result = store.get(SID)

        # Assert
        assert result is None
        assert list(store.directory.glob("*.json")) == []

    def test_corrupt_entry_is_discarded(self, store: FileSessionStore) -> None:
        """Given an unreadable entry, get returns None and deletes it."""
        # Arrange
        store.set(SID, "user-session-1", 60)
        path = next(store.directory.glob("*.json"))
        path.write_text("{not json")

        # Act
        result = store.get(SID)

        # Assert
        assert result is None
        assert not path.exists()

    def test_no_temporary_files_left_behind(self, store: FileSessionStore) -> None:
        store.set(SID, "first", 60)
        store.set(SID, "second", 60)

        assert list(store.directory.glob("*.tmp")) == []
        assert store.get(SID) == "second"


# ============================================================================
# Session backends (user sessions)
# ============================================================================


class TestMemorySessionBackend:
    """Tests for MemorySessionBackend."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemorySessionBackend(), SessionBackend)

    def test_load_missing_returns_none(self) -> None:
        assert MemorySessionBackend().load("nope") is None

    def test_save_and_load(self) -> None:
        backend = MemorySessionBackend()
        backend.save("s1", {"sso_user": "max"})

        assert backend.load("s1") == {"sso_user": "max"}

    def test_loaded_data_is_a_copy(self) -> None:
        """Given loaded data mutated without save, the stored session is unchanged."""
        # Arrange
        backend = MemorySessionBackend()
        backend.save("s1", {"sso_user": "max"})

        # Act
        data = backend.load("s1")
        assert data is not None
        data["sso_user"] = "mallory"

        # Assert
        assert backend.load("s1") == {"sso_user": "max"}

    def test_session_expires_after_ttl(self) -> None:
        clock = FakeClock()
        backend = MemorySessionBackend(ttl_seconds=30, clock=clock)
        backend.save("s1", {})

        clock.advance(30)

        assert backend.load("s1") is None

    def test_clear_removes_session(self) -> None:
        backend = MemorySessionBackend()
        backend.save("s1", {})

        backend.clear("s1")

        assert backend.load("s1") is None


class TestFileSessionBackend:
    """Tests for FileSessionBackend."""

    def test_satisfies_protocol(self, tmp_path: Path) -> None:
        assert isinstance(FileSessionBackend(tmp_path), SessionBackend)

    def test_save_load_clear(self, tmp_path: Path) -> None:
        """Given a saved session, load returns it until cleared."""
        backend = FileSessionBackend(tmp_path)

        backend.save("s1", {"sso_user": "max"})
        loaded = backend.load("s1")
        backend.clear("s1")

        assert loaded == {"sso_user": "max"}
        assert backend.load("s1") is None

    def test_clear_missing_session_is_noop(self, tmp_path: Path) -> None:
        FileSessionBackend(tmp_path).clear("never-saved")

    def test_session_expires_after_ttl(self, tmp_path: Path) -> None:
        clock = FakeClock()
        backend = FileSessionBackend(tmp_path, ttl_seconds=30, clock=clock)
        backend.save("s1", {"sso_user": "max"})

        clock.advance(31)

        assert backend.load("s1") is None

    def test_sessions_and_bindings_use_separate_directories(self, tmp_path: Path) -> None:
        """Given the same cache directory, bindings and sessions do not collide."""
        store = FileSessionStore(tmp_path)
        backend = FileSessionBackend(tmp_path)

        store.set("same-key", "binding", 60)
        backend.save("same-key", {"sso_user": "max"})

        assert store.get("same-key") == "binding"
        assert backend.load("same-key") == {"sso_user": "max"}


class TestCreateStores:
    """Tests for create_stores factory."""

    def test_memory_backend(self) -> None:
        store, backend = create_stores(BrokerConfig(cache_backend="memory"))

        assert isinstance(store, MemorySessionStore)
        assert isinstance(backend, MemorySessionBackend)

    def test_file_backend_uses_cache_directory(self, tmp_path: Path) -> None:
        """Given cache_backend=file, both stores live under cache_directory."""
        store, backend = create_stores(
            BrokerConfig(cache_backend="file", cache_directory=str(tmp_path))
        )

        assert isinstance(store, FileSessionStore)
        assert isinstance(backend, FileSessionBackend)
        assert store.directory.parent == tmp_path
