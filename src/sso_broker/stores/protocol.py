"""Protocols for the broker's storage back-ends.

SessionStore:
    TTL key/value cache holding bindings (service session id -> user
    session id). Only atomic get/set is required; concurrent sets for the
    same key are last-write-wins.

SessionBackend:
    Persistence for broker-side user sessions. Implementations must
    serialize access per session id.
"""

from __future__ import annotations

__all__ = [
    "SessionBackend",
    "SessionStore",
]

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """TTL cache for session bindings."""

    def get(self, key: str) -> str | None:
        """Return the cached value, or None on a miss or after expiry."""
        ...

    def set(self, key: str, value: str, ttl: int) -> None:
        """Store a value for ttl seconds, replacing any previous value."""
        ...


@runtime_checkable
class SessionBackend(Protocol):
    """Storage for user session data keyed by session id."""

    def load(self, session_id: str) -> dict[str, Any] | None:
        """Return stored data, or None if the session does not exist."""
        ...

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        """Persist data for a session (create or replace)."""
        ...

    def clear(self, session_id: str) -> None:
        """Remove a session. Unknown ids are ignored."""
        ...
