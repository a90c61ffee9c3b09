"""In-memory storage back-ends.

Data does not persist across restarts and is not shared between processes.
Suitable for tests, demos and single-process deployments.

Concurrency: both classes guard their dict with a lock so they can be shared
between the worker threads of a sync server.
"""

from __future__ import annotations

__all__ = [
    "MemorySessionBackend",
    "MemorySessionStore",
]

import copy
import threading
import time
from typing import Any, Callable


class MemorySessionStore:
    """TTL cache in a dict.

    Expired entries are removed lazily on lookup.

    Attributes:
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class MemorySessionBackend:
    """User sessions in a dict with optional expiry.

    Returned data is a copy, so callers must save() to persist changes.
    """

    def __init__(
        self,
        ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, tuple[dict[str, Any], float | None]] = {}
        self._lock = threading.Lock()

    def load(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None

            data, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._sessions[session_id]
                return None
            return copy.deepcopy(data)

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        expires_at = self._clock() + self._ttl_seconds if self._ttl_seconds else None
        with self._lock:
            self._sessions[session_id] = (copy.deepcopy(data), expires_at)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
