"""File-backed storage back-ends.

Each entry is one JSON document under <cache_directory>/<namespace>/. The file
name is the SHA256 of the key, so arbitrary keys (service session ids) map to
safe, fixed-length file names.

Document format:
    {"key": "<original key>", "expires_at": <unix time or null>, "value": ...}

Writes go to a temporary file in the same directory followed by os.replace(),
so readers never see a partially written entry and concurrent writers are
last-write-wins. Expired or unreadable entries are deleted on read.
"""

from __future__ import annotations

__all__ = [
    "FileSessionBackend",
    "FileSessionStore",
]

import hashlib
import json
import time
from pathlib import Path
from typing import Any, Callable

from sso_broker.telemetry.system_logger import get_system_logger
from sso_broker.utils.file_helpers import set_secure_permissions, write_json_atomic

_SUFFIX = ".json"


class _FileCache:
    """Namespaced JSON file cache with absolute expiry times."""

    def __init__(
        self,
        directory: str | Path,
        namespace: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = Path(directory).expanduser() / namespace
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._directory / f"{digest}{_SUFFIX}"

    def _ensure_directory(self) -> None:
        if not self._directory.exists():
            self._directory.mkdir(parents=True, exist_ok=True)
            set_secure_permissions(self._directory, is_directory=True)

    def read(self, key: str) -> Any | None:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            get_system_logger().warning(
                {
                    "event": "cache_entry_unreadable",
                    "path": str(path),
                    "error": str(e),
                    "message": f"Discarding unreadable cache entry {path.name}",
                }
            )
            self._unlink(path)
            return None

        expires_at = document.get("expires_at")
        if expires_at is not None and self._clock() >= expires_at:
            self._unlink(path)
            return None

        return document.get("value")

    def write(self, key: str, value: Any, ttl: int | None) -> None:
        self._ensure_directory()
        document = {
            "key": key,
            "expires_at": self._clock() + ttl if ttl else None,
            "value": value,
        }

        write_json_atomic(self._path(key), document)

    def delete(self, key: str) -> None:
        self._unlink(self._path(key))

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


class FileSessionStore:
    """Session binding cache persisted in a directory.

    Mirrors a files-based TTL cache: bindings survive broker restarts and can
    be shared by several broker processes on one host.

    Args:
        directory: Base cache directory (config ``cache_directory``).
        clock: Wall-clock time source (injectable for tests).
    """

    NAMESPACE = "bindings"

    def __init__(self, directory: str | Path, clock: Callable[[], float] = time.time) -> None:
        self._cache = _FileCache(directory, self.NAMESPACE, clock=clock)

    @property
    def directory(self) -> Path:
        return self._cache.directory

    def get(self, key: str) -> str | None:
        value = self._cache.read(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str, ttl: int) -> None:
        self._cache.write(key, value, ttl)


class FileSessionBackend:
    """User sessions persisted in a directory."""

    NAMESPACE = "sessions"

    def __init__(
        self,
        directory: str | Path,
        ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache = _FileCache(directory, self.NAMESPACE, clock=clock)
        self._ttl_seconds = ttl_seconds

    def load(self, session_id: str) -> dict[str, Any] | None:
        value = self._cache.read(session_id)
        return value if isinstance(value, dict) else None

    def save(self, session_id: str, data: dict[str, Any]) -> None:
        self._cache.write(session_id, data, self._ttl_seconds)

    def clear(self, session_id: str) -> None:
        self._cache.delete(session_id)
