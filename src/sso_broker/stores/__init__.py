"""Storage back-ends for bindings and user sessions.

Protocols:
- SessionStore: TTL cache, service session id -> user session id
- SessionBackend: user session data (load / save / clear)

Implementations:
- MemorySessionStore / MemorySessionBackend: in-process dicts
- FileSessionStore / FileSessionBackend: JSON files under cache_directory
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sso_broker.stores.file import FileSessionBackend, FileSessionStore
from sso_broker.stores.memory import MemorySessionBackend, MemorySessionStore
from sso_broker.stores.protocol import SessionBackend, SessionStore

if TYPE_CHECKING:
    from sso_broker.config import BrokerConfig

__all__ = [
    "FileSessionBackend",
    "FileSessionStore",
    "MemorySessionBackend",
    "MemorySessionStore",
    "SessionBackend",
    "SessionStore",
    "create_stores",
]


def create_stores(config: "BrokerConfig") -> tuple[SessionStore, SessionBackend]:
    """Create the binding store and user session backend selected by config.

    Args:
        config: Broker configuration (cache_backend, cache_directory, session_ttl).

    Returns:
        (session_store, session_backend)
    """
    if config.cache_backend == "memory":
        return MemorySessionStore(), MemorySessionBackend(ttl_seconds=config.session_ttl)

    return (
        FileSessionStore(config.cache_directory),
        FileSessionBackend(config.cache_directory, ttl_seconds=config.session_ttl),
    )
