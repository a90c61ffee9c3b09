"""Shared fixtures: a one-service registry, a bcrypt user table and in-memory stores."""

from __future__ import annotations

from typing import Any

import pytest

from sso_broker.codec import compute_attach_checksum
from sso_broker.engine import Broker
from sso_broker.providers.static import StaticServiceRegistry, StaticUserTable, hash_password
from sso_broker.stores.memory import MemorySessionBackend, MemorySessionStore

SERVICE_ID = "server1"
SERVICE_SECRET = "8iwzik1bwd"
USERNAME = "max"
PASSWORD = "jackie123"


class FakeClock:
    """Settable time source for TTL tests."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def attach_params(token: str, secret: str = SERVICE_SECRET, **extra: str) -> dict[str, str]:
    """Query parameters of a correctly signed attach request."""
    params = {
        "service": SERVICE_ID,
        "token": token,
        "checksum": compute_attach_checksum(token, secret),
    }
    params.update(extra)
    return params


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt hash of PASSWORD (low cost to keep tests fast)."""
    return hash_password(PASSWORD, rounds=4)


@pytest.fixture
def user_records(password_hash: str) -> dict[str, dict[str, Any]]:
    return {
        USERNAME: {
            "fullname": "Max Admaykin",
            "email": "max.admaykin@example.com",
            "password": password_hash,
        },
    }


@pytest.fixture
def registry() -> StaticServiceRegistry:
    return StaticServiceRegistry({SERVICE_ID: SERVICE_SECRET, "server2": "7pypoox2pc"})


@pytest.fixture
def users(user_records: dict[str, dict[str, Any]]) -> StaticUserTable:
    return StaticUserTable(user_records)


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def session_backend() -> MemorySessionBackend:
    return MemorySessionBackend()


@pytest.fixture
def broker(
    registry: StaticServiceRegistry,
    users: StaticUserTable,
    session_store: MemorySessionStore,
) -> Broker:
    """Broker that renders failures (fail_exception disabled)."""
    return Broker(
        registry=registry,
        authenticator=users,
        directory=users,
        session_store=session_store,
        cache_ttl=60,
    )
