"""In-memory service registry and user table.

Static tables are the simplest implementation of the collaborator protocols.
They back the config-driven server (services and users declared in the config
file), the demo tables, and the test suite.

Passwords are stored as bcrypt hashes, never in clear text. Hashes produced
by PHP's password_hash() ($2y$) are accepted.
"""

from __future__ import annotations

__all__ = [
    "StaticServiceRegistry",
    "StaticUserTable",
    "hash_password",
    "verify_password",
]

from collections.abc import Mapping
from typing import Any

import bcrypt

from sso_broker.constants import SECRET_USER_FIELDS
from sso_broker.providers.protocol import AuthResult, ServiceInfo


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt.

    Args:
        password: Clear-text password.
        rounds: bcrypt cost factor.

    Returns:
        Hash string in modular crypt format ($2b$...).
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash.

    Malformed hashes never verify.
    """
    # $2y$ (PHP) and $2b$ are the same algorithm
    if password_hash.startswith("$2y$"):
        password_hash = "$2b$" + password_hash[4:]
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


class StaticServiceRegistry:
    """Service registry backed by a mapping of service id -> secret."""

    def __init__(self, services: Mapping[str, str]) -> None:
        self._services = {
            service_id: ServiceInfo(service_id=service_id, secret=secret)
            for service_id, secret in services.items()
        }

    def lookup(self, service_id: str) -> ServiceInfo | None:
        return self._services.get(service_id)


class StaticUserTable:
    """Authenticator and user directory over a static user table.

    Each entry maps a username to profile fields plus a ``password`` bcrypt
    hash. The hash is used by authenticate() and stripped from lookup().

    Example:
        users = StaticUserTable({
            "max": {"fullname": "Max", "email": "max@example.com", "password": "$2b$..."},
        })
        users.authenticate("max", "secret")  # AuthResult
        users.lookup("max")  # {"username": "max", "fullname": "Max", ...}
    """

    def __init__(self, users: Mapping[str, Mapping[str, Any]]) -> None:
        self._users = {username: dict(record) for username, record in users.items()}

    def authenticate(self, username: str, password: str) -> AuthResult:
        """Verify credentials against the stored bcrypt hash.

        Args:
            username: Username to authenticate.
            password: Clear-text password.

        Returns:
            AuthResult with a reason on failure.
        """
        if not username:
            return AuthResult.fail("username isn't set")
        if not password:
            return AuthResult.fail("password isn't set")

        record = self._users.get(username)
        password_hash = record.get("password") if record else None
        if not isinstance(password_hash, str) or not verify_password(password, password_hash):
            return AuthResult.fail("Invalid credentials")

        return AuthResult.ok()

    def lookup(self, username: str) -> dict[str, Any] | None:
        """Return the public record for a user (no secret fields)."""
        record = self._users.get(username)
        if record is None:
            return None

        public = {"username": username}
        public.update(
            (key, value) for key, value in record.items() if key not in SECRET_USER_FIELDS
        )
        return public
