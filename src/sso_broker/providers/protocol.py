"""Protocol definitions for the broker's external collaborators.

The broker never owns service secrets, credentials or user profiles. It calls
out to three narrow lookups:

- ServiceRegistry: service id -> shared secret
- Authenticator: username + password -> success or failure reason
- UserDirectory: username -> public user record

Implementations satisfy these protocols structurally (no inheritance needed),
e.g. an adapter over a database table or an LDAP directory.
"""

from __future__ import annotations

__all__ = [
    "AuthResult",
    "Authenticator",
    "ServiceInfo",
    "ServiceRegistry",
    "UserDirectory",
]

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class ServiceInfo:
    """A registered service.

    Attributes:
        service_id: Identifier the service presents to the broker.
        secret: Shared secret used to derive checksums.
    """

    service_id: str
    secret: str

    def __repr__(self) -> str:
        return f"ServiceInfo(service_id={self.service_id!r}, secret='***')"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of an authentication attempt.

    Attributes:
        success: Whether the credentials were accepted.
        error: Failure reason reported to the service (None on success).
    """

    success: bool
    error: str | None = None

    @property
    def failed(self) -> bool:
        return not self.success

    @classmethod
    def ok(cls) -> "AuthResult":
        return cls(success=True)

    @classmethod
    def fail(cls, error: str) -> "AuthResult":
        return cls(success=False, error=error)


@runtime_checkable
class ServiceRegistry(Protocol):
    """Lookup of registered services."""

    def lookup(self, service_id: str) -> ServiceInfo | None:
        """Return the service, or None when the id is unknown."""
        ...


@runtime_checkable
class Authenticator(Protocol):
    """Credential verification.

    Implementations must reject empty usernames and passwords themselves.
    """

    def authenticate(self, username: str, password: str) -> AuthResult:
        """Verify a username/password pair."""
        ...


@runtime_checkable
class UserDirectory(Protocol):
    """Lookup of public user records.

    Records include ``username`` and must never contain password or
    secret fields.
    """

    def lookup(self, username: str) -> dict[str, Any] | None:
        """Return the public record for a user, or None if unknown."""
        ...
