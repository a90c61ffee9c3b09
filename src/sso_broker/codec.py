"""Token codec for service session ids and attach checksums.

A service proves it knows its shared secret by hashing a per-attempt random
token with it. Two variants exist, distinguished by a fixed prefix:

    attach checksum   = sha256("attach"  + token + secret)
    session checksum  = sha256("session" + token + secret)

The service session id (SSID) embeds the session checksum:

    SSO-{service_id}-{token}-{session checksum}

SSIDs are self-verifying. Anyone holding the secret can recompute and
confirm them, so the broker never stores tokens.

Usage:
    codec = TokenCodec(registry)
    sid = codec.build_ssid("server1", token)
    service_id = codec.validate_ssid(sid)  # raises on tampering
"""

from __future__ import annotations

__all__ = [
    "ParsedSSID",
    "TokenCodec",
    "compute_attach_checksum",
    "compute_session_checksum",
    "format_ssid",
    "is_ssid_component",
]

import hashlib
import hmac
import re
from typing import TYPE_CHECKING, NamedTuple

from sso_broker.constants import (
    ATTACH_CHECKSUM_PREFIX,
    SESSION_CHECKSUM_PREFIX,
    SSID_PATTERN,
    SSID_PREFIX,
)
from sso_broker.exceptions import (
    ChecksumMismatchError,
    MalformedSessionIdError,
    UnknownServiceError,
)

if TYPE_CHECKING:
    from sso_broker.providers.protocol import ServiceInfo, ServiceRegistry

_SSID_RE = re.compile(SSID_PATTERN, re.ASCII)
_COMPONENT_RE = re.compile(r"\w+", re.ASCII)


# =============================================================================
# Pure helpers (shared with the service-side client)
# =============================================================================


def _checksum(prefix: str, token: str, secret: str) -> str:
    return hashlib.sha256(f"{prefix}{token}{secret}".encode("utf-8")).hexdigest()


def compute_session_checksum(token: str, secret: str) -> str:
    """Session checksum for a token, as hex."""
    return _checksum(SESSION_CHECKSUM_PREFIX, token, secret)


def compute_attach_checksum(token: str, secret: str) -> str:
    """Attach checksum for a token, as hex."""
    return _checksum(ATTACH_CHECKSUM_PREFIX, token, secret)


def format_ssid(service_id: str, token: str, secret: str) -> str:
    """Build an SSID from its parts and the service secret."""
    return f"{SSID_PREFIX}-{service_id}-{token}-{compute_session_checksum(token, secret)}"


def is_ssid_component(value: str) -> bool:
    """True if value can be embedded in an SSID (ASCII word characters only)."""
    return _COMPONENT_RE.fullmatch(value) is not None


class ParsedSSID(NamedTuple):
    """Components of a service session id."""

    service_id: str
    token: str
    checksum: str


# =============================================================================
# Registry-aware codec
# =============================================================================


class TokenCodec:
    """Builds, parses and validates SSIDs using a service registry.

    Unknown services yield None from the build/checksum operations. Validation
    folds malformed ids, unknown services and forged checksums into one
    failure so callers cannot tell them apart.
    """

    def __init__(self, registry: "ServiceRegistry") -> None:
        self._registry = registry

    def require_service(self, service_id: str) -> "ServiceInfo":
        """Look up a service.

        Raises:
            UnknownServiceError: If the registry does not know the service.
        """
        service = self._registry.lookup(service_id)
        if service is None:
            raise UnknownServiceError(f"Unknown service '{service_id}'")
        return service

    def session_checksum(self, service_id: str, token: str) -> str | None:
        service = self._registry.lookup(service_id)
        if service is None:
            return None
        return compute_session_checksum(token, service.secret)

    def attach_checksum(self, service_id: str, token: str) -> str | None:
        service = self._registry.lookup(service_id)
        if service is None:
            return None
        return compute_attach_checksum(token, service.secret)

    def build_ssid(self, service_id: str, token: str) -> str | None:
        service = self._registry.lookup(service_id)
        if service is None:
            return None
        return format_ssid(service_id, token, service.secret)

    @staticmethod
    def parse_ssid(sid: str) -> ParsedSSID:
        """Split an SSID into its components.

        Args:
            sid: Candidate service session id.

        Returns:
            ParsedSSID with service_id, token and checksum.

        Raises:
            MalformedSessionIdError: If sid does not match SSO-<word>-<word>-<hex>.
        """
        match = _SSID_RE.match(sid) if sid else None
        if match is None:
            raise MalformedSessionIdError("Invalid session id")
        return ParsedSSID(*match.groups())

    def validate_ssid(self, sid: str) -> str:
        """Verify an SSID and return the service it belongs to.

        Args:
            sid: Service session id presented by a service.

        Returns:
            The service id embedded in sid.

        Raises:
            ChecksumMismatchError: If sid cannot be parsed, the service is
                unknown or the checksum does not match the registry secret.
        """
        try:
            parsed = self.parse_ssid(sid)
            service = self.require_service(parsed.service_id)
        except (MalformedSessionIdError, UnknownServiceError) as e:
            raise ChecksumMismatchError("Checksum failed") from e

        expected = format_ssid(parsed.service_id, parsed.token, service.secret)
        if not hmac.compare_digest(expected.encode("utf-8"), sid.encode("utf-8")):
            raise ChecksumMismatchError("Checksum failed")

        return parsed.service_id

    def verify_attach_checksum(self, service_id: str, token: str, checksum: str | None) -> bool:
        """Check a supplied attach checksum.

        False when the checksum is missing, the service is unknown or the
        values differ.
        """
        if not checksum:
            return False
        expected = self.attach_checksum(service_id, token)
        if expected is None:
            return False
        return hmac.compare_digest(expected.encode("utf-8"), checksum.encode("utf-8"))
