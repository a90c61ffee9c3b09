"""Custom exceptions for sso-broker.

Exceptions are organized into two categories:

Protocol Errors (request fails, broker continues):
    - BrokerError: Base for every failure surfaced through the fail pipeline.
      Each carries a machine-readable code, a message and an HTTP status.
      Subclasses map one-to-one to the error kinds of the protocol
      (missing parameter, malformed session id, checksum mismatch, ...).

Startup Failures:
    - ConfigurationError: Config file missing or invalid.

Usage:
    from sso_broker.exceptions import BrokerError, SessionNotBoundError
"""

from __future__ import annotations

__all__ = [
    "AuthenticationFailedError",
    "BrokerError",
    "ChecksumMismatchError",
    "ConfigurationError",
    "InvalidCallbackError",
    "InvariantViolationError",
    "MalformedSessionIdError",
    "MissingParameterError",
    "SessionConflictError",
    "SessionNotBoundError",
    "UnknownCommandError",
    "UnknownServiceError",
]

from typing import Any


# =============================================================================
# Protocol Errors (rendered through the fail pipeline)
# =============================================================================


class BrokerError(Exception):
    """Base exception for broker protocol failures.

    The engine raises these to terminate a request. The fail pipeline either
    renders them with the negotiated return type or, when ``fail_exception``
    is configured, lets them propagate to the embedding caller.

    Attributes:
        code: Stable error code for programmatic handling.
        message: Human-readable message (also sent to the client).
        status_code: HTTP status the error maps to.
    """

    code: str = "BROKER_ERROR"
    default_status: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize BrokerError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status. Defaults to the subclass default.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status

    @property
    def is_internal(self) -> bool:
        """True for 5xx failures that should be logged as warnings."""
        return self.status_code >= 500

    def to_dict(self) -> dict[str, Any]:
        """Structured representation for embedding callers."""
        return {"code": self.code, "message": self.message, "status": self.status_code}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"

    def __str__(self) -> str:
        return self.message


class MissingParameterError(BrokerError):
    """A required request parameter or header is absent."""

    code = "MISSING_PARAMETER"
    default_status = 400


class MalformedSessionIdError(BrokerError):
    """A service session id, or a service/token to build one from, has the wrong shape."""

    code = "MALFORMED_SESSION_ID"
    default_status = 400


class UnknownServiceError(BrokerError):
    """No service with the given id is registered."""

    code = "UNKNOWN_SERVICE"
    default_status = 403


class ChecksumMismatchError(BrokerError):
    """An attach checksum or session checksum did not verify.

    Raised for forged checksums and for unknown services alike, so callers
    cannot distinguish between the two.
    """

    code = "CHECKSUM_MISMATCH"
    default_status = 403


class SessionNotBoundError(BrokerError):
    """The service session id is not attached to a user session.

    Services recover by attaching again.
    """

    code = "SESSION_NOT_BOUND"
    default_status = 403


class AuthenticationFailedError(BrokerError):
    """The authenticator rejected the supplied credentials."""

    code = "AUTHENTICATION_FAILED"
    default_status = 400


class InvariantViolationError(BrokerError):
    """An internal invariant does not hold (e.g. logged-in user missing from directory)."""

    code = "INVARIANT_VIOLATION"
    default_status = 500


class SessionConflictError(InvariantViolationError):
    """A different user session is already active for this request.

    Signals a programming or environment error rather than a client error.
    """

    code = "SESSION_CONFLICT"
    default_status = 500


class UnknownCommandError(BrokerError):
    """The dispatcher was asked for a command it does not implement."""

    code = "UNKNOWN_COMMAND"
    default_status = 404


class InvalidCallbackError(BrokerError):
    """The JSONP callback is not a valid JavaScript identifier path."""

    code = "INVALID_CALLBACK"
    default_status = 400


# =============================================================================
# Startup Failures
# =============================================================================


class ConfigurationError(Exception):
    """Configuration is invalid or incomplete.

    Raised when:
    - Config file does not exist (not initialized)
    - Config file contains invalid JSON
    - Config file fails Pydantic validation
    """

    exit_code = 16
