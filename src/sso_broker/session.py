"""Per-request user session context.

The broker's user session (who is logged in) lives in a SessionBackend. Each
request gets its own SessionContext, so no session state is held in
process-wide variables:

- Browser requests (attach) start or resume the session named by the
  broker's session cookie.
- Service requests (login, logout, userinfo) resume the session that the
  service session id is bound to.

At most one user session is active per context. Asking to resume a different
one raises SessionConflictError.
"""

from __future__ import annotations

__all__ = [
    "SessionContext",
    "UserSession",
    "generate_session_id",
]

import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sso_broker.constants import SESSION_ID_BYTES, USER_SESSION_KEY
from sso_broker.exceptions import SessionConflictError

if TYPE_CHECKING:
    from sso_broker.stores.protocol import SessionBackend


def generate_session_id() -> str:
    """Cryptographically secure user session id (256 bits)."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


@dataclass
class UserSession:
    """A broker user session.

    Attributes:
        session_id: Identifier (also the value bound to service sessions).
        data: Session fields. USER_SESSION_KEY holds the authenticated username.
    """

    session_id: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def username(self) -> str | None:
        return self.data.get(USER_SESSION_KEY)


class SessionContext:
    """User session handling for a single request.

    Args:
        backend: Storage for session data.
        requested_id: Session id presented by the client (cookie), if any.

    Attributes:
        active: The started/resumed session, or None.
        created: True if start() created a new session (the HTTP layer then
            sets the session cookie).
    """

    def __init__(self, backend: "SessionBackend", requested_id: str | None = None) -> None:
        self._backend = backend
        self._requested_id = requested_id
        self.active: UserSession | None = None
        self.created = False

    def start(self) -> UserSession:
        """Start or resume the client's own session.

        Resumes the requested session if the backend still has it, otherwise
        creates and persists a new one.
        """
        if self.active is not None:
            return self.active

        if self._requested_id:
            data = self._backend.load(self._requested_id)
            if data is not None:
                self.active = UserSession(self._requested_id, data)
                return self.active

        session = UserSession(generate_session_id())
        self._backend.save(session.session_id, session.data)
        self.active = session
        self.created = True
        return session

    def check_conflict(self, session_id: str) -> None:
        """Raise SessionConflictError if a session other than session_id is active."""
        if self.active is not None and self.active.session_id != session_id:
            raise SessionConflictError("Session has already started")

    def resume(self, session_id: str) -> UserSession:
        """Resume a session by id.

        A session missing from the backend (e.g. expired) resumes empty.

        Raises:
            SessionConflictError: If a different session is already active.
        """
        self.check_conflict(session_id)
        if self.active is not None:
            return self.active

        data = self._backend.load(session_id)
        self.active = UserSession(session_id, data or {})
        return self.active

    def get(self, key: str) -> Any:
        if self.active is None:
            return None
        return self.active.data.get(key)

    def set(self, key: str, value: Any) -> None:
        """Set (or with None, remove) a field and persist the session.

        Raises:
            RuntimeError: If no session is active.
        """
        if self.active is None:
            raise RuntimeError("No active user session")

        if value is None:
            self.active.data.pop(key, None)
        else:
            self.active.data[key] = value

        self._backend.save(self.active.session_id, self.active.data)

