"""Protocol engine of the SSO broker.

Implements the broker commands:

    attach    Browser visits the broker via a service redirect/script/image.
              The broker verifies the attach checksum and binds the service
              session id (SSID) to the visitor's user session.
    login     Service posts credentials on behalf of its user.
    logout    Service clears the user's login.
    userinfo  Service asks who is logged in.

Service commands first resolve the presented SSID through the Session Store
(the binding) before touching any user session data.

Every command ends either in a BrokerResponse or in a BrokerError. Errors go
through the fail pipeline: they are rendered in the negotiated shape, or
re-raised to the embedding caller when `fail_exception` is enabled.

Usage:
    broker = Broker(
        registry=registry,
        authenticator=users,
        directory=users,
        session_store=MemorySessionStore(),
    )
    response = broker.attach(request, SessionContext(backend, cookie_value))
"""

from __future__ import annotations

__all__ = ["Broker"]

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from sso_broker.codec import TokenCodec, is_ssid_component
from sso_broker.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    SECRET_USER_FIELDS,
    USER_SESSION_KEY,
)
from sso_broker.exceptions import (
    AuthenticationFailedError,
    BrokerError,
    ChecksumMismatchError,
    InvalidCallbackError,
    InvariantViolationError,
    MalformedSessionIdError,
    MissingParameterError,
    SessionConflictError,
    SessionNotBoundError,
    UnknownCommandError,
)
from sso_broker.formatter import (
    BrokerResponse,
    ReturnType,
    detect_return_type,
    is_valid_callback,
    render_attach_success,
    render_error,
    render_json,
    render_no_content,
)
from sso_broker.telemetry.system_logger import get_system_logger

if TYPE_CHECKING:
    from sso_broker.config import BrokerConfig
    from sso_broker.providers.protocol import Authenticator, ServiceRegistry, UserDirectory
    from sso_broker.request import RequestView
    from sso_broker.session import SessionContext
    from sso_broker.stores.protocol import SessionStore

# Accepted spellings of the dispatcher commands
_COMMAND_ALIASES = {
    "attach": "attach",
    "login": "login",
    "logout": "logout",
    "userinfo": "userinfo",
    "user_info": "userinfo",
    "user-info": "userinfo",
}


@dataclass
class _Exchange:
    """Per-request protocol state."""

    command: str
    request: "RequestView"
    session: "SessionContext"
    return_type: ReturnType = ReturnType.NONE
    sid: str | None = None
    service_id: str | None = None


class Broker:
    """SSO broker protocol engine.

    The engine holds no per-request state; everything request-specific lives
    in the RequestView and SessionContext passed to each command, so one
    instance serves all requests.

    Args:
        registry: Service id -> secret lookup.
        authenticator: Credential verification.
        directory: Public user records.
        session_store: Binding cache (SSID -> user session id).
        cache_ttl: Binding lifetime in seconds.
        fail_exception: Raise BrokerError to the caller instead of rendering it.
        logger: Logger for broker events (defaults to the system logger).
    """

    def __init__(
        self,
        *,
        registry: "ServiceRegistry",
        authenticator: "Authenticator",
        directory: "UserDirectory",
        session_store: "SessionStore",
        cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
        fail_exception: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self._codec = TokenCodec(registry)
        self._authenticator = authenticator
        self._directory = directory
        self._store = session_store
        self._cache_ttl = cache_ttl
        self._fail_exception = fail_exception
        self._logger = logger or get_system_logger()

    @classmethod
    def from_config(
        cls,
        config: "BrokerConfig",
        *,
        registry: "ServiceRegistry",
        authenticator: "Authenticator",
        directory: "UserDirectory",
        session_store: "SessionStore",
    ) -> "Broker":
        """Create a broker using cache_ttl and fail_exception from config."""
        return cls(
            registry=registry,
            authenticator=authenticator,
            directory=directory,
            session_store=session_store,
            cache_ttl=config.cache_ttl,
            fail_exception=config.fail_exception,
        )

    # =========================================================================
    # Public commands
    # =========================================================================

    def attach(self, request: "RequestView", session: "SessionContext") -> BrokerResponse:
        """Bind a service session to the visitor's user session."""
        return self._run("attach", request, session, self._attach)

    def login(self, request: "RequestView", session: "SessionContext") -> BrokerResponse:
        """Authenticate the user behind a service session."""
        return self._run("login", request, session, self._login)

    def logout(self, request: "RequestView", session: "SessionContext") -> BrokerResponse:
        """Clear the login of the user behind a service session."""
        return self._run("logout", request, session, self._logout)

    def user_info(self, request: "RequestView", session: "SessionContext") -> BrokerResponse:
        """Return the logged-in user's public record (or null)."""
        return self._run("userinfo", request, session, self._user_info)

    def handle(
        self,
        command: str | None,
        request: "RequestView",
        session: "SessionContext",
    ) -> BrokerResponse:
        """Dispatch a command by name.

        A truthy `logout` parameter selects the logout command when no
        command is given.

        Args:
            command: attach, login, logout or userinfo (case-insensitive).
            request: Request view.
            session: Session context for this request.
        """
        if not command and request.param("logout"):
            command = "logout"

        name = _COMMAND_ALIASES.get((command or "").lower())
        handlers: dict[str, Callable[[_Exchange], BrokerResponse]] = {
            "attach": self._attach,
            "login": self._login,
            "logout": self._logout,
            "userinfo": self._user_info,
        }

        if name is None:
            return self._run(command or "", request, session, self._unknown_command)
        return self._run(name, request, session, handlers[name])

    # =========================================================================
    # Fail pipeline
    # =========================================================================

    def _run(
        self,
        command: str,
        request: "RequestView",
        session: "SessionContext",
        handler: Callable[[_Exchange], BrokerResponse],
    ) -> BrokerResponse:
        exchange = _Exchange(command=command, request=request, session=session)
        try:
            return handler(exchange)
        except BrokerError as e:
            return self._fail(exchange, e)

    def _fail(self, exchange: _Exchange, error: BrokerError) -> BrokerResponse:
        """Report a failed request.

        5xx failures are logged as warnings, client errors at INFO.

        Raises:
            BrokerError: The original error, when fail_exception is enabled.
        """
        event = {
            "event": "session_conflict" if isinstance(error, SessionConflictError) else "request_failed",
            "command": exchange.command,
            "service_id": exchange.service_id,
            **error.to_dict(),
            "message": f"{exchange.command or 'request'} failed: {error.message}",
        }
        if error.is_internal:
            self._logger.warning(event)
        else:
            self._logger.info(event)

        if self._fail_exception:
            raise error

        return render_error(exchange.return_type, error, exchange.request)

    # =========================================================================
    # Service session resolution
    # =========================================================================

    def resolve_service_session(self, request: "RequestView", session: "SessionContext") -> str:
        """Resolve the SSID a service presents and resume the bound user session.

        For embedding callers that handle service requests themselves. Errors
        are raised directly, not rendered.

        Returns:
            The service id embedded in the SSID.

        Raises:
            MissingParameterError: No SSID presented.
            SessionNotBoundError: SSID not in the Session Store.
            SessionConflictError: Another user session is already active.
            ChecksumMismatchError: SSID is malformed or its checksum does not verify.
        """
        exchange = _Exchange(command="", request=request, session=session)
        return self._resolve_service_session(exchange)

    def _resolve_service_session(self, exchange: _Exchange) -> str:
        """Resolve the presented SSID to a service and resume its user session.

        Runs once per exchange; later calls reuse the resolved service id.
        The conflict check runs before SSID validation.

        Returns:
            The service id embedded in the SSID.

        Raises:
            MissingParameterError: No SSID presented.
            SessionNotBoundError: SSID not in the Session Store.
            SessionConflictError: Another user session is already active.
            ChecksumMismatchError: SSID is malformed or its checksum does not verify.
        """
        if exchange.service_id is not None:
            return exchange.service_id

        sid = exchange.request.service_session_id()
        if not sid:
            raise MissingParameterError("Service didn't send a session key")

        linked_id = self._store.get(sid)
        if not linked_id:
            raise SessionNotBoundError("The service session id isn't attached to a user session")

        exchange.session.check_conflict(linked_id)
        service_id = self._codec.validate_ssid(sid)
        exchange.session.resume(linked_id)

        exchange.sid = sid
        exchange.service_id = service_id
        return service_id

    # =========================================================================
    # Command implementations
    # =========================================================================

    def _negotiate(self, exchange: _Exchange) -> None:
        return_type = detect_return_type(exchange.request)
        if return_type is ReturnType.JSONP and not is_valid_callback(
            exchange.request.query_param("callback")
        ):
            # Render the rejection as plain JSON, never into the bad callback
            raise InvalidCallbackError("Invalid callback")
        exchange.return_type = return_type

    def _attach(self, exchange: _Exchange) -> BrokerResponse:
        request = exchange.request
        self._negotiate(exchange)

        service_id = request.param("service")
        if not service_id:
            raise MissingParameterError("No service specified")
        if not is_ssid_component(service_id):
            raise MalformedSessionIdError("Invalid service specified")

        token = request.param("token")
        if not token:
            raise MissingParameterError("No token specified")
        if not is_ssid_component(token):
            raise MalformedSessionIdError("Invalid token specified")

        if exchange.return_type is ReturnType.NONE:
            raise MissingParameterError("No return url specified")

        if not self._codec.verify_attach_checksum(service_id, token, request.param("checksum")):
            raise ChecksumMismatchError("Invalid checksum", status_code=400)

        user_session = exchange.session.start()

        sid = self._codec.build_ssid(service_id, token)
        if sid is None:
            # Registry changed between checksum verification and now
            raise ChecksumMismatchError("Invalid checksum", status_code=400)

        self._store.set(sid, user_session.session_id, self._cache_ttl)
        exchange.sid = sid
        exchange.service_id = service_id

        self._logger.info(
            {
                "event": "service_attached",
                "service_id": service_id,
                "return_type": exchange.return_type.value,
                "ttl": self._cache_ttl,
                "message": f"Service {service_id} attached to user session",
            }
        )
        return render_attach_success(exchange.return_type, request)

    def _login(self, exchange: _Exchange) -> BrokerResponse:
        service_id = self._resolve_service_session(exchange)
        request = exchange.request

        username = request.form_param("username")
        if not username:
            raise MissingParameterError("No username specified")

        password = request.form_param("password")
        if not password:
            raise MissingParameterError("No password specified")

        result = self._authenticator.authenticate(username, password)
        if result.failed:
            raise AuthenticationFailedError(result.error or "Authentication failed")

        exchange.session.set(USER_SESSION_KEY, username)
        self._logger.info(
            {
                "event": "user_logged_in",
                "service_id": service_id,
                "username": username,
                "message": f"User {username} logged in via {service_id}",
            }
        )
        return self._user_info(exchange)

    def _logout(self, exchange: _Exchange) -> BrokerResponse:
        service_id = self._resolve_service_session(exchange)

        username = exchange.session.get(USER_SESSION_KEY)
        exchange.session.set(USER_SESSION_KEY, None)

        if username:
            self._logger.info(
                {
                    "event": "user_logged_out",
                    "service_id": service_id,
                    "username": username,
                    "message": f"User {username} logged out via {service_id}",
                }
            )
        return render_no_content()

    def _user_info(self, exchange: _Exchange) -> BrokerResponse:
        self._resolve_service_session(exchange)

        username = exchange.session.get(USER_SESSION_KEY)
        if not username:
            return render_json(None)

        user = self._directory.lookup(username)
        if not user:
            raise InvariantViolationError("User not found")

        public = {key: value for key, value in user.items() if key not in SECRET_USER_FIELDS}
        return render_json(public)

    def _unknown_command(self, exchange: _Exchange) -> BrokerResponse:
        raise UnknownCommandError("Unknown command")
