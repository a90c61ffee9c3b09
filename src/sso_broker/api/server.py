"""FastAPI application for the SSO broker.

Routes (see routes/broker.py):
- /attach, /login, /logout, /userinfo
- / with a `command` parameter

Collaborators (service registry, user table, stores) default to what the
config declares; tests and embedding applications pass their own.

Usage:
    uvicorn sso_broker.api.server:create_app --factory --port 8765
"""

from __future__ import annotations

__all__ = ["create_app"]

from typing import TYPE_CHECKING

from fastapi import FastAPI

from sso_broker import __version__
from sso_broker.config import AppConfig
from sso_broker.engine import Broker
from sso_broker.exceptions import BrokerError
from sso_broker.providers.static import StaticServiceRegistry, StaticUserTable
from sso_broker.stores import create_stores

from .errors import broker_error_handler
from .routes import broker

if TYPE_CHECKING:
    from sso_broker.providers.protocol import Authenticator, ServiceRegistry, UserDirectory
    from sso_broker.stores.protocol import SessionBackend, SessionStore


def create_app(
    config: AppConfig | None = None,
    *,
    registry: "ServiceRegistry | None" = None,
    authenticator: "Authenticator | None" = None,
    directory: "UserDirectory | None" = None,
    session_store: "SessionStore | None" = None,
    session_backend: "SessionBackend | None" = None,
) -> FastAPI:
    """Create the FastAPI application with all routes.

    Args:
        config: Application config. None uses defaults (no services, no users).
        registry: Service registry. Defaults to config.services.
        authenticator: Credential check. Defaults to a table of config.users.
        directory: User records. Defaults to the same table as authenticator
            when that is a StaticUserTable, else to a table of config.users.
        session_store: Binding store. Defaults to config.broker.cache_backend.
        session_backend: User session storage. Defaults like session_store.

    Returns:
        Configured FastAPI application.
    """
    config = config or AppConfig()

    if registry is None:
        registry = StaticServiceRegistry(config.services)

    users = StaticUserTable(config.users)
    if authenticator is None:
        authenticator = users
    if directory is None:
        directory = authenticator if isinstance(authenticator, StaticUserTable) else users

    if session_store is None or session_backend is None:
        default_store, default_backend = create_stores(config.broker)
        if session_store is None:
            session_store = default_store
        if session_backend is None:
            session_backend = default_backend

    app = FastAPI(
        title="SSO Broker",
        description="Single sign-on broker for cooperating web services",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.broker = Broker.from_config(
        config.broker,
        registry=registry,
        authenticator=authenticator,
        directory=directory,
        session_store=session_store,
    )
    app.state.broker_config = config.broker
    app.state.session_backend = session_backend

    # Raised only when fail_exception is enabled
    app.add_exception_handler(BrokerError, broker_error_handler)  # type: ignore[arg-type]

    app.include_router(broker.router, tags=["broker"])

    return app
