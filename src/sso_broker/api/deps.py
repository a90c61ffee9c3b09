"""Shared dependencies for the broker routes.

FastAPI convention: deps.py contains reusable request dependencies.

Usage with Annotated:
    from sso_broker.api.deps import BrokerDep, RequestViewDep, SessionContextDep

    @router.get("/userinfo")
    def user_info(broker: BrokerDep, view: RequestViewDep, session: SessionContextDep) -> Response:
        ...
"""

from __future__ import annotations

__all__ = [
    # Dependency functions
    "get_broker",
    "get_broker_config",
    "get_request_view",
    "get_session_context",
    # Type aliases for Annotated pattern
    "BrokerConfigDep",
    "BrokerDep",
    "RequestViewDep",
    "SessionContextDep",
]

import json
from typing import Annotated, Any, cast

from fastapi import Depends, Request

from sso_broker.config import BrokerConfig
from sso_broker.engine import Broker
from sso_broker.request import RequestView
from sso_broker.session import SessionContext
from sso_broker.stores.protocol import SessionBackend

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_broker(request: Request) -> Broker:
    """Broker engine stored on app.state by create_app()."""
    return cast(Broker, request.app.state.broker)


def get_broker_config(request: Request) -> BrokerConfig:
    return cast(BrokerConfig, request.app.state.broker_config)


def _flatten(values: dict[str, Any]) -> dict[str, str]:
    """Keep scalar values of a JSON body as strings."""
    flat: dict[str, str] = {}
    for key, value in values.items():
        if isinstance(value, bool):
            flat[key] = "1" if value else ""
        elif isinstance(value, (str, int, float)):
            flat[key] = str(value)
    return flat


async def get_request_view(request: Request) -> RequestView:
    """Collect query, body, headers and cookies into a RequestView.

    Bodies are read for form-encoded requests and for JSON objects; any other
    body is ignored.
    """
    form: dict[str, str] = {}
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(_FORM_CONTENT_TYPES):
        submitted = await request.form()
        form = {key: value for key, value in submitted.items() if isinstance(value, str)}
    elif content_type.startswith("application/json"):
        try:
            body = await request.json()
        except json.JSONDecodeError:
            body = None
        if isinstance(body, dict):
            form = _flatten(body)

    return RequestView.build(
        method=request.method,
        query=dict(request.query_params),
        form=form,
        headers=dict(request.headers),
        cookies=dict(request.cookies),
    )


def get_session_context(request: Request) -> SessionContext:
    """New session context for this request, seeded from the session cookie."""
    backend = cast(SessionBackend, request.app.state.session_backend)
    config = get_broker_config(request)
    return SessionContext(backend, request.cookies.get(config.session_cookie))


# =============================================================================
# Type Aliases for Annotated Pattern
# =============================================================================

BrokerDep = Annotated[Broker, Depends(get_broker)]
BrokerConfigDep = Annotated[BrokerConfig, Depends(get_broker_config)]
RequestViewDep = Annotated[RequestView, Depends(get_request_view)]
SessionContextDep = Annotated[SessionContext, Depends(get_session_context)]
