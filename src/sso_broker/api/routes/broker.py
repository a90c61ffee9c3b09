"""Broker protocol endpoints.

Provides:
- GET|POST /attach - Browser attach (redirect, JSONP, image or JSON)
- POST /login - Service logs its user in
- GET|POST /logout - Service logs its user out
- GET /userinfo - Service asks who is logged in
- GET|POST / - Single entry point selecting the command via `command`

Endpoints are plain `def`: bcrypt and the file cache block, so FastAPI runs
them in its threadpool.
"""

from __future__ import annotations

__all__ = ["router"]

from fastapi import APIRouter, Response

from sso_broker.api.deps import BrokerConfigDep, BrokerDep, RequestViewDep, SessionContextDep
from sso_broker.config import BrokerConfig
from sso_broker.formatter import BrokerResponse
from sso_broker.session import SessionContext

router = APIRouter()


def _to_response(result: BrokerResponse, session: SessionContext, config: BrokerConfig) -> Response:
    """Convert an engine response, issuing the session cookie for new sessions."""
    response = Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )

    if session.created and session.active is not None:
        response.set_cookie(
            key=config.session_cookie,
            value=session.active.session_id,
            max_age=config.session_ttl,
            httponly=True,
            samesite=config.cookie_samesite,
            secure=config.cookie_samesite == "none",
        )
    return response


@router.api_route("/attach", methods=["GET", "POST"])
def attach(
    broker: BrokerDep,
    config: BrokerConfigDep,
    view: RequestViewDep,
    session: SessionContextDep,
) -> Response:
    """Attach a service session to the visitor's user session.

    Query parameters: service, token, checksum and one of return_url or
    callback (or an Accept header asking for an image or JSON).
    """
    return _to_response(broker.attach(view, session), session, config)


@router.post("/login")
def login(
    broker: BrokerDep,
    config: BrokerConfigDep,
    view: RequestViewDep,
    session: SessionContextDep,
) -> Response:
    """Log the user in. Body: username, password. Returns the user record."""
    return _to_response(broker.login(view, session), session, config)


@router.api_route("/logout", methods=["GET", "POST"])
def logout(
    broker: BrokerDep,
    config: BrokerConfigDep,
    view: RequestViewDep,
    session: SessionContextDep,
) -> Response:
    """Log the user out. Returns 204."""
    return _to_response(broker.logout(view, session), session, config)


@router.get("/userinfo")
def user_info(
    broker: BrokerDep,
    config: BrokerConfigDep,
    view: RequestViewDep,
    session: SessionContextDep,
) -> Response:
    """Return the logged-in user's record, or null."""
    return _to_response(broker.user_info(view, session), session, config)


@router.api_route("/", methods=["GET", "POST"])
def dispatch(
    broker: BrokerDep,
    config: BrokerConfigDep,
    view: RequestViewDep,
    session: SessionContextDep,
) -> Response:
    """Run the command named by the `command` parameter.

    Unknown commands answer 404.
    """
    result = broker.handle(view.param("command"), view, session)
    return _to_response(result, session, config)
