"""Structured API error handling.

When the broker runs with `fail_exception` enabled, protocol failures are not
rendered by the engine; they propagate as BrokerError. This module turns
them into structured JSON at the HTTP boundary:

    {
        "detail": {
            "code": "SESSION_NOT_BOUND",
            "message": "The service session id isn't attached to a user session"
        }
    }
"""

from __future__ import annotations

__all__ = ["broker_error_handler"]

from fastapi import Request
from fastapi.responses import JSONResponse

from sso_broker.exceptions import BrokerError


async def broker_error_handler(request: Request, exc: BrokerError) -> JSONResponse:
    """Handle BrokerError exceptions with structured response.

    Args:
        request: FastAPI request object.
        exc: BrokerError raised by the engine.

    Returns:
        JSONResponse with structured error detail.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )
