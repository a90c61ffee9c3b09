"""Response rendering for the broker.

The engine produces BrokerResponse values; the transport turns them into
real HTTP responses. Four output shapes are supported, negotiated per
attach request:

    redirect  return_url present    307 to return_url (errors: ?sso_error=...)
    jsonp     callback present      callback(<json>, <status>); with HTTP 200
    image     Accept: image/*       1x1 transparent PNG (success only)
    json      Accept: app/json      JSON body, logical status as HTTP status

Service requests (login, logout, userinfo) always answer in JSON.
"""

from __future__ import annotations

__all__ = [
    "BrokerResponse",
    "ReturnType",
    "detect_return_type",
    "is_valid_callback",
    "render_attach_success",
    "render_error",
    "render_json",
    "render_no_content",
]

import html
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from sso_broker.constants import (
    HTML_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    JSONP_CONTENT_TYPE,
    TRANSPARENT_PIXEL_PNG,
)

if TYPE_CHECKING:
    from sso_broker.exceptions import BrokerError
    from sso_broker.request import RequestView

_CALLBACK_RE = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$", re.ASCII)

ATTACH_SUCCESS_PAYLOAD = {"success": "attached"}


class ReturnType(str, Enum):
    """Output shape for a request."""

    REDIRECT = "redirect"
    JSON = "json"
    JSONP = "jsonp"
    IMAGE = "image"
    NONE = "none"


@dataclass(frozen=True)
class BrokerResponse:
    """Transport-independent HTTP response.

    Attributes:
        status_code: HTTP status.
        body: Raw response body.
        media_type: Content-Type header value, or None.
        headers: Additional headers (e.g. Location).
    """

    status_code: int
    body: bytes = b""
    media_type: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def location(self) -> str | None:
        return self.headers.get("Location")

    def json(self) -> Any:
        """Decode a JSON body."""
        return json.loads(self.body)


def detect_return_type(request: "RequestView") -> ReturnType:
    """Negotiate the output shape of an attach request.

    Precedence: return_url > callback > Accept image/* > Accept application/json.
    """
    if request.query_param("return_url"):
        return ReturnType.REDIRECT
    if request.query_param("callback"):
        return ReturnType.JSONP

    accept = request.accept
    if "image/" in accept:
        return ReturnType.IMAGE
    if "application/json" in accept:
        return ReturnType.JSON
    return ReturnType.NONE


def is_valid_callback(callback: str | None) -> bool:
    """True for dotted JavaScript identifiers (e.g. `sso.onAttach`)."""
    return bool(callback) and _CALLBACK_RE.match(callback) is not None


# =============================================================================
# Building blocks
# =============================================================================


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False)


def render_json(payload: Any, status_code: int = 200) -> BrokerResponse:
    return BrokerResponse(
        status_code=status_code,
        body=_dumps(payload).encode("utf-8"),
        media_type=JSON_CONTENT_TYPE,
    )


def render_no_content() -> BrokerResponse:
    """204 with a JSON content type and an empty body."""
    return BrokerResponse(status_code=204, media_type=JSON_CONTENT_TYPE)


def _render_jsonp(callback: str, payload: Any, status_code: int) -> BrokerResponse:
    body = f"{callback}({_dumps(payload)}, {status_code});"
    return BrokerResponse(status_code=200, body=body.encode("utf-8"), media_type=JSONP_CONTENT_TYPE)


def _render_redirect(url: str) -> BrokerResponse:
    escaped = html.escape(url, quote=True)
    body = f"You're being redirected to <a href='{escaped}'>{escaped}</a>"
    return BrokerResponse(
        status_code=307,
        body=body.encode("utf-8"),
        media_type=HTML_CONTENT_TYPE,
        headers={"Location": url},
    )


def _render_image() -> BrokerResponse:
    return BrokerResponse(status_code=200, body=TRANSPARENT_PIXEL_PNG, media_type="image/png")


def _error_url(return_url: str, message: str) -> str:
    separator = "&" if "?" in return_url else "?"
    return f"{return_url}{separator}sso_error={quote(message, safe='')}"


# =============================================================================
# Attach success / failure
# =============================================================================


def render_attach_success(return_type: ReturnType, request: "RequestView") -> BrokerResponse:
    """Render a successful attach in the negotiated shape.

    Args:
        return_type: Negotiated return type (never NONE here).
        request: The attach request (return_url / callback).
    """
    if return_type is ReturnType.IMAGE:
        return _render_image()
    if return_type is ReturnType.JSONP:
        return _render_jsonp(request.query_param("callback") or "", ATTACH_SUCCESS_PAYLOAD, 200)
    if return_type is ReturnType.REDIRECT:
        return _render_redirect(request.query_param("return_url") or "")
    return render_json(ATTACH_SUCCESS_PAYLOAD)


def render_error(
    return_type: ReturnType,
    error: "BrokerError",
    request: "RequestView",
) -> BrokerResponse:
    """Render a failure.

    JSONP and redirect answers carry the status inside the payload or URL;
    every other shape (including image) falls back to JSON with the error
    status as HTTP status.
    """
    if return_type is ReturnType.JSONP:
        callback = request.query_param("callback") or ""
        return _render_jsonp(callback, {"error": error.message}, error.status_code)

    if return_type is ReturnType.REDIRECT:
        return_url = request.query_param("return_url") or ""
        return _render_redirect(_error_url(return_url, error.message))

    return render_json({"error": error.message}, status_code=error.status_code)
