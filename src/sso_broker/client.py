"""Service-side client for the broker.

A service (a website relying on the broker for login) holds a random token
per visitor. It sends the visitor's browser to the attach URL once, then
talks to the broker server-to-server using the SSID derived from the token:

    client = ServiceClient("https://sso.example.com", "server1", secret)
    redirect_to(client.attach_url(return_url=current_url))
    ...
    user = client.user_info()        # None if nobody is logged in
    user = client.login("max", "jackie123")
    client.logout()

The token is not persisted here; the service keeps it (usually in a cookie)
and passes it back in via `token=` on the next request.
"""

from __future__ import annotations

__all__ = [
    "BrokerClientError",
    "NotAttachedError",
    "ServiceClient",
    "generate_token",
]

import json
import secrets
from typing import Any
from urllib.parse import urlencode

import httpx

from sso_broker.codec import compute_attach_checksum, format_ssid
from sso_broker.constants import (
    BEARER_PREFIX,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    SERVICE_TOKEN_BYTES,
)


class BrokerClientError(Exception):
    """Broker answered with an error status (or could not be reached).

    Attributes:
        message: Error message reported by the broker.
        status_code: HTTP status, or None for transport errors.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code:
            return f"Broker error ({self.status_code}): {self.message}"
        return f"Broker error: {self.message}"


class NotAttachedError(BrokerClientError):
    """The SSID is unknown to the broker; the browser must attach (again)."""


def generate_token() -> str:
    return secrets.token_hex(SERVICE_TOKEN_BYTES)


def _error_message(response: httpx.Response) -> str:
    """Extract the message from `{"error": ...}` or `{"detail": {...}}` bodies."""
    try:
        body = response.json()
    except json.JSONDecodeError:
        return response.text or response.reason_phrase

    if isinstance(body, dict):
        if "error" in body:
            return str(body["error"])
        detail = body.get("detail")
        if isinstance(detail, dict) and "message" in detail:
            return str(detail["message"])
        if detail is not None:
            return str(detail)
    return response.text


class ServiceClient:
    """Client a service uses to talk to the broker.

    Args:
        broker_url: Base URL of the broker.
        service_id: This service's id in the broker's registry.
        secret: Shared secret for service_id.
        token: Existing visitor token. A new one is generated if None.
        http_client: httpx client to use. When given, its base_url must point
            at the broker; the caller owns (and closes) it.
        timeout: Request timeout for the client created here.
    """

    def __init__(
        self,
        broker_url: str,
        service_id: str,
        secret: str,
        *,
        token: str | None = None,
        http_client: httpx.Client | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.broker_url = broker_url.rstrip("/")
        self.service_id = service_id
        self._secret = secret
        self.token = token or generate_token()
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(base_url=self.broker_url, timeout=timeout)

    def __enter__(self) -> "ServiceClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    # =========================================================================
    # Token / SSID
    # =========================================================================

    def regenerate_token(self) -> str:
        """Start over with a fresh token (after NotAttachedError)."""
        self.token = generate_token()
        return self.token

    @property
    def session_id(self) -> str:
        """SSID presented to the broker for this token."""
        return format_ssid(self.service_id, self.token, self._secret)

    def attach_url(self, return_url: str | None = None, **params: str) -> str:
        """URL the visitor's browser must open to attach.

        Args:
            return_url: Where the broker redirects after attaching. Omit it
                and pass `callback=...` for JSONP, or load the URL as an
                image.
            **params: Extra query parameters.
        """
        query: dict[str, str] = {
            "service": self.service_id,
            "token": self.token,
            "checksum": compute_attach_checksum(self.token, self._secret),
        }
        if return_url:
            query["return_url"] = return_url
        query.update(params)
        return f"{self.broker_url}/attach?{urlencode(query)}"

    # =========================================================================
    # Broker commands
    # =========================================================================

    def login(self, username: str, password: str) -> dict[str, Any] | None:
        """Log the visitor in. Returns the user record."""
        return self._request("POST", "/login", data={"username": username, "password": password})

    def logout(self) -> None:
        self._request("POST", "/logout")

    def user_info(self) -> dict[str, Any] | None:
        """Record of the logged-in user, or None."""
        return self._request("GET", "/userinfo")

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        data: dict[str, str] | None = None,
    ) -> Any:
        """Send a service request authenticated with the SSID.

        Raises:
            NotAttachedError: Broker answered 403.
            BrokerClientError: Any other error status or transport failure.
        """
        headers = {"Authorization": f"{BEARER_PREFIX}{self.session_id}", "Accept": "application/json"}
        try:
            response = self._http.request(method, endpoint, data=data, headers=headers)
        except httpx.HTTPError as e:
            raise BrokerClientError(str(e)) from e

        if response.status_code == 403:
            raise NotAttachedError(_error_message(response), 403)
        if response.is_error:
            raise BrokerClientError(_error_message(response), response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()
