"""Immutable view of an inbound broker request.

The protocol engine never touches the transport directly. The HTTP layer
collects everything the engine may read into a RequestView:

- query: URL query parameters
- form: body parameters (form-encoded or a flat JSON object)
- headers: request headers, keys lower-cased
- cookies: request cookies

Empty strings are treated as absent, so `param("x")` returns None for `?x=`.
"""

from __future__ import annotations

__all__ = ["RequestView"]

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from sso_broker.constants import BEARER_PREFIX, SESSION_ID_PARAMS


def _freeze(values: Mapping[str, str] | None, *, lower_keys: bool = False) -> Mapping[str, str]:
    if not values:
        return MappingProxyType({})
    if lower_keys:
        return MappingProxyType({key.lower(): value for key, value in values.items()})
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class RequestView:
    """Transport-independent request data.

    Build instances with RequestView.build() so mappings are copied and
    header names normalized.
    """

    method: str = "GET"
    query: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    form: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    cookies: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        *,
        method: str = "GET",
        query: Mapping[str, str] | None = None,
        form: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> "RequestView":
        """Create a RequestView from plain mappings.

        Args:
            method: HTTP method.
            query: Query string parameters.
            form: Body parameters.
            headers: Request headers (any case).
            cookies: Request cookies.

        Returns:
            Immutable RequestView.
        """
        return cls(
            method=method.upper(),
            query=_freeze(query),
            form=_freeze(form),
            headers=_freeze(headers, lower_keys=True),
            cookies=_freeze(cookies),
        )

    def query_param(self, name: str) -> str | None:
        return self.query.get(name) or None

    def form_param(self, name: str) -> str | None:
        return self.form.get(name) or None

    def param(self, name: str) -> str | None:
        """Body parameter, falling back to the query string."""
        return self.form_param(name) or self.query_param(name)

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower()) or None

    def cookie(self, name: str) -> str | None:
        return self.cookies.get(name) or None

    @property
    def accept(self) -> str:
        return self.header("accept") or ""

    def bearer_token(self) -> str | None:
        """Credential from `Authorization: Bearer <token>`, if present."""
        authorization = self.header("authorization")
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return None
        return authorization[len(BEARER_PREFIX) :].strip() or None

    def service_session_id(self) -> str | None:
        """The service session id presented by a service.

        Checked in order: bearer credential, `access_token` (query, then body),
        legacy `sso_session` query parameter.
        """
        token = self.bearer_token()
        if token:
            return token

        for source, name in SESSION_ID_PARAMS:
            value = self.query_param(name) if source == "query" else self.form_param(name)
            if value:
                return value

        return None
