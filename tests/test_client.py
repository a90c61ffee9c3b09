"""Tests for the service-side client, run against the app via TestClient."""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, SERVICE_ID, SERVICE_SECRET, USERNAME
from sso_broker.api import create_app
from sso_broker.client import BrokerClientError, NotAttachedError, ServiceClient, generate_token
from sso_broker.codec import TokenCodec, compute_attach_checksum
from sso_broker.config import AppConfig, BrokerConfig
from sso_broker.providers.static import StaticServiceRegistry

BROKER_URL = "http://testserver"


@pytest.fixture
def http(user_records: dict[str, dict[str, Any]]) -> TestClient:
    config = AppConfig(
        broker=BrokerConfig(cache_backend="memory"),
        services={SERVICE_ID: SERVICE_SECRET},
        users=user_records,
    )
    return TestClient(create_app(config), base_url=BROKER_URL)


@pytest.fixture
def service(http: TestClient) -> ServiceClient:
    return ServiceClient(BROKER_URL, SERVICE_ID, SERVICE_SECRET, http_client=http)


def _browser_attach(http: TestClient, service: ServiceClient) -> None:
    response = http.get(service.attach_url(return_url="http://service.example/"), follow_redirects=False)
    assert response.status_code == 307


class TestTokens:
    def test_generated_tokens_fit_ssid_format(self) -> None:
        """Given a generated token, the derived SSID validates."""
        token = generate_token()
        codec = TokenCodec(StaticServiceRegistry({SERVICE_ID: SERVICE_SECRET}))
        client = ServiceClient(BROKER_URL, SERVICE_ID, SERVICE_SECRET, token=token)

        assert codec.validate_ssid(client.session_id) == SERVICE_ID
        client.close()

    def test_regenerate_token_changes_ssid(self) -> None:
        with ServiceClient(BROKER_URL, SERVICE_ID, SERVICE_SECRET) as client:
            before = client.session_id
            client.regenerate_token()

            assert client.session_id != before

    def test_attach_url_carries_checksum(self) -> None:
        with ServiceClient(BROKER_URL + "/", SERVICE_ID, SERVICE_SECRET, token="tok1") as client:
            url = client.attach_url(return_url="http://service.example/")

        parts = urlsplit(url)
        query = {key: values[0] for key, values in parse_qs(parts.query).items()}
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == f"{BROKER_URL}/attach"
        assert query == {
            "service": SERVICE_ID,
            "token": "tok1",
            "checksum": compute_attach_checksum("tok1", SERVICE_SECRET),
            "return_url": "http://service.example/",
        }


class TestBrokerCalls:
    """Tests for login / user_info / logout through the client."""

    def test_not_attached(self, service: ServiceClient) -> None:
        """Given a token that was never attached, calls raise NotAttachedError."""
        with pytest.raises(NotAttachedError) as exc_info:
            service.user_info()

        assert exc_info.value.status_code == 403

    def test_login_userinfo_logout(self, http: TestClient, service: ServiceClient) -> None:
        # Arrange
        _browser_attach(http, service)

        # Act
        anonymous = service.user_info()
        user = service.login(USERNAME, PASSWORD)
        current = service.user_info()
        service.logout()
        after = service.user_info()

        # Assert
        assert anonymous is None
        assert user is not None and user["username"] == USERNAME
        assert current == user
        assert after is None

    def test_bad_login_raises_client_error(self, http: TestClient, service: ServiceClient) -> None:
        _browser_attach(http, service)

        with pytest.raises(BrokerClientError) as exc_info:
            service.login(USERNAME, "wrong")

        assert not isinstance(exc_info.value, NotAttachedError)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid credentials"

    def test_transport_error_is_wrapped(self) -> None:
        """Given a broker that cannot be reached, the client raises BrokerClientError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http = httpx.Client(base_url=BROKER_URL, transport=httpx.MockTransport(refuse))
        client = ServiceClient(BROKER_URL, SERVICE_ID, SERVICE_SECRET, http_client=http)

        with pytest.raises(BrokerClientError) as exc_info:
            client.user_info()

        assert exc_info.value.status_code is None

    def test_structured_error_detail_is_read(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"detail": {"code": "INVARIANT_VIOLATION", "message": "User not found"}})

        http = httpx.Client(base_url=BROKER_URL, transport=httpx.MockTransport(handler))
        client = ServiceClient(BROKER_URL, SERVICE_ID, SERVICE_SECRET, http_client=http)

        with pytest.raises(BrokerClientError) as exc_info:
            client.user_info()

        assert exc_info.value.message == "User not found"
        assert str(exc_info.value) == "Broker error (500): User not found"
