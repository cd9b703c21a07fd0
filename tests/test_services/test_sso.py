"""
Tests for the SSO code exchange.
"""

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from sso_bridge.core.exceptions import (
    ExchangeMalformedResponseError,
    ExchangeRejectedError,
    ExchangeUnreachableError,
)
from sso_bridge.services.sso import (
    ExchangeState,
    SsoExchangeCoordinator,
    decode_redirect_uri,
    issuer_frontend_url,
)


@pytest.fixture
def coordinator(issuer_client) -> SsoExchangeCoordinator:
    return SsoExchangeCoordinator(issuer_client, frontend_url="https://main.example.com")


def exchange_response(**data) -> httpx.Response:
    return httpx.Response(200, json={"status": 200, "data": data})


class TestInitiate:
    """Tests for building the login URL."""

    def test_login_url_points_at_frontend(self, coordinator):
        exchange = coordinator.initiate("https://x/callback?a=1&b=2", "svc")

        parts = urlsplit(exchange.login_url)
        assert exchange.state is ExchangeState.INITIATED
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://main.example.com/sso/initiate"
        assert parse_qs(parts.query) == {
            "redirect_uri": ["https://x/callback?a=1&b=2"],
            "service": ["svc"],
        }

    def test_redirect_uri_fully_encoded(self, coordinator):
        exchange = coordinator.initiate("https://x/callback")

        assert "redirect_uri=https%3A%2F%2Fx%2Fcallback" in exchange.login_url

    def test_service_name_defaults(self, issuer_client):
        configured = SsoExchangeCoordinator(issuer_client, "https://m", service_name="crm-ext")
        unconfigured = SsoExchangeCoordinator(issuer_client, "https://m")

        assert "service=crm-ext" in configured.initiate("https://x/cb").login_url
        assert "service=external-service" in unconfigured.initiate("https://x/cb").login_url

    def test_frontend_url_derivation(self):
        assert issuer_frontend_url("https://main.example.com/api") == "https://main.example.com"
        assert issuer_frontend_url("https://main.example.com/api/") == "https://main.example.com"
        assert issuer_frontend_url("https://api.example.com") == "https://api.example.com"
        assert issuer_frontend_url("https://x/api", "https://app.example.com/") == "https://app.example.com"


class TestExchange:
    """Tests for trading a code for a service token."""

    @pytest.mark.asyncio
    async def test_successful_exchange(self, issuer, coordinator):
        issuer.on("POST", "/auth/sso/exchange", exchange_response(serviceToken="T", userId=42, serviceName="svc"))

        exchange = await coordinator.exchange("C", "https://x/callback")

        assert exchange.state is ExchangeState.EXCHANGED
        assert exchange.result.service_token == "T"
        assert exchange.result.subject_id == 42
        assert exchange.result.service_name == "svc"

        sent = json.loads(issuer.calls("/auth/sso/exchange")[0].content)
        assert sent == {"code": "C", "redirect_uri": "https://x/callback"}

    @pytest.mark.asyncio
    async def test_encoded_redirect_uri_decoded_once(self, issuer, coordinator):
        issuer.on("POST", "/auth/sso/exchange", exchange_response(serviceToken="T", userId=42))

        exchange = await coordinator.exchange("C", "https%3A%2F%2Fx%2Fcallback%253F")

        sent = json.loads(issuer.calls("/auth/sso/exchange")[0].content)
        assert sent["redirect_uri"] == "https://x/callback%3F"
        assert exchange.result.service_name is None

    def test_plain_redirect_uri_untouched(self):
        assert decode_redirect_uri("https://x/callback") == "https://x/callback"
        assert decode_redirect_uri("https://x/cb?q=a+b") == "https://x/cb?q=a+b"

    @pytest.mark.asyncio
    async def test_rejected_code(self, issuer, coordinator):
        issuer.on("POST", "/auth/sso/exchange", httpx.Response(400, json={"message": "Code expired"}))

        with pytest.raises(ExchangeRejectedError) as exc_info:
            await coordinator.exchange("C", "https://x/callback")

        assert exc_info.value.status_code == 400
        assert exc_info.value.issuer_status == 400
        assert exc_info.value.message == "Code expired"

    @pytest.mark.asyncio
    async def test_issuer_server_error_is_unreachable(self, issuer, coordinator):
        issuer.on("POST", "/auth/sso/exchange", httpx.Response(503))

        with pytest.raises(ExchangeUnreachableError):
            await coordinator.exchange("C", "https://x/callback")

    @pytest.mark.asyncio
    async def test_network_error_is_unreachable(self, issuer, coordinator):
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        issuer.on("POST", "/auth/sso/exchange", timeout)

        with pytest.raises(ExchangeUnreachableError) as exc_info:
            await coordinator.exchange("C", "https://x/callback")

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, json={"status": 200}),
            httpx.Response(200, json={"data": {"userId": 42}}),
            httpx.Response(200, json={"data": {"serviceToken": "", "userId": 42}}),
            httpx.Response(200, json={"data": {"serviceToken": "T"}}),
            httpx.Response(200, text="<html>login</html>"),
        ],
    )
    async def test_unexpected_shape(self, issuer, coordinator, response):
        issuer.on("POST", "/auth/sso/exchange", response)

        with pytest.raises(ExchangeMalformedResponseError):
            await coordinator.exchange("C", "https://x/callback")
