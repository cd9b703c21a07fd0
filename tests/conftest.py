"""
Pytest configuration and fixtures for SSO bridge tests.
"""

import os

# Settings are read at import time of the application module
os.environ["ISSUER_BASE_URL"] = "http://issuer.test/api"
os.environ["ISSUER_FRONTEND_URL"] = ""
os.environ["JWT_PUBLIC_KEY"] = ""
os.environ["SERVICE_NAME"] = ""

import time  # noqa: E402
from collections.abc import AsyncGenerator, Callable  # noqa: E402
from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from cryptography.hazmat.primitives import serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import rsa  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from jose import jwt  # noqa: E402

from sso_bridge.auth.gate import AuthGate  # noqa: E402
from sso_bridge.auth.jwt import TokenValidator  # noqa: E402
from sso_bridge.auth.keys import PublicKeyStore  # noqa: E402
from sso_bridge.dependencies import (  # noqa: E402
    get_auth_gate,
    get_identity_resolver,
    get_public_key_store,
    get_sso_coordinator,
)
from sso_bridge.main import app  # noqa: E402
from sso_bridge.services.identity import IdentityResolver  # noqa: E402
from sso_bridge.services.issuer_client import IssuerClient  # noqa: E402
from sso_bridge.services.metrics import MetricsCollector  # noqa: E402
from sso_bridge.services.sso import SsoExchangeCoordinator  # noqa: E402

ISSUER_BASE_URL = "http://issuer.test/api"
ISSUER_FRONTEND_URL = "http://issuer.test"
SERVICE_NAME = "crm-external-service"


class KeyPair:
    """RSA key pair in PEM form."""

    def __init__(self) -> None:
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()
        self.public_pem = key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()


class IssuerStub:
    """
    In-memory issuer served through ``httpx.MockTransport``.

    Routes are registered per (method, endpoint); every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], Any]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, endpoint: str, response: httpx.Response | Callable[[httpx.Request], Any]) -> None:
        if isinstance(response, httpx.Response):
            template = response

            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(
                    template.status_code,
                    headers=template.headers,
                    content=template.content,
                )
        else:
            handler = response
        self.routes[(method, f"/api{endpoint}")] = handler

    def calls(self, endpoint: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"/api{endpoint}"]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not Found"})
        result = handler(request)
        if not isinstance(result, httpx.Response):
            result = await result
        return result

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handle),
            base_url=ISSUER_BASE_URL,
        )


@pytest.fixture(scope="session")
def keypair() -> KeyPair:
    """Signing key pair of the issuer."""
    return KeyPair()


@pytest.fixture(scope="session")
def foreign_keypair() -> KeyPair:
    """Unrelated key pair, for signatures the issuer did not make."""
    return KeyPair()


@pytest.fixture
def claims() -> dict[str, Any]:
    """Claims of a valid service token."""
    now = int(time.time())
    return {
        "sub": 42,
        "email": "user@example.com",
        "role": "user",
        "type": "service",
        "service": SERVICE_NAME,
        "iat": now,
        "exp": now + 3600,
    }


@pytest.fixture
def make_token(keypair: KeyPair, claims: dict[str, Any]) -> Callable[..., str]:
    """
    Factory signing service tokens.

    Keyword arguments override claims; a value of None removes the claim.
    """

    def _make(signing_key: str | None = None, algorithm: str = "RS256", **overrides: Any) -> str:
        payload = {**claims, **overrides}
        payload = {k: v for k, v in payload.items() if v is not None}
        return jwt.encode(payload, signing_key or keypair.private_pem, algorithm=algorithm)

    return _make


@pytest.fixture
def issuer() -> IssuerStub:
    return IssuerStub()


@pytest_asyncio.fixture
async def issuer_client(issuer: IssuerStub) -> AsyncGenerator[IssuerClient, None]:
    client = IssuerClient(issuer.http_client())
    yield client
    await client.aclose()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest_asyncio.fixture
async def client(
    keypair: KeyPair,
    issuer_client: IssuerClient,
    metrics: MetricsCollector,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, wired to the issuer stub and a static key."""

    async def no_fetch() -> str:
        raise AssertionError("static key must not be fetched")

    key_store = PublicKeyStore(no_fetch, static_key=keypair.public_pem)
    gate = AuthGate(key_store, TokenValidator(expected_service_name=SERVICE_NAME), metrics)
    identity = IdentityResolver(issuer_client)
    sso = SsoExchangeCoordinator(
        issuer_client,
        frontend_url=ISSUER_FRONTEND_URL,
        service_name=SERVICE_NAME,
    )

    app.dependency_overrides[get_public_key_store] = lambda: key_store
    app.dependency_overrides[get_auth_gate] = lambda: gate
    app.dependency_overrides[get_identity_resolver] = lambda: identity
    app.dependency_overrides[get_sso_coordinator] = lambda: sso

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(make_token: Callable[..., str]) -> dict[str, str]:
    """Authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {make_token()}"}
