"""
FastAPI dependency injection functions.

Process-wide components are built once from settings and shared by every
request. Tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends, Request

from sso_bridge.auth.extract import require_service_token
from sso_bridge.auth.gate import AuthGate
from sso_bridge.auth.jwt import AuthenticatedPrincipal, TokenValidator
from sso_bridge.auth.keys import PublicKeyStore
from sso_bridge.config import get_settings
from sso_bridge.services.identity import IdentityResolver
from sso_bridge.services.issuer_client import IssuerClient
from sso_bridge.services.sso import SsoExchangeCoordinator, issuer_frontend_url


@lru_cache
def get_issuer_client() -> IssuerClient:
    """Shared issuer client; closed on application shutdown."""
    settings = get_settings()
    http = httpx.AsyncClient(
        base_url=settings.ISSUER_BASE_URL,
        timeout=settings.ISSUER_TIMEOUT,
        follow_redirects=True,
    )
    return IssuerClient(http)


@lru_cache
def get_public_key_store() -> PublicKeyStore:
    settings = get_settings()
    return PublicKeyStore(
        get_issuer_client().fetch_public_key,
        static_key=settings.JWT_PUBLIC_KEY,
        ttl=settings.PUBLIC_KEY_CACHE_TTL,
    )


@lru_cache
def get_auth_gate() -> AuthGate:
    settings = get_settings()
    return AuthGate(
        key_store=get_public_key_store(),
        validator=TokenValidator(expected_service_name=settings.SERVICE_NAME),
    )


@lru_cache
def get_identity_resolver() -> IdentityResolver:
    return IdentityResolver(get_issuer_client())


@lru_cache
def get_sso_coordinator() -> SsoExchangeCoordinator:
    settings = get_settings()
    return SsoExchangeCoordinator(
        get_issuer_client(),
        frontend_url=issuer_frontend_url(settings.ISSUER_BASE_URL, settings.ISSUER_FRONTEND_URL),
        service_name=settings.SERVICE_NAME,
        default_service_name=settings.DEFAULT_SERVICE_NAME,
    )


async def get_current_principal(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> AuthenticatedPrincipal:
    """
    Dependency to get the authenticated principal of the request.

    Usage:
        @router.get("/me")
        async def me(principal: CurrentPrincipal):
            ...

    Raises:
        UnauthorizedException: If authentication fails
    """
    return await gate.authenticate(request)


# Type aliases for cleaner endpoint signatures
KeyStore = Annotated[PublicKeyStore, Depends(get_public_key_store)]
Gate = Annotated[AuthGate, Depends(get_auth_gate)]
Identity = Annotated[IdentityResolver, Depends(get_identity_resolver)]
Sso = Annotated[SsoExchangeCoordinator, Depends(get_sso_coordinator)]
CurrentPrincipal = Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]
RequestServiceToken = Annotated[str, Depends(require_service_token)]
