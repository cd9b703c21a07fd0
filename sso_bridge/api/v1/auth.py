"""
Authentication endpoints: SSO handshake, auth check, principal and
identity cache maintenance.
"""

import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse

from sso_bridge.core.exceptions import (
    ForbiddenException,
    UnauthorizedException,
    ValidationException,
)
from sso_bridge.core.responses import create_success_response
from sso_bridge.dependencies import (
    CurrentPrincipal,
    Gate,
    Identity,
    RequestServiceToken,
    Sso,
)
from sso_bridge.schemas.auth import (
    CacheInvalidationResponse,
    PrincipalResponse,
    SsoExchangeData,
    SsoExchangeRequest,
)
from sso_bridge.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter()

ADMIN_ROLE = "admin"

UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Invalid or missing service token"}}
FORBIDDEN = {403: {"model": ErrorResponse, "description": "Insufficient permissions"}}


@router.get("/sso/initiate", status_code=302, responses={400: {"model": ErrorResponse}})
async def initiate_sso(
    sso: Sso,
    redirect_uri: str | None = Query(default=None, description="Redirect URI after authentication"),
    service: str | None = Query(default=None, description="Service name"),
):
    """Redirect the user to the issuer's login page."""
    if not redirect_uri:
        raise ValidationException("redirect_uri query parameter is required")

    exchange = sso.initiate(redirect_uri, service)
    return RedirectResponse(exchange.login_url, status_code=302)


@router.post(
    "/sso/exchange",
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def exchange_sso_code(body: SsoExchangeRequest, sso: Sso):
    """
    Exchange a one-time SSO code for a service token.

    The token is returned to the caller and not kept by this service; the
    caller sends it as a Bearer token on later requests.
    """
    exchange = await sso.exchange(body.code, body.redirect_uri)
    result = exchange.result
    data = SsoExchangeData(
        service_token=result.service_token,
        user_id=result.subject_id,
        service_name=result.service_name,
    )
    return create_success_response(
        data.model_dump(by_alias=True),
        message="Token retrieved successfully",
    )


@router.get("/check")
async def check_auth(request: Request, gate: Gate):
    """Report whether the caller's own token is currently accepted."""
    try:
        await gate.authenticate(request)
    except UnauthorizedException:
        return create_success_response({"authenticated": False})
    return create_success_response({"authenticated": True})


@router.get(
    "/me",
    response_model=PrincipalResponse,
    responses={**UNAUTHORIZED, 500: {"model": ErrorResponse}},
)
async def get_principal(
    principal: CurrentPrincipal,
    service_token: RequestServiceToken,
    identity: Identity,
):
    """Authenticated principal with the login used for downstream correlation."""
    login = await identity.resolve_login(
        service_token,
        principal.subject_id,
        principal.email,
    )
    return PrincipalResponse(
        subject_id=principal.subject_id,
        email=principal.email,
        role=principal.role,
        service_name=principal.service_name,
        login=login,
    )


@router.delete(
    "/identity-cache/{subject_id}",
    response_model=CacheInvalidationResponse,
    responses={**UNAUTHORIZED, **FORBIDDEN},
)
async def invalidate_login(subject_id: int, principal: CurrentPrincipal, identity: Identity):
    """Forget the cached login of one subject (own subject, or any for admins)."""
    if principal.subject_id != subject_id and principal.role != ADMIN_ROLE:
        raise ForbiddenException("Only administrators may invalidate other users' logins")

    removed = identity.invalidate(subject_id)
    logger.info(f"Login cache entry for user {subject_id} invalidated by user {principal.subject_id}")
    return CacheInvalidationResponse(removed=int(removed))


@router.delete(
    "/identity-cache",
    response_model=CacheInvalidationResponse,
    responses={**UNAUTHORIZED, **FORBIDDEN},
)
async def invalidate_all_logins(principal: CurrentPrincipal, identity: Identity):
    """Forget every cached login. Administrators only."""
    if principal.role != ADMIN_ROLE:
        raise ForbiddenException("Only administrators may clear the login cache")

    removed = identity.invalidate_all()
    logger.info(f"Login cache cleared ({removed} entries) by user {principal.subject_id}")
    return CacheInvalidationResponse(removed=removed)
