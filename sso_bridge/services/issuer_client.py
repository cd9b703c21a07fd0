"""
HTTP client for the issuing authority.

All outbound calls to the issuer go through one shared ``httpx.AsyncClient``.
Every call takes the caller's service token explicitly; the client holds no
token of its own.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class IssuerResponseError(Exception):
    """Issuer answered 2xx but the body is not the expected JSON shape."""


class IssuerClient:
    """
    Thin wrapper over the issuer's REST endpoints.

    Non-2xx responses raise ``httpx.HTTPStatusError``, transport failures
    raise ``httpx.RequestError`` and unexpected bodies raise
    ``IssuerResponseError``. Callers decide how each maps to their domain.
    """

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    @property
    def base_url(self) -> str:
        return str(self._http.base_url).rstrip("/")

    async def fetch_public_key(self) -> str:
        """GET /auth/public-key -> ``data.publicKey``."""
        payload = await self._request("GET", "/auth/public-key")
        public_key = _data(payload).get("publicKey")
        if not isinstance(public_key, str) or not public_key.strip():
            raise IssuerResponseError("Invalid response format from issuer: missing publicKey")
        return public_key

    async def exchange_sso_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """POST /auth/sso/exchange -> ``data`` (serviceToken, userId, serviceName)."""
        payload = await self._request(
            "POST",
            "/auth/sso/exchange",
            json={"code": code, "redirect_uri": redirect_uri},
        )
        return _data(payload)

    async def get_user_profile(self, service_token: str) -> dict[str, Any]:
        """GET /users/profile on behalf of the token's subject."""
        payload = await self._request(
            "GET",
            "/users/profile",
            headers={"Authorization": f"Bearer {service_token}"},
        )
        data = payload.get("data")
        if isinstance(data, dict):
            return data
        return payload

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(method, endpoint, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Network error: {method} {endpoint} - {type(e).__name__}: {e}")
            raise

        if response.is_error:
            logger.error(f"Request failed: {method} {endpoint} - Status: {response.status_code}")
            response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            raise IssuerResponseError(f"Issuer returned non-JSON body for {method} {endpoint}") from e

        if not isinstance(payload, dict):
            raise IssuerResponseError(f"Issuer returned {type(payload).__name__} for {method} {endpoint}")
        return payload


def _data(payload: dict[str, Any]) -> dict[str, Any]:
    data = payload.get("data")
    if not isinstance(data, dict):
        raise IssuerResponseError("Invalid response format from issuer: missing data object")
    return data


def error_message(error: httpx.HTTPStatusError) -> str | None:
    """Best-effort ``message`` field from an issuer error body."""
    try:
        body = error.response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None
