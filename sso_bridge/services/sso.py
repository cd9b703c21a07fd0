"""
SSO code exchange with the issuing authority.

Flow: the user is sent to the issuer's user-facing login page (never this
service's backend address), the issuer redirects back with a one-time code,
and the code is traded for a service token in one backend-to-backend call.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote, unquote, urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sso_bridge.core.exceptions import (
    ExchangeError,
    ExchangeMalformedResponseError,
    ExchangeRejectedError,
    ExchangeUnreachableError,
)
from sso_bridge.services.issuer_client import IssuerClient, IssuerResponseError, error_message

logger = logging.getLogger(__name__)


class ExchangeState(str, Enum):
    INITIATED = "initiated"
    CODE_RECEIVED = "code_received"
    EXCHANGING = "exchanging"
    EXCHANGED = "exchanged"
    FAILED = "failed"


class SsoExchangeResult(BaseModel):
    """Service token issued for an exchanged code."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    service_token: str = Field(alias="serviceToken", min_length=1)
    subject_id: int = Field(alias="userId")
    service_name: str | None = Field(default=None, alias="serviceName")


@dataclass
class SsoExchange:
    """One pass through the SSO handshake."""

    redirect_uri: str
    state: ExchangeState
    login_url: str | None = None
    code: str | None = field(default=None, repr=False)
    result: SsoExchangeResult | None = field(default=None, repr=False)
    failure: ExchangeError | None = None


def issuer_frontend_url(issuer_base_url: str, frontend_url: str | None = None) -> str:
    """User-facing issuer URL: explicit setting, else the backend URL minus ``/api``."""
    if frontend_url:
        return frontend_url.rstrip("/")
    base = issuer_base_url.rstrip("/")
    return base.removesuffix("/api")


def decode_redirect_uri(redirect_uri: str) -> str:
    """URL-decode once if the URI looks encoded, otherwise return it as-is."""
    if "%" in redirect_uri:
        return unquote(redirect_uri)
    return redirect_uri


class SsoExchangeCoordinator:
    """
    Builds SSO login URLs and trades one-time codes for service tokens.

    The issued token is returned to the caller only; it is never stored here.
    """

    def __init__(
        self,
        issuer: IssuerClient,
        frontend_url: str,
        service_name: str | None = None,
        default_service_name: str = "external-service",
    ):
        self._issuer = issuer
        self._frontend_url = frontend_url.rstrip("/")
        self._service_name = service_name
        self._default_service_name = default_service_name

    def initiate(self, redirect_uri: str, service: str | None = None) -> SsoExchange:
        """
        Start the handshake.

        Args:
            redirect_uri: Where the issuer sends the user back with a code
            service: Service identifier; defaults to the configured name

        Returns:
            Exchange in ``INITIATED`` state with ``login_url`` set
        """
        service_name = service or self._service_name or self._default_service_name
        query = urlencode(
            {"redirect_uri": redirect_uri, "service": service_name},
            quote_via=quote,
            safe="",
        )
        login_url = f"{self._frontend_url}/sso/initiate?{query}"
        logger.info(f"Initiating SSO login for service: {service_name}")
        return SsoExchange(
            redirect_uri=redirect_uri,
            state=ExchangeState.INITIATED,
            login_url=login_url,
        )

    async def exchange(self, code: str, redirect_uri: str) -> SsoExchange:
        """
        Trade a one-time code for a service token.

        Args:
            code: Code received on the callback
            redirect_uri: Redirect URI used at initiate time, raw or encoded

        Returns:
            Exchange in ``EXCHANGED`` state with ``result`` set

        Raises:
            ExchangeRejectedError: Issuer refused the code
            ExchangeUnreachableError: Issuer unreachable or failed internally
            ExchangeMalformedResponseError: Issuer payload had an unexpected shape
        """
        exchange = SsoExchange(
            redirect_uri=decode_redirect_uri(redirect_uri),
            state=ExchangeState.CODE_RECEIVED,
            code=code,
        )
        logger.info(f"SSO exchange started (code length: {len(code)})")

        exchange.state = ExchangeState.EXCHANGING
        try:
            exchange.result = await self._exchange(code, exchange.redirect_uri)
        except ExchangeError as e:
            exchange.state = ExchangeState.FAILED
            exchange.failure = e
            logger.error(f"SSO exchange failed: {e.kind} - {e.message}")
            raise

        exchange.state = ExchangeState.EXCHANGED
        logger.info(
            f"SSO exchange successful for user {exchange.result.subject_id} "
            f"(service: {exchange.result.service_name or 'not provided'})"
        )
        return exchange

    async def _exchange(self, code: str, redirect_uri: str) -> SsoExchangeResult:
        try:
            data = await self._issuer.exchange_sso_code(code, redirect_uri)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status >= 500:
                raise ExchangeUnreachableError(f"SSO issuer failed with HTTP {status}") from e
            raise ExchangeRejectedError(status, error_message(e)) from e
        except httpx.RequestError as e:
            raise ExchangeUnreachableError(
                f"Network error: No response from SSO issuer ({type(e).__name__})"
            ) from e
        except IssuerResponseError as e:
            raise ExchangeMalformedResponseError(str(e)) from e

        try:
            return SsoExchangeResult.model_validate(data)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise ExchangeMalformedResponseError(
                f"Invalid response from SSO exchange endpoint: {', '.join(fields)}"
            ) from e
