"""
Per-request authentication gate.

Composes token extraction, key lookup and validation into one decision.
The gate fails closed: anything other than a fully validated token is a 401.
"""

import logging

from fastapi import Request

from sso_bridge.auth.extract import extract_service_token
from sso_bridge.auth.jwt import AuthenticatedPrincipal, TokenValidator
from sso_bridge.auth.keys import PublicKeyStore
from sso_bridge.core.exceptions import AuthenticationError, UnauthorizedException
from sso_bridge.services.metrics import MetricsCollector, get_metrics_collector

logger = logging.getLogger(__name__)


class AuthGate:
    """
    Authenticates inbound requests carrying a service token.

    On success the principal and the raw token are stored on
    ``request.state`` so handlers can pass the token on explicitly.
    """

    def __init__(
        self,
        key_store: PublicKeyStore,
        validator: TokenValidator,
        metrics: MetricsCollector | None = None,
    ):
        self.key_store = key_store
        self.validator = validator
        self._metrics = metrics

    async def authenticate(self, request: Request) -> AuthenticatedPrincipal:
        """
        Authenticate a request.

        A missing token is validated as an empty one, so it is rejected by the
        validator like any other malformed token rather than skipped.

        Raises:
            UnauthorizedException: On any failure, with the failure kind as reason
        """
        token = extract_service_token(request) or ""
        route = f"{request.method} {request.url.path}"

        try:
            key = await self.key_store.get()
            claims = self.validator.validate(token, key)
        except AuthenticationError as e:
            logger.warning(f"Authentication rejected on {route}: {e.kind} ({e.reason})")
            self._record_failure(e.kind)
            raise UnauthorizedException(reason=e.kind) from e
        except Exception as e:
            logger.exception(f"Unexpected error authenticating {route}: {type(e).__name__}")
            self._record_failure("internal_error")
            raise UnauthorizedException(reason="internal_error") from e

        principal = AuthenticatedPrincipal.from_claims(claims)
        request.state.principal = principal
        request.state.service_token = token
        logger.debug(f"Authentication successful for user {principal.subject_id} on {route}")
        return principal

    def _record_failure(self, kind: str) -> None:
        (self._metrics or get_metrics_collector()).record_auth_failure(kind)
