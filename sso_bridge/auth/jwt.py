"""
Service token validation.

Checks run in a fixed order and the first failure wins:
structure and RS256 signature, expiry, token type, service name.
"""

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from jose import jwt
from jose.exceptions import JWTClaimsError, JWTError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sso_bridge.core.exceptions import (
    ServiceMismatchError,
    SignatureInvalidError,
    TokenExpiredError,
    TokenMalformedError,
    WrongTokenTypeError,
)

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"

# Expiry is checked by TokenValidator itself against its clock. The subject is
# numeric and tokens carry no audience, so those library checks are off too.
_DECODE_OPTIONS = {
    "verify_exp": False,
    "verify_sub": False,
    "verify_aud": False,
}


class TokenType(str, Enum):
    SERVICE = "service"
    USER = "user"


class ServiceTokenClaims(BaseModel):
    """Claims carried by a service token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subject_id: int = Field(alias="sub")
    email: str
    role: str
    # Any value, or none, reaches the type check; only "service" passes
    type: Any = None
    service_name: str | None = Field(default=None, alias="service")
    issued_at: int | None = Field(default=None, alias="iat")
    expires_at: int = Field(alias="exp")


class AuthenticatedPrincipal(BaseModel):
    """Request-scoped identity derived from validated claims."""

    model_config = ConfigDict(frozen=True)

    subject_id: int
    email: str
    role: str
    service_name: str | None = None

    @classmethod
    def from_claims(cls, claims: ServiceTokenClaims) -> "AuthenticatedPrincipal":
        return cls(
            subject_id=claims.subject_id,
            email=claims.email,
            role=claims.role,
            service_name=claims.service_name,
        )


def service_name_matches(expected: str, actual: str) -> bool:
    """
    Exact match, or either name contained in the other (case-sensitive).

    Tolerates naming variants such as ``external-service`` against
    ``crm-external-service``.
    """
    return actual == expected or expected in actual or actual in expected


class TokenValidator:
    """
    Verifies service tokens against the current key and policy.

    Args:
        expected_service_name: When set, tokens must carry a matching
            ``service`` claim
        clock: Returns the current UNIX time in seconds
    """

    def __init__(
        self,
        expected_service_name: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.expected_service_name = expected_service_name
        self._clock = clock

    def validate(self, raw_token: str, key: str) -> ServiceTokenClaims:
        """
        Validate a raw service token.

        Args:
            raw_token: Compact JWS string (may be empty)
            key: PEM-encoded RSA public key

        Returns:
            Parsed claims

        Raises:
            TokenMalformedError: Token is empty, undecodable or lacks required claims
            SignatureInvalidError: Signature or algorithm check failed
            TokenExpiredError: ``exp`` has passed
            WrongTokenTypeError: ``type`` is not ``service``
            ServiceMismatchError: ``service`` does not match the expected name
        """
        claims = self._verify_signature(raw_token, key)

        if self._clock() >= claims.expires_at:
            raise TokenExpiredError("Token has expired")

        if claims.type != TokenType.SERVICE.value:
            raise WrongTokenTypeError(f"Invalid token type {claims.type!r}, expected 'service'")

        self._check_service_name(claims)
        return claims

    def _verify_signature(self, raw_token: str, key: str) -> ServiceTokenClaims:
        if not raw_token:
            raise TokenMalformedError("Token is empty")

        try:
            jwt.get_unverified_header(raw_token)
        except JWTError as e:
            raise TokenMalformedError(f"Token is not a compact JWS: {e}") from e

        try:
            payload = jwt.decode(
                raw_token,
                key,
                algorithms=[ALGORITHM],
                options=_DECODE_OPTIONS,
            )
        except JWTClaimsError as e:
            raise TokenMalformedError(f"Invalid registered claims: {e}") from e
        except JWTError as e:
            raise SignatureInvalidError(f"Signature verification failed: {e}") from e

        try:
            return ServiceTokenClaims.model_validate(payload)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise TokenMalformedError(f"Token claims invalid: {', '.join(fields)}") from e

    def _check_service_name(self, claims: ServiceTokenClaims) -> None:
        expected = self.expected_service_name
        if not expected:
            return

        actual = claims.service_name
        if not actual:
            raise ServiceMismatchError(f"Service token must include service name: {expected}")

        if not service_name_matches(expected, actual):
            raise ServiceMismatchError(
                f"Service token does not match expected service: expected {expected}, got {actual}"
            )

        if actual != expected:
            logger.debug(f"Service name flexible match: {expected} <-> {actual}")
