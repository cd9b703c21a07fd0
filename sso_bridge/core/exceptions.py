"""
Custom exceptions for the SSO bridge.

Authentication failures share one external message so a caller cannot tell
which check rejected its token; the specific ``kind`` is kept for logs and
metrics only.
"""

from typing import Any

GENERIC_AUTH_MESSAGE = "Invalid or missing service token"


class BridgeAPIException(Exception):
    """Base exception for all SSO bridge errors."""

    kind = "internal_error"

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response dictionary."""
        response = {
            "error": self.error,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


class ValidationException(BridgeAPIException):
    """400 - Malformed request (missing parameters)."""

    kind = "validation_failed"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            error="validation_failed",
            message=message,
            status_code=400,
            details=details,
        )


# --- Authentication (401) ---


class AuthenticationError(BridgeAPIException):
    """
    401 - Base for every token, key and extraction failure.

    ``str(exc)`` carries the diagnostic reason; ``to_dict`` never does.
    """

    kind = "unauthenticated"

    def __init__(self, reason: str = GENERIC_AUTH_MESSAGE):
        super().__init__(
            error="unauthorized",
            message=GENERIC_AUTH_MESSAGE,
            status_code=401,
        )
        self.reason = reason

    def __str__(self) -> str:
        return self.reason


class KeyUnavailableError(AuthenticationError):
    """No verification key could be loaded or fetched."""

    kind = "key_unavailable"


class TokenMalformedError(AuthenticationError):
    kind = "malformed"


class SignatureInvalidError(AuthenticationError):
    kind = "signature_invalid"


class TokenExpiredError(AuthenticationError):
    kind = "expired"


class WrongTokenTypeError(AuthenticationError):
    kind = "wrong_type"


class ServiceMismatchError(AuthenticationError):
    kind = "service_mismatch"


class MissingTokenError(AuthenticationError):
    """Raised at the extraction layer when no bearer token is present."""

    kind = "missing_token"

    def __init__(self, reason: str = "Service token is required"):
        super().__init__(reason)


class UnauthorizedException(AuthenticationError):
    """Outcome of a rejected request at the auth gate."""

    def __init__(self, reason: str = "unauthenticated"):
        super().__init__(reason)
        self.kind = reason


# --- Identity (500) ---


class IdentityUnresolvedError(BridgeAPIException):
    """500 - Authenticated subject has no resolvable login."""

    kind = "identity_unresolved"

    def __init__(self, subject_id: int):
        super().__init__(
            error="identity_unresolved",
            message="Unable to determine user login",
            status_code=500,
            details={"subject_id": subject_id},
        )
        self.subject_id = subject_id


# --- SSO exchange (400/502) ---


class ExchangeError(BridgeAPIException):
    """Base for failures of the one-time code exchange."""


class ExchangeRejectedError(ExchangeError):
    """400 - Issuer refused the code (invalid, expired, reused, URI mismatch)."""

    kind = "exchange_rejected"

    def __init__(self, issuer_status: int, issuer_message: str | None = None):
        super().__init__(
            error="exchange_rejected",
            message=issuer_message or "Invalid or expired SSO code",
            status_code=400,
            details={"issuer_status": issuer_status},
        )
        self.issuer_status = issuer_status


class ExchangeUnreachableError(ExchangeError):
    """502 - Issuer could not be reached or failed internally."""

    kind = "exchange_unreachable"

    def __init__(self, message: str = "SSO issuer is unreachable"):
        super().__init__(
            error="exchange_unreachable",
            message=message,
            status_code=502,
        )


class ExchangeMalformedResponseError(ExchangeError):
    """502 - Issuer answered with an unexpected payload."""

    kind = "exchange_malformed_response"

    def __init__(self, message: str = "Invalid response from SSO exchange endpoint"):
        super().__init__(
            error="exchange_malformed_response",
            message=message,
            status_code=502,
        )


class ForbiddenException(BridgeAPIException):
    """403 - Valid token but insufficient permissions."""

    kind = "forbidden"

    def __init__(self, message: str = "Access denied", details: dict[str, Any] | None = None):
        super().__init__(
            error="forbidden",
            message=message,
            status_code=403,
            details=details,
        )
