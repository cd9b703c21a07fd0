"""Core utilities and exceptions for the SSO bridge."""

from sso_bridge.core.exceptions import (
    BridgeAPIException,
    ValidationException,
    AuthenticationError,
    KeyUnavailableError,
    TokenMalformedError,
    SignatureInvalidError,
    TokenExpiredError,
    WrongTokenTypeError,
    ServiceMismatchError,
    MissingTokenError,
    UnauthorizedException,
    ForbiddenException,
    IdentityUnresolvedError,
    ExchangeError,
    ExchangeRejectedError,
    ExchangeUnreachableError,
    ExchangeMalformedResponseError,
)

__all__ = [
    "BridgeAPIException",
    "ValidationException",
    "AuthenticationError",
    "KeyUnavailableError",
    "TokenMalformedError",
    "SignatureInvalidError",
    "TokenExpiredError",
    "WrongTokenTypeError",
    "ServiceMismatchError",
    "MissingTokenError",
    "UnauthorizedException",
    "ForbiddenException",
    "IdentityUnresolvedError",
    "ExchangeError",
    "ExchangeRejectedError",
    "ExchangeUnreachableError",
    "ExchangeMalformedResponseError",
]
