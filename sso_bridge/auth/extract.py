"""
Bearer token extraction.

Pure functions of the request: the token is read from the request that
carries it and handed on explicitly. Nothing is remembered between calls.
"""

from fastapi import Request

from sso_bridge.core.exceptions import MissingTokenError

BEARER_SCHEME = "bearer"


def extract_service_token(request: Request) -> str | None:
    """
    Extract the service token from the Authorization header.

    Args:
        request: Incoming request

    Returns:
        Raw token, or None if the header is missing, not a Bearer
        credential, or empty
    """
    authorization = request.headers.get("authorization")
    if not authorization:
        return None

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        return None

    token = token.strip()
    return token or None


def require_service_token(request: Request) -> str:
    """
    Extract the service token and fail if it is not present.

    Raises:
        MissingTokenError: If no bearer token is present
    """
    token = extract_service_token(request)
    if not token:
        raise MissingTokenError()
    return token
