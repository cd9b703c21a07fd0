"""
Authentication module for the SSO bridge.
Implements RS256 service token validation against the issuer's public key.
"""

from sso_bridge.auth.extract import extract_service_token, require_service_token
from sso_bridge.auth.gate import AuthGate
from sso_bridge.auth.jwt import (
    AuthenticatedPrincipal,
    ServiceTokenClaims,
    TokenType,
    TokenValidator,
    service_name_matches,
)
from sso_bridge.auth.keys import PublicKeyStore, normalize_public_key

__all__ = [
    # Extraction
    "extract_service_token",
    "require_service_token",
    # Validation
    "AuthGate",
    "AuthenticatedPrincipal",
    "ServiceTokenClaims",
    "TokenType",
    "TokenValidator",
    "service_name_matches",
    # Keys
    "PublicKeyStore",
    "normalize_public_key",
]
