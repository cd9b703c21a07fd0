"""
Services for the SSO bridge.
Services talk to the issuing authority and hold process-wide state.
"""

from sso_bridge.services.issuer_client import IssuerClient, IssuerResponseError
from sso_bridge.services.identity import IdentityResolver, LOGIN_EXTRACTORS, login_from_profile
from sso_bridge.services.sso import (
    ExchangeState,
    SsoExchange,
    SsoExchangeCoordinator,
    SsoExchangeResult,
)

__all__ = [
    "IssuerClient",
    "IssuerResponseError",
    "IdentityResolver",
    "LOGIN_EXTRACTORS",
    "login_from_profile",
    "ExchangeState",
    "SsoExchange",
    "SsoExchangeCoordinator",
    "SsoExchangeResult",
]
