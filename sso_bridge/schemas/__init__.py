"""
Pydantic schemas for request/response validation.
"""

from sso_bridge.schemas.auth import (
    CacheInvalidationResponse,
    PrincipalResponse,
    SsoExchangeData,
    SsoExchangeRequest,
)
from sso_bridge.schemas.error import ErrorResponse

__all__ = [
    "CacheInvalidationResponse",
    "PrincipalResponse",
    "SsoExchangeData",
    "SsoExchangeRequest",
    "ErrorResponse",
]
