"""
Pydantic schemas for the authentication endpoints.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SsoExchangeRequest(BaseModel):
    """Body of POST /auth/sso/exchange."""

    code: str = Field(..., min_length=1, description="SSO code received on the callback")
    redirect_uri: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("redirect_uri", "redirectUri"),
        description="Redirect URI used in the initiate request (redirect_uri or redirectUri)",
    )


class SsoExchangeData(BaseModel):
    """Issued service token, in the issuer's field naming."""

    model_config = ConfigDict(populate_by_name=True)

    service_token: str = Field(serialization_alias="serviceToken")
    user_id: int = Field(serialization_alias="userId")
    service_name: str | None = Field(default=None, serialization_alias="serviceName")


class PrincipalResponse(BaseModel):
    """Authenticated principal together with its resolved login."""

    subject_id: int
    email: str
    role: str
    service_name: str | None = None
    login: str


class CacheInvalidationResponse(BaseModel):
    removed: int
