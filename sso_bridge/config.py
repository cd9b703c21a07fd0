"""
Configuration management for the SSO bridge.
Uses pydantic-settings for environment-based configuration.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Settings
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "SSO Bridge"
    DEBUG: bool = False

    # Issuing authority (signs service tokens, serves profile and exchange)
    ISSUER_BASE_URL: str
    ISSUER_FRONTEND_URL: str | None = None
    ISSUER_TIMEOUT: float = 30.0

    # Pre-provisioned PEM key; when set the key is never fetched remotely
    JWT_PUBLIC_KEY: str | None = None

    # Public key cache TTL in seconds
    PUBLIC_KEY_CACHE_TTL: int = 3600  # 1 hour

    # Expected service name carried by service tokens
    SERVICE_NAME: str | None = None
    DEFAULT_SERVICE_NAME: str = "external-service"

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("ISSUER_FRONTEND_URL", "JWT_PUBLIC_KEY", "SERVICE_NAME", mode="before")
    @classmethod
    def _empty_as_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("ISSUER_BASE_URL", "ISSUER_FRONTEND_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.
    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
