"""
MagicApp Import Configuration

Centralized configuration management using Pydantic Settings.
Supports environment variables (MAGICAPP_*) and .env files.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_BASE_URL = "https://api.magicapp.org/api/v1/"
DEFAULT_AUTH_URL = "https://api.magicapp.org/authenticate"


class MagicAppSettings(BaseSettings):
    """MAGICapp connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="MAGICAPP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credentials
    username: str | None = None
    password: SecretStr | None = None

    # Endpoints
    base_url: str = DEFAULT_BASE_URL
    auth_url: str = DEFAULT_AUTH_URL

    # Handshake
    csrf_cookie_name: str = "XSRF-TOKEN"

    # Transport
    timeout_seconds: float = Field(default=30.0, gt=0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


@lru_cache()
def get_settings() -> MagicAppSettings:
    """
    Get cached settings instance.

    Returns:
        MagicAppSettings: The importer settings
    """
    return MagicAppSettings()
