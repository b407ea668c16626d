"""
Application settings using Pydantic.

Provides environment-based configuration loading with SALTMASTER_ prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SALTMASTER_",
    )

    # Stack
    stack: str = "dev"
    state_dir: Path = Path(".saltmaster/state")

    # Equinix Metal
    metal_base_url: str = "https://api.equinix.com/metal/v1"
    metal_auth_token: str | None = None

    # NS1
    ns1_base_url: str = "https://api.nsone.net/v1"
    ns1_api_key: str | None = None

    # HTTP client settings
    http_timeout: float = Field(default=30.0, gt=0)
    http_max_retries: int = Field(default=3, ge=1)

    # Logging
    log_level: str = "INFO"
    log_json: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
