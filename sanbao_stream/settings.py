"""Application settings using pydantic-settings.

Loads configuration from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,  # Allow both field name and alias
    )

    # Environment
    environment: Literal["development", "staging", "production", "testing"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sanbao backend
    api_base_url: str = Field(
        default="http://localhost:3004",
        description="Sanbao backend base URL",
        validation_alias=AliasChoices("api_base_url", "sanbao_api_url"),
    )
    chat_endpoint: str = Field(
        default="/api/chat",
        description="Path of the NDJSON chat streaming endpoint",
    )
    api_token: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token sent with chat requests (empty = no header)",
        validation_alias=AliasChoices("api_token", "sanbao_api_token"),
    )

    # Transport timeouts (seconds)
    request_timeout: float = Field(default=30.0, gt=0, description="Write and connection-pool timeout")
    connect_timeout: float = Field(default=10.0, gt=0)
    stream_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Read timeout between stream chunks; long reasoning turns can be slow",
    )

    # Logging
    log_line_max_chars: int = Field(
        default=200,
        ge=20,
        description="Truncate undecodable stream lines to this many characters in logs",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded once and reused.
    """
    return Settings()
