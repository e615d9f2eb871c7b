"""Configuration management for Inbox Mirror.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the INBOX_MIRROR_ prefix (e.g., INBOX_MIRROR_MAIL_TM_API_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="INBOX_MIRROR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Mail provider configuration
    mail_tm_api_url: str = Field(
        default="https://api.mail.tm",
        description="Base URL of the mail.tm compatible provider API",
    )
    request_timeout: float = Field(
        default=15.0,
        description="Timeout for provider API requests in seconds",
    )
    items_per_page: int = Field(
        default=20,
        description="Number of messages requested per listing page",
    )

    # Retry policy (applies uniformly to every provider call)
    max_attempts: int = Field(
        default=3,
        description="Total number of attempts for a provider call before giving up",
    )
    retry_base_delay: float = Field(
        default=1.0,
        description="Delay before the first retry in seconds; doubles on each attempt",
    )

    # Session state
    session_path: Path = Field(
        default=Path.home() / ".inbox_mirror" / "session.json",
        description="Path to the JSON file holding session cookies",
    )
    session_ttl_hours: int = Field(
        default=24,
        description="Lifetime of session cookies from the moment they are written",
    )

    # Persistence mirror
    mirror_backend: Literal["sqlite", "supabase"] = Field(
        default="sqlite",
        description="Storage used for the message mirror",
    )
    mirror_db_path: Path = Field(
        default=Path("inbox_mirror.sqlite3"),
        description="Path to the local SQLite mirror database",
    )
    supabase_url: str | None = Field(
        default=None,
        description="Supabase project URL (required for the supabase backend)",
    )
    supabase_key: str | None = Field(
        default=None,
        description="Supabase anon or service key (required for the supabase backend)",
    )
    supabase_table: str = Field(
        default="emails",
        description="Table holding mirrored messages",
    )

    # Synchronizer
    refresh_interval: float = Field(
        default=30.0,
        description="Seconds between automatic inbox refreshes in watch mode",
    )
    prefetch_bodies: bool = Field(
        default=True,
        description="Fetch full bodies after each refresh so search covers message content",
    )
    prefetch_concurrency: int = Field(
        default=4,
        description="Maximum number of concurrent body fetches during prefetch",
    )

    # Application configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
