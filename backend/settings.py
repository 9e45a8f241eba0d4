"""
Centralized settings configuration using Pydantic BaseSettings.

All environment variables are defined here with types, defaults, and validation.
Use get_settings() wherever settings are needed; create_engine() falls back to
it when no Settings instance is passed.

Usage:
    from backend.settings import get_settings, Settings

    settings = get_settings()
    print(settings.local_cache_path)

    # Tests: build settings without reading .env
    settings = Settings(environment="test", _env_file=None)
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Core Environment
    # -------------------------------------------------------------------------
    environment: str = Field(
        default="development",
        description="Runtime environment: development, staging, production",
    )
    log_level: str = Field(
        default="INFO",
        description="Level for the application loggers",
    )

    # -------------------------------------------------------------------------
    # Supabase Database
    # -------------------------------------------------------------------------
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL",
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (full access)",
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Supabase anonymous key (limited access)",
    )

    @property
    def supabase_key(self) -> Optional[str]:
        """Get the best available Supabase key (service role preferred)."""
        return self.supabase_service_role_key or self.supabase_anon_key

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------
    local_cache_path: str = Field(
        default="~/.progress-engine/cache.db",
        description="SQLite file used when the remote store is unreachable (':memory:' for none)",
    )
    remote_retry_attempts: int = Field(
        default=2,
        ge=1,
        description="Attempts per remote call before falling back to the local cache",
    )
    remote_retry_min_wait_seconds: float = Field(
        default=0.2,
        ge=0,
        description="Base exponential backoff between remote attempts",
    )
    remote_retry_max_wait_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Backoff ceiling between remote attempts",
    )

    # -------------------------------------------------------------------------
    # Gamification
    # -------------------------------------------------------------------------
    weekly_workout_target: int = Field(
        default=3,
        ge=1,
        description="Sessions per week counted as 100% consistency",
    )
    achievement_catalog_source: str = Field(
        default="file",
        description="Where achievements are loaded from: file or remote",
    )
    achievement_catalog_path: Optional[str] = Field(
        default=None,
        description="YAML achievement catalog (defaults to the bundled catalog)",
    )

    # -------------------------------------------------------------------------
    # Observability - Sentry
    # -------------------------------------------------------------------------
    sentry_dsn: Optional[str] = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {valid_environments}"
            )
        return v.lower()

    @field_validator("achievement_catalog_source")
    @classmethod
    def validate_catalog_source(cls, v: str) -> str:
        valid_sources = {"file", "remote"}
        if v.lower() not in valid_sources:
            raise ValueError(
                f"Invalid achievement catalog source '{v}'. Must be one of: {valid_sources}"
            )
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Must be one of: {valid_levels}")
        return v.upper()

    # -------------------------------------------------------------------------
    # Helper Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    For testing, you can clear the cache with get_settings.cache_clear().

    Returns:
        Settings: Application settings instance
    """
    return Settings()
