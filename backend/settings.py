"""
Centralized settings configuration using Pydantic BaseSettings.

All environment variables are defined here with types, defaults, and validation.
Use get_settings() for dependency injection compatibility in FastAPI.

Usage:
    from backend.settings import get_settings, Settings

    # In FastAPI endpoints (dependency injection)
    @app.get("/")
    def read_root(settings: Settings = Depends(get_settings)):
        return {"environment": settings.environment}

    # Direct access (module-level)
    settings = get_settings()
    print(settings.ai_timeout_ms)
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.constants import (
    DEFAULT_AI_CACHE_TTL_MS,
    DEFAULT_AI_TIMEOUT_MS,
    DEFAULT_STREAK_CADENCE_DAYS,
    DEFAULT_SUMMARY_PERIOD_DAYS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # Core Environment
    # -------------------------------------------------------------------------
    environment: str = Field(
        default="development",
        description="Runtime environment: development, staging, production, test",
    )

    cors_origins: List[str] = Field(
        default=["http://localhost:8081", "http://localhost:19006"],
        description="Origins allowed by CORS (JSON list); Expo dev server and web build by default",
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

    # -------------------------------------------------------------------------
    # AI Augmentation - OpenAI
    # -------------------------------------------------------------------------
    ai_enabled: bool = Field(
        default=False,
        description="Feature flag for AI plan augmentation",
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI chat model",
    )
    openai_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    openai_max_tokens: int = Field(
        default=500,
        ge=1,
        le=4096,
        description="Completion token limit",
    )
    ai_timeout_ms: int = Field(
        default=DEFAULT_AI_TIMEOUT_MS,
        ge=1,
        description="Hard timeout for one AI call, in milliseconds",
    )
    ai_cache_ttl_ms: int = Field(
        default=DEFAULT_AI_CACHE_TTL_MS,
        ge=0,
        description="Dedup cache TTL for augmentation results, in milliseconds",
    )

    @property
    def ai_configured(self) -> bool:
        """AI is used only when the flag is on and a key is set."""
        return self.ai_enabled and bool(self.openai_api_key)

    # -------------------------------------------------------------------------
    # Adherence
    # -------------------------------------------------------------------------
    streak_cadence_days: int = Field(
        default=DEFAULT_STREAK_CADENCE_DAYS,
        ge=1,
        description="Max days between logs that continue a streak",
    )
    summary_period_days: int = Field(
        default=DEFAULT_SUMMARY_PERIOD_DAYS,
        ge=1,
        description="Weekly summary throttle period in days",
    )

    # -------------------------------------------------------------------------
    # Feature Flags
    # -------------------------------------------------------------------------
    maintenance_mode_enabled: bool = Field(
        default=False,
        alias="enable_maintenance_mode",
        description="Allow users to switch into maintenance mode",
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

    # -------------------------------------------------------------------------
    # Helper Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

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
