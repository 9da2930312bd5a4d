"""
Configuration Management for the Finance Tracker Client

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every request timeout, page-size cap and fallback account lives in one
place so no view has to repeat its own magic numbers.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Finance REST API connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_API_",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the finance API (without the /api suffix)"
    )

    # Timeouts per request class (seconds)
    summary_timeout_seconds: float = Field(
        default=5.0,
        ge=1.0,
        le=60.0,
        description="Timeout for lightweight summary/balance queries"
    )
    insights_timeout_seconds: float = Field(
        default=8.0,
        ge=1.0,
        le=60.0,
        description="Timeout for the insights query"
    )
    listing_timeout_seconds: float = Field(
        default=15.0,
        ge=1.0,
        le=60.0,
        description="Timeout for single-page listings and write operations"
    )
    export_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=60.0,
        description="Timeout for bulk export pages and binary downloads"
    )

    # Retry policy for idempotent reads
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for GET requests failing on connection errors"
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=10.0,
        description="Exponential backoff multiplier between retries"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined with a leading slash."""
        return v.rstrip("/")


class ExportSettings(BaseSettings):
    """Full-set export configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_EXPORT_",
        extra="ignore"
    )

    max_page_size: int = Field(
        default=2000,
        ge=1,
        description="Largest page size the backend accepts"
    )
    max_pages: int = Field(
        default=100,
        ge=1,
        description="Iteration bound for the export page loop"
    )


class AccountSettings(BaseSettings):
    """Active account fallback configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_ACCOUNT_",
        extra="ignore"
    )

    default_account_id: int = Field(
        default=1,
        ge=1,
        description="Account used when the session carries no account id"
    )
    default_currency: str = Field(
        default="BRL",
        min_length=3,
        max_length=3,
        description="Currency assumed when a payload omits it"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def export(self) -> ExportSettings:
        return ExportSettings()

    @property
    def account(self) -> AccountSettings:
        return AccountSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing what failed. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("api", "export", "account", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
