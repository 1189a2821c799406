"""Configuration settings for Activity Sync."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimitConfig(BaseModel):
    """Configuration for the rate-limited client.

    Controls the proactive throttle, retry behaviour for transient
    failures, and thresholds used to report quota health.
    """

    # Proactive throttle
    safety_threshold: int = Field(
        default=10,
        ge=0,
        description="Sleep until reset when remaining quota drops below this",
    )

    # Retries
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for transient failures before giving up",
    )
    backoff_base_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay; attempt N waits base * 2**N seconds",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request HTTP timeout",
    )

    # Threshold percentages for status determination
    healthy_threshold_pct: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is HEALTHY",
    )
    warning_threshold_pct: float = Field(
        default=20.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is WARNING (below healthy)",
    )
    critical_threshold_pct: float = Field(
        default=5.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is CRITICAL (below warning)",
    )


class QuotaConfig(BaseModel):
    """Configuration for the pre-flight quota estimate.

    An extension of existing coverage is priced with a per-day heuristic;
    anything else is priced from an exact remote count.
    """

    safety_margin: int = Field(
        default=50,
        ge=0,
        description="Requests kept in reserve when deciding to skip a unit",
    )
    extension_items_per_day: int = Field(
        default=15,
        ge=1,
        description="Assumed items per newly requested day for extensions",
    )
    min_estimated_items: int = Field(
        default=10,
        ge=0,
        description="Lower bound on the heuristic item estimate",
    )
    extension_max_days: int = Field(
        default=7,
        ge=1,
        description="Largest trailing gap still priced as an extension",
    )


class SyncConfig(BaseModel):
    """Configuration for sync behavior."""

    page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per page (GitHub maximum is 100)",
    )
    commit_batch_days: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Recorded days per database commit (limits data loss on failure)",
    )
    default_branch_ttl_days: int = Field(
        default=7,
        ge=0,
        description="How long a cached default branch name stays fresh",
    )
    default_lookback_days: int = Field(
        default=30,
        ge=1,
        description="Days synced when no --since is given",
    )

    @property
    def default_branch_ttl(self) -> timedelta:
        """Get the default branch cache lifetime as a timedelta."""
        return timedelta(days=self.default_branch_ttl_days)


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./activity_sync.db",
        description="Async SQLite database connection string",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub personal access token",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )
    organization: str = Field(
        default="",
        description="Default organization for repositories given without owner",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Rate Limiting & Quota
    # --------------------------------------------------------------------------
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Rate-limited client configuration",
    )
    quota: QuotaConfig = Field(
        default_factory=QuotaConfig,
        description="Quota estimation configuration",
    )

    # --------------------------------------------------------------------------
    # Sync Configuration
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Sync behavior configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    # --------------------------------------------------------------------------
    # Tracked Repositories
    # --------------------------------------------------------------------------
    tracked_repos: list[str] = Field(
        default_factory=list,
        description="Repositories synced when none are given (owner/name)",
    )
    exclude_repos: list[str] = Field(
        default_factory=list,
        description="Repositories skipped when syncing a whole organization (name or owner/name)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
