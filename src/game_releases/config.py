"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation,
type coercion, and sensible defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseSettings):
    """Steam storefront endpoints and HTTP client settings."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    search_url: str = Field(
        default=(
            "https://store.steampowered.com/search/"
            "?sort_by=Released_DESC&category1=998&ndl=1&page={page}"
        ),
        description="Search results page template, {page} is 1-based",
    )
    appdetails_url: str = Field(
        default="https://store.steampowered.com/api/appdetails",
        description="Per-app JSON details endpoint",
    )
    app_page_url: str = Field(
        default="https://store.steampowered.com/app/{app_id}/",
        description="Public store page for an app",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=5,
        le=120,
        description="HTTP request timeout in seconds",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36"
        ),
    )
    accept_language: str = Field(default="en-US,en;q=0.9")
    country_code: str = Field(default="US", description="Country used for store pricing")
    language: str = Field(default="english", description="Store language")

    @field_validator("search_url")
    @classmethod
    def validate_search_template(cls, v: str) -> str:
        """Search URL must contain a {page} placeholder."""
        if "{page}" not in v:
            raise ValueError("search_url must contain a {page} placeholder")
        return v


class CrawlConfig(BaseSettings):
    """Search crawler configuration."""

    model_config = SettingsConfigDict(env_prefix="CRAWL_")

    max_pages: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Upper bound on search pages fetched per run",
    )
    page_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Politeness delay after each search page",
    )
    max_concurrency: int = Field(default=1, ge=1, le=10)
    min_interval_seconds: float = Field(default=1.0, ge=0.0, le=30.0)
    year_window_start: int = Field(
        default=2024,
        ge=1970,
        description="First year for which a bare year is accepted",
    )
    year_window_end: int = Field(
        default=2030,
        le=2100,
        description="Last year for which a bare year is accepted",
    )

    @model_validator(mode="after")
    def validate_year_window(self) -> "CrawlConfig":
        """Year window must not be inverted."""
        if self.year_window_start > self.year_window_end:
            raise ValueError("year_window_start must not be after year_window_end")
        return self

    @property
    def year_window(self) -> tuple[int, int]:
        """Inclusive window for bare-year approximation."""
        return (self.year_window_start, self.year_window_end)


class DetailsConfig(BaseSettings):
    """App details resolver configuration."""

    model_config = SettingsConfigDict(env_prefix="DETAILS_")

    max_concurrency: int = Field(default=1, ge=1, le=10)
    min_interval_seconds: float = Field(default=1.0, ge=0.0, le=30.0)


class FollowersConfig(BaseSettings):
    """Followers resolver configuration."""

    model_config = SettingsConfigDict(env_prefix="FOLLOWERS_")

    backend: Literal["html", "browser"] = Field(
        default="html",
        description="Extraction backend: plain HTTP + HTML parsing, or headless browser",
    )
    url_template: str = Field(
        default="https://steamcommunity.com/search/groups/?text={app_id}",
        description="Page scraped for the follower count, {app_id} is substituted",
    )
    max_concurrency: int = Field(default=2, ge=1, le=10)
    min_interval_seconds: float = Field(default=1.5, ge=0.0, le=30.0)
    cache_ttl_hours: float = Field(
        default=6.0,
        gt=0.0,
        le=168.0,
        description="How long a fetched follower count is reused",
    )
    browser_timeout_ms: int = Field(default=7000, ge=1000, le=60000)

    @field_validator("url_template")
    @classmethod
    def validate_url_template(cls, v: str) -> str:
        """Followers URL must contain an {app_id} placeholder."""
        if "{app_id}" not in v:
            raise ValueError("url_template must contain an {app_id} placeholder")
        return v


class RetryConfig(BaseSettings):
    """Retry behavior configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of attempts per request",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Retry delay grows linearly: base * attempt",
    )


class SyncConfig(BaseSettings):
    """Synchronization pass and scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    interval_hours: float = Field(default=6.0, gt=0.0, le=168.0)
    window_days_back: int = Field(default=365, ge=0, le=3650)
    window_days_ahead: int = Field(default=365, ge=1, le=3650)
    item_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Delay between sequential detail lookups",
    )
    followers_refresh_hours: float = Field(
        default=24.0,
        ge=0.0,
        description="Stored follower counts younger than this are not refetched",
    )
    store_path: Path = Field(default=Path("data/catalog.json"))
    analytics_dir: Path = Field(default=Path("data/analytics"))


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    include_timestamp: bool = Field(
        default=True,
        description="Include timestamp in log entries",
    )


class Settings(BaseSettings):
    """
    Main application settings.

    Aggregates all configuration sections and provides
    a single entry point for configuration access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Sub-configurations
    store: StoreConfig = Field(default_factory=StoreConfig)
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    details: DetailsConfig = Field(default_factory=DetailsConfig)
    followers: FollowersConfig = Field(default_factory=FollowersConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused across the application.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
