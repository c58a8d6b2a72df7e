"""Tests for configuration module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from game_releases.config import (
    CrawlConfig,
    FollowersConfig,
    LoggingConfig,
    RetryConfig,
    Settings,
    StoreConfig,
    SyncConfig,
)


class TestStoreConfig:
    """Tests for storefront configuration."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            config = StoreConfig()

        assert "sort_by=Released_DESC" in config.search_url
        assert config.search_url.endswith("page={page}")
        assert config.appdetails_url == "https://store.steampowered.com/api/appdetails"
        assert config.app_page_url.format(app_id=570) == "https://store.steampowered.com/app/570/"
        assert config.timeout_seconds == 30

    def test_search_url_requires_page_placeholder(self) -> None:
        """Test that a search URL without {page} is rejected."""
        with pytest.raises(ValueError, match="page"):
            StoreConfig(search_url="https://store.test/search/")

    def test_env_override(self) -> None:
        """Test that STORE_ variables are picked up."""
        with patch.dict(os.environ, {"STORE_COUNTRY_CODE": "DE", "STORE_LANGUAGE": "german"}):
            config = StoreConfig()

        assert config.country_code == "DE"
        assert config.language == "german"


class TestCrawlConfig:
    """Tests for crawler configuration."""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = CrawlConfig()

        assert config.max_pages == 10
        assert config.page_delay_seconds == 2.0
        assert config.year_window == (2024, 2030)

    def test_inverted_year_window(self) -> None:
        """Test that an inverted bare-year window is rejected."""
        with pytest.raises(ValueError, match="year_window_start"):
            CrawlConfig(year_window_start=2031, year_window_end=2030)

    def test_max_pages_bounds(self) -> None:
        with patch.dict(os.environ, {"CRAWL_MAX_PAGES": "0"}), pytest.raises(ValueError):
            CrawlConfig()


class TestFollowersConfig:
    """Tests for followers configuration."""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = FollowersConfig()

        assert config.backend == "html"
        assert config.max_concurrency == 2
        assert config.cache_ttl_hours == 6.0
        assert "{app_id}" in config.url_template

    def test_url_template_requires_placeholder(self) -> None:
        with pytest.raises(ValueError, match="app_id"):
            FollowersConfig(url_template="https://community.test/groups/")

    def test_unknown_backend_rejected(self) -> None:
        with patch.dict(os.environ, {"FOLLOWERS_BACKEND": "selenium"}), pytest.raises(ValueError):
            FollowersConfig()


class TestRetryConfig:
    """Tests for retry configuration."""

    def test_default_values(self) -> None:
        """Test default retry values."""
        with patch.dict(os.environ, {}, clear=True):
            config = RetryConfig()

        assert config.max_attempts == 3
        assert config.base_delay_seconds == 1.0

    def test_max_attempts_bounds(self) -> None:
        """Test max_attempts validation bounds."""
        with patch.dict(os.environ, {"RETRY_MAX_ATTEMPTS": "0"}), pytest.raises(ValueError):
            RetryConfig()

        with patch.dict(os.environ, {"RETRY_MAX_ATTEMPTS": "11"}), pytest.raises(ValueError):
            RetryConfig()


class TestSyncConfig:
    """Tests for sync configuration."""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = SyncConfig()

        assert config.interval_hours == 6.0
        assert config.window_days_back == 365
        assert config.window_days_ahead == 365
        assert config.followers_refresh_hours == 24.0
        assert config.store_path == Path("data/catalog.json")

    def test_interval_must_be_positive(self) -> None:
        with patch.dict(os.environ, {"SYNC_INTERVAL_HOURS": "0"}), pytest.raises(ValueError):
            SyncConfig()


class TestLoggingConfig:
    """Tests for logging configuration."""

    def test_valid_levels(self) -> None:
        """Test valid log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            with patch.dict(os.environ, {"LOG_LEVEL": level}):
                config = LoggingConfig()
                assert config.level == level

    def test_valid_formats(self) -> None:
        """Test valid log formats."""
        for fmt in ["json", "console"]:
            with patch.dict(os.environ, {"LOG_FORMAT": fmt}):
                config = LoggingConfig()
                assert config.format == fmt


class TestSettings:
    """Tests for the aggregated settings."""

    def test_sections_present(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.followers.max_concurrency > settings.details.max_concurrency

    def test_environment_from_env(self) -> None:
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.environment == "production"
