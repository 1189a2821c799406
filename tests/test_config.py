"""Tests for configuration settings."""

from datetime import timedelta

import pytest

from activity_sync.config import (
    QuotaConfig,
    RateLimitConfig,
    Settings,
    SyncConfig,
    get_settings,
)


class TestSettings:
    """Tests for Settings class."""

    def test_settings_defaults(self):
        """Test default values are correct."""
        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./activity_sync.db"
        assert settings.github_token == ""
        assert settings.github_api_url == "https://api.github.com"
        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert settings.tracked_repos == []

    def test_settings_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
        monkeypatch.setenv("GITHUB_TOKEN", "test_token_123")
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./test.db"
        assert settings.github_token == "test_token_123"
        assert settings.environment == "production"
        assert settings.log_level == "DEBUG"

    def test_tracked_repos_from_env_json(self, monkeypatch):
        """List settings are read as JSON."""
        monkeypatch.setenv("TRACKED_REPOS", '["prebid/prebid-server", "prebid/Prebid.js"]')

        settings = Settings(_env_file=None)

        assert settings.tracked_repos == ["prebid/prebid-server", "prebid/Prebid.js"]

    def test_settings_environment_validation(self, monkeypatch):
        """Test that invalid environment value is rejected."""
        monkeypatch.setenv("ENVIRONMENT", "invalid")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_settings_log_level_validation(self, monkeypatch):
        """Test that invalid log level is rejected."""
        monkeypatch.setenv("LOG_LEVEL", "INVALID")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_nested_settings_from_env(self, monkeypatch):
        """Nested sections use the double-underscore delimiter."""
        monkeypatch.setenv("RATE_LIMIT__MAX_RETRIES", "5")
        monkeypatch.setenv("QUOTA__SAFETY_MARGIN", "200")
        monkeypatch.setenv("SYNC__COMMIT_BATCH_DAYS", "3")

        settings = Settings(_env_file=None)

        assert settings.rate_limit.max_retries == 5
        assert settings.quota.safety_margin == 200
        assert settings.sync.commit_batch_days == 3

    def test_get_settings_is_cached(self):
        """Repeated calls return the same instance until the cache is cleared."""
        first = get_settings()

        assert get_settings() is first

        get_settings.cache_clear()
        assert get_settings() is not first


class TestRateLimitConfig:
    """Tests for client throttle and retry settings."""

    def test_defaults(self):
        config = RateLimitConfig()

        assert config.safety_threshold == 10
        assert config.max_retries == 3
        assert config.backoff_base_seconds == 1.0

    def test_max_retries_upper_bound(self):
        with pytest.raises(ValueError):
            RateLimitConfig(max_retries=11)

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            RateLimitConfig(safety_threshold=-1)


class TestQuotaConfig:
    """Tests for quota estimation constants."""

    def test_defaults(self):
        config = QuotaConfig()

        assert config.safety_margin == 50
        assert config.extension_items_per_day == 15
        assert config.min_estimated_items == 10
        assert config.extension_max_days == 7

    def test_items_per_day_must_be_positive(self):
        with pytest.raises(ValueError):
            QuotaConfig(extension_items_per_day=0)


class TestSyncConfig:
    """Tests for sync behaviour settings."""

    def test_page_size_capped_at_github_maximum(self):
        with pytest.raises(ValueError):
            SyncConfig(page_size=101)

    def test_commit_batch_days_must_be_positive(self):
        with pytest.raises(ValueError):
            SyncConfig(commit_batch_days=0)

    def test_default_branch_ttl(self):
        config = SyncConfig(default_branch_ttl_days=3)

        assert config.default_branch_ttl == timedelta(days=3)
