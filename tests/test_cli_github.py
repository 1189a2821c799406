"""Tests for GitHub CLI commands."""

import json
from unittest.mock import patch

from typer.testing import CliRunner

from activity_sync.cli.app import app
from activity_sync.cli.github import _format_time_remaining
from activity_sync.github.exceptions import GitHubAuthenticationError
from activity_sync.github.rate_limit import RateLimitPool
from tests.factories import make_quota

runner = CliRunner()


class QuotaReportingClient:
    """Async context manager whose refresh_quota fills the monitor it was given."""

    error: Exception | None = None
    remaining = 4500

    def __init__(self, **kwargs) -> None:
        self.quota_monitor = kwargs["quota_monitor"]

    async def __aenter__(self) -> "QuotaReportingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def refresh_quota(self):
        if self.error is not None:
            raise self.error
        self.quota_monitor.update(make_quota(remaining=self.remaining))
        self.quota_monitor.update(make_quota(remaining=25, limit=30, pool=RateLimitPool.SEARCH))
        return self.quota_monitor.quota


class TestRateLimitCommand:
    """Tests for the 'github rate-limit' command."""

    def test_requires_token(self, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        result = runner.invoke(app, ["github", "rate-limit"])

        assert result.exit_code == 1
        assert "GITHUB_TOKEN not set" in result.stdout

    def test_json_output(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")

        # Act
        with patch("activity_sync.cli.github.GitHubClient", new=QuotaReportingClient):
            result = runner.invoke(app, ["github", "rate-limit", "--format", "json"])

        # Assert
        assert result.exit_code == 0
        output = json.loads(result.stdout)
        assert output["pools"]["core"]["remaining"] == 4500
        assert output["pools"]["core"]["status"] == "healthy"
        assert output["pools"]["search"]["limit"] == 30

    def test_table_output_all_pools(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")

        with patch("activity_sync.cli.github.GitHubClient", new=QuotaReportingClient):
            result = runner.invoke(app, ["github", "rate-limit", "--all"])

        assert result.exit_code == 0
        assert "core" in result.stdout
        assert "search" in result.stdout

    def test_invalid_token(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_bad")

        class RejectingClient(QuotaReportingClient):
            error = GitHubAuthenticationError("Bad credentials", 401)

        with patch("activity_sync.cli.github.GitHubClient", new=RejectingClient):
            result = runner.invoke(app, ["github", "rate-limit"])

        assert result.exit_code == 1
        assert "Invalid GitHub token" in result.stdout


class TestFormatTimeRemaining:
    """Human-readable reset countdown."""

    def test_formats(self):
        assert _format_time_remaining(0) == "Now"
        assert _format_time_remaining(45) == "45s"
        assert _format_time_remaining(125) == "2m 5s"
        assert _format_time_remaining(3 * 3600 + 60 * 7) == "3h 7m"
