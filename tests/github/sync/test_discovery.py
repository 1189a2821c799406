"""Tests for organization-wide repository discovery."""

from typing import Any

import httpx
import pytest

from activity_sync.config import RateLimitConfig
from activity_sync.github.client import GitHubClient
from activity_sync.github.rate_limit import QuotaMonitor
from activity_sync.github.sync.discovery import discover_repositories
from activity_sync.schemas import DateRange
from tests.conftest import JAN_01, JAN_07


def _repo(name: str, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": abs(hash(name)) % 10_000,
        "name": name,
        "full_name": f"prebid/{name}",
        "default_branch": "master",
        "archived": False,
        "disabled": False,
        "pushed_at": "2025-01-05T09:00:00Z",
    }
    data.update(overrides)
    return data


ORG_LISTING = [
    _repo("prebid-server"),
    _repo("Prebid.js", pushed_at="2025-01-01T00:00:00Z"),
    _repo("old-adapter", archived=True),
    _repo("frozen", disabled=True),
    _repo("quiet", pushed_at="2024-12-31T23:59:59Z"),
    _repo("never-pushed", pushed_at=None),
    _repo("prebid.github.io"),
]


@pytest.fixture
def requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def client(requests: list[httpx.Request]) -> GitHubClient:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        page = int(request.url.params["page"])
        per_page = int(request.url.params["per_page"])
        chunk = ORG_LISTING[(page - 1) * per_page : page * per_page]
        return httpx.Response(200, json=chunk)

    config = RateLimitConfig()
    return GitHubClient(
        "test-token",
        quota_monitor=QuotaMonitor(config),
        config=config,
        page_size=3,
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            base_url="https://api.github.com",
        ),
    )


class TestDiscoverRepositories:
    """Archived, disabled, idle and excluded repositories are left out."""

    async def test_filters_inactive_repositories(self, client, requests):
        # Act
        discovery = await discover_repositories(client, "prebid", DateRange(JAN_01, JAN_07))

        # Assert
        assert discovery.active == [
            "prebid/prebid-server",
            "prebid/Prebid.js",
            "prebid/never-pushed",
            "prebid/prebid.github.io",
        ]
        assert discovery.inactive == ["prebid/old-adapter", "prebid/frozen", "prebid/quiet"]
        assert discovery.total == len(ORG_LISTING)
        assert {r.url.path for r in requests} == {"/orgs/prebid/repos"}
        assert [r.url.params["page"] for r in requests] == ["1", "2", "3"]

    async def test_exclude_matches_name_or_full_name(self, client):
        discovery = await discover_repositories(
            client,
            "prebid",
            DateRange(JAN_01, JAN_07),
            exclude=["prebid.github.io", "PREBID/prebid-server", " "],
        )

        assert discovery.excluded == ["prebid/prebid-server", "prebid/prebid.github.io"]
        assert discovery.active == ["prebid/Prebid.js", "prebid/never-pushed"]

    async def test_later_range_start_drops_more(self, client):
        discovery = await discover_repositories(
            client, "prebid", DateRange(JAN_07, JAN_07)
        )

        assert discovery.active == ["prebid/never-pushed"]
