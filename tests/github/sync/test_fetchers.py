"""Tests for the pull request and commit fetchers.

The GitHub client is mocked; storage goes to the in-memory database.
"""

from collections.abc import AsyncIterator, Iterable
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from activity_sync.config import SyncConfig
from activity_sync.db.repositories import (
    CommentRepository,
    CommitFileRepository,
    CommitRepository,
    PullRequestRepository,
    RepositoryMetadataRepository,
    ReviewRepository,
)
from activity_sync.github.exceptions import GitHubNotFoundError
from activity_sync.github.sync.fetchers import (
    CommitFetcher,
    DiscoveredItem,
    PullRequestFetcher,
    build_fetchers,
)
from activity_sync.schemas import (
    CommentType,
    DateRange,
    GitHubComment,
    GitHubCommit,
    GitHubPullRequest,
    GitHubRepository,
    GitHubReview,
    PRState,
)
from tests.conftest import (
    DEC_20_ISO,
    JAN_02_ISO,
    JAN_03,
    JAN_03_LATE_ISO,
    JAN_04,
    JAN_04_ISO,
    JAN_05,
    JAN_05_ISO,
    JAN_06_ISO,
    JAN_09_ISO,
)
from tests.factories import (
    make_github_comment,
    make_github_commit,
    make_github_pr,
    make_github_review,
)

WINDOW = DateRange(JAN_03, JAN_05)


class Listing:
    """Async listing that records how many records were consumed."""

    def __init__(self, records: Iterable) -> None:
        self.records = list(records)
        self.consumed = 0

    async def _iterate(self) -> AsyncIterator:
        for record in self.records:
            self.consumed += 1
            yield record

    def __call__(self, *args, **kwargs) -> AsyncIterator:
        return self._iterate()


def _pr(**overrides) -> GitHubPullRequest:
    return GitHubPullRequest.model_validate(make_github_pr(**overrides))


def _commit(**overrides) -> GitHubCommit:
    return GitHubCommit.model_validate(make_github_commit(**overrides))


async def collect(iterator: AsyncIterator) -> list:
    return [item async for item in iterator]


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


# -----------------------------------------------------------------------------
# Pull Requests
# -----------------------------------------------------------------------------
class TestPullRequestDiscovery:
    """Listing pull requests by last update, newest first."""

    @pytest.fixture
    def fetcher(self, client, db_session) -> PullRequestFetcher:
        return PullRequestFetcher(
            client,
            PullRequestRepository(db_session),
            ReviewRepository(db_session),
            CommentRepository(db_session),
            CommitRepository(db_session),
        )

    async def test_listing_stops_before_window(self, client, fetcher, pr_unit):
        # Arrange
        merged_in_window = _pr(
            number=1,
            created_at=DEC_20_ISO,
            merged_at=JAN_04_ISO,
            closed_at=JAN_04_ISO,
            updated_at=JAN_06_ISO,
            state="closed",
        )
        opened_late = _pr(number=2, created_at=JAN_03_LATE_ISO, updated_at=JAN_05_ISO)
        too_old = _pr(number=3, created_at=DEC_20_ISO, updated_at=JAN_02_ISO)
        never_read = _pr(number=4, created_at=DEC_20_ISO, updated_at=DEC_20_ISO)
        listing = Listing([merged_in_window, opened_late, too_old, never_read])
        client.iter_pull_requests = MagicMock(side_effect=listing)

        # Act
        items = await collect(fetcher.discover(pr_unit, WINDOW))

        # Assert
        assert [(i.label, i.day) for i in items] == [("PR #1", JAN_04), ("PR #2", JAN_03)]
        assert listing.consumed == 3
        client.iter_pull_requests.assert_called_once_with(
            "prebid", "prebid-server", state="all", sort="updated", direction="desc"
        )

    async def test_pr_shifted_between_pages_yielded_once(self, client, fetcher, pr_unit):
        pr = _pr(number=7, created_at=JAN_04_ISO, updated_at=JAN_05_ISO)
        client.iter_pull_requests = MagicMock(side_effect=Listing([pr, pr]))

        items = await collect(fetcher.discover(pr_unit, WINDOW))

        assert [i.label for i in items] == ["PR #7"]

    async def test_pr_placed_on_earliest_in_window_day(self, client, fetcher, pr_unit):
        """Created on Jan 3 and merged on Jan 5: it belongs to Jan 3."""
        pr = _pr(
            number=8,
            created_at=JAN_03_LATE_ISO,
            merged_at=JAN_05_ISO,
            closed_at=JAN_05_ISO,
            updated_at=JAN_09_ISO,
            state="closed",
        )
        client.iter_pull_requests = MagicMock(side_effect=Listing([pr]))

        items = await collect(fetcher.discover(pr_unit, WINDOW))

        assert items[0].day == JAN_03

    async def test_only_update_in_window_places_on_update_day(self, client, fetcher, pr_unit):
        pr = _pr(number=9, created_at=DEC_20_ISO, updated_at=JAN_04_ISO)
        client.iter_pull_requests = MagicMock(side_effect=Listing([pr]))

        items = await collect(fetcher.discover(pr_unit, WINDOW))

        assert items[0].day == JAN_04

    async def test_updated_after_window_without_activity_inside_skipped(
        self, client, fetcher, pr_unit
    ):
        pr = _pr(number=10, created_at=DEC_20_ISO, updated_at=JAN_09_ISO)
        client.iter_pull_requests = MagicMock(side_effect=Listing([pr]))

        assert await collect(fetcher.discover(pr_unit, WINDOW)) == []

    async def test_count_uses_search(self, client, fetcher, pr_unit):
        client.count_pull_requests = AsyncMock(return_value=12)

        assert await fetcher.count(pr_unit, WINDOW) == 12
        client.count_pull_requests.assert_awaited_once_with("prebid", "prebid-server", WINDOW)


class TestPullRequestIngestion:
    """Storing a pull request with everything attached to it."""

    async def test_ingest_stores_pr_and_children(self, client, db_session, pr_unit):
        # Arrange
        fetcher = PullRequestFetcher(
            client,
            PullRequestRepository(db_session),
            ReviewRepository(db_session),
            CommentRepository(db_session),
            CommitRepository(db_session),
        )
        listed = _pr(number=1234)
        detail = _pr(number=1234, additions=120, deletions=30, changed_files=4)
        client.get_pull_request = AsyncMock(return_value=detail)
        client.list_reviews = AsyncMock(
            return_value=[
                GitHubReview.model_validate(make_github_review(review_id=1)),
                GitHubReview.model_validate(
                    make_github_review(review_id=2, state="PENDING", submitted_at=None)
                ),
            ]
        )
        client.list_issue_comments = AsyncMock(
            return_value=[GitHubComment.model_validate(make_github_comment(comment_id=11))]
        )
        client.list_review_comments = AsyncMock(
            return_value=[
                GitHubComment.model_validate(
                    make_github_comment(comment_id=12, path="adapters/x.go", line=4)
                )
            ]
        )
        client.list_pull_request_commits = AsyncMock(
            return_value=[_commit(sha="c" * 40), _commit(sha="d" * 40)]
        )
        item = DiscoveredItem(label="PR #1234", day=JAN_03, ref=listed)

        # Act
        await fetcher.ingest(pr_unit, item)

        # Assert
        stored = await PullRequestRepository(db_session).get_by_number(
            "prebid", "prebid-server", 1234
        )
        assert stored is not None
        assert stored.additions == 120
        assert stored.state == PRState.OPEN

        reviews = await ReviewRepository(db_session).list_for_pull_request(detail.id)
        assert [r.id for r in reviews] == [1]

        comments = await CommentRepository(db_session).list_for_pull_request(detail.id)
        assert {c.comment_type for c in comments} == {CommentType.ISSUE, CommentType.REVIEW}

        commit = await CommitRepository(db_session).get("prebid", "prebid-server", "c" * 40)
        assert commit is not None
        assert commit.pull_request_id == detail.id

    async def test_ingest_propagates_client_errors(self, client, db_session, pr_unit):
        fetcher = PullRequestFetcher(
            client,
            PullRequestRepository(db_session),
            ReviewRepository(db_session),
            CommentRepository(db_session),
            CommitRepository(db_session),
        )
        client.get_pull_request = AsyncMock(side_effect=GitHubNotFoundError("gone", 404))

        with pytest.raises(GitHubNotFoundError):
            await fetcher.ingest(pr_unit, DiscoveredItem("PR #5", JAN_03, _pr(number=5)))

        assert await PullRequestRepository(db_session).count() == 0


# -----------------------------------------------------------------------------
# Commits
# -----------------------------------------------------------------------------
class TestCommitFetcher:
    """Default-branch commits placed by committer date."""

    @pytest.fixture
    def fetcher(self, client, db_session) -> CommitFetcher:
        client.get_repository = AsyncMock(
            return_value=GitHubRepository(
                id=1, name="prebid-server", full_name="prebid/prebid-server", default_branch="master"
            )
        )
        return CommitFetcher(
            client,
            CommitRepository(db_session),
            CommitFileRepository(db_session),
            RepositoryMetadataRepository(db_session),
            timedelta(days=7),
        )

    async def test_default_branch_cached(self, client, fetcher, commit_unit):
        # Act
        first = await fetcher.default_branch(commit_unit)
        second = await fetcher.default_branch(commit_unit)

        # Assert
        assert first == second == "master"
        client.get_repository.assert_awaited_once_with("prebid", "prebid-server")

    async def test_discover_lists_default_branch_within_window(
        self, client, fetcher, commit_unit
    ):
        # Arrange
        inside = _commit(sha="a" * 40, date=JAN_04_ISO)
        late_evening = _commit(sha="b" * 40, date=JAN_03_LATE_ISO)
        outside = _commit(sha="e" * 40, date=JAN_09_ISO)
        client.iter_commits = MagicMock(side_effect=Listing([inside, inside, late_evening, outside]))

        # Act
        items = await collect(fetcher.discover(commit_unit, WINDOW))

        # Assert
        assert [(i.label, i.day) for i in items] == [("aaaaaaa", JAN_04), ("bbbbbbb", JAN_03)]
        client.iter_commits.assert_called_once_with(
            "prebid",
            "prebid-server",
            sha="master",
            since=WINDOW.start_datetime,
            until=WINDOW.end_datetime,
        )

    async def test_ingest_fetches_detail_for_regular_commit(
        self, client, fetcher, db_session, commit_unit
    ):
        # Arrange
        listed = _commit(sha="a" * 40, date=JAN_04_ISO)
        client.get_commit = AsyncMock(
            return_value=_commit(sha="a" * 40, date=JAN_04_ISO, with_stats=True)
        )
        client.iter_commits = MagicMock(side_effect=Listing([listed]))
        (item,) = await collect(fetcher.discover(commit_unit, WINDOW))

        # Act
        await fetcher.ingest(commit_unit, item)

        # Assert
        client.get_commit.assert_awaited_once_with("prebid", "prebid-server", "a" * 40)
        stored = await CommitRepository(db_session).get("prebid", "prebid-server", "a" * 40)
        assert stored is not None
        assert stored.additions == 10
        files = await CommitFileRepository(db_session).list_for_commit(
            "prebid", "prebid-server", "a" * 40
        )
        assert [(f.filename, f.status, f.additions, f.deletions) for f in files] == [
            ("README.md", "modified", 0, 2),
            ("adapters/new.go", "added", 10, 0),
        ]

    async def test_ingest_skips_detail_for_merge_commit(
        self, client, fetcher, db_session, commit_unit
    ):
        merge = _commit(sha="m" * 40, date=JAN_04_ISO, parents=2)
        client.get_commit = AsyncMock()
        client.iter_commits = MagicMock(side_effect=Listing([merge]))
        (item,) = await collect(fetcher.discover(commit_unit, WINDOW))

        await fetcher.ingest(commit_unit, item)

        client.get_commit.assert_not_awaited()
        stored = await CommitRepository(db_session).get("prebid", "prebid-server", "m" * 40)
        assert stored is not None
        assert stored.is_merge
        assert await CommitFileRepository(db_session).list_for_commit(
            "prebid", "prebid-server", "m" * 40
        ) == []

    async def test_count_uses_search(self, client, fetcher, commit_unit):
        client.count_commits = AsyncMock(return_value=3)

        assert await fetcher.count(commit_unit, WINDOW) == 3


async def test_build_fetchers_keys(db_session):
    settings = MagicMock()
    settings.sync = SyncConfig(default_branch_ttl_days=2)

    fetchers = build_fetchers(MagicMock(), db_session, settings)

    assert set(fetchers) == {"pull_requests", "commits"}
    assert isinstance(fetchers["pull_requests"], PullRequestFetcher)
    assert fetchers["commits"]._default_branch_ttl == timedelta(days=2)
