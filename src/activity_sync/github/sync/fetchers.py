"""Resource fetchers - discovery, counting, and ingestion per resource type.

Each fetcher knows three things about one resource type:
- how to discover the items active within a window of days (lazily,
  stopping the listing as soon as it leaves the window),
- how to count those items with a single search request,
- how to fetch the full record of one item and store it.

The orchestrator owns ordering, day bookkeeping and error policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, ClassVar

from activity_sync.db.repositories import (
    CommentRepository,
    CommitFileRepository,
    CommitRepository,
    PullRequestRepository,
    RepositoryMetadataRepository,
    ReviewRepository,
)
from activity_sync.logging import bind_item, get_logger
from activity_sync.schemas import (
    CommentType,
    DateRange,
    GitHubCommit,
    GitHubPullRequest,
    ResourceType,
    SyncUnit,
    to_day,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from activity_sync.config import Settings
    from activity_sync.github.client import GitHubClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class DiscoveredItem:
    """An item found in a listing, placed on the UTC day it belongs to."""

    label: str
    day: date
    ref: Any
    """The listing record, handed back to ``ingest``."""


class ResourceFetcher(ABC):
    """Discovery, counting, and ingestion for one resource type."""

    resource_type: ClassVar[str]
    calls_per_item: ClassVar[int]
    """Remote calls spent per item beyond the listing pages."""

    @abstractmethod
    def discover(self, unit: SyncUnit, window: DateRange) -> AsyncIterator[DiscoveredItem]:
        """Yield each item active within the window exactly once."""

    @abstractmethod
    async def count(self, unit: SyncUnit, window: DateRange) -> int:
        """Exact number of items in the window (one remote call)."""

    @abstractmethod
    async def ingest(self, unit: SyncUnit, item: DiscoveredItem) -> None:
        """Fetch the item's full record and store it."""


class PullRequestFetcher(ResourceFetcher):
    """Pull requests with their reviews, comments, and commits.

    A pull request belongs to the earliest day within the window on which
    it was created, merged, closed, or last updated.
    """

    resource_type = ResourceType.PULL_REQUESTS.value
    # detail, reviews, issue comments, review comments, commits
    calls_per_item = 5

    def __init__(
        self,
        client: GitHubClient,
        pr_repository: PullRequestRepository,
        review_repository: ReviewRepository,
        comment_repository: CommentRepository,
        commit_repository: CommitRepository,
    ) -> None:
        self._client = client
        self._pr_repository = pr_repository
        self._review_repository = review_repository
        self._comment_repository = comment_repository
        self._commit_repository = commit_repository

    async def discover(self, unit: SyncUnit, window: DateRange) -> AsyncIterator[DiscoveredItem]:
        seen: set[int] = set()
        async for pr in self._client.iter_pull_requests(
            unit.organization,
            unit.repository,
            state="all",
            sort="updated",
            direction="desc",
        ):
            # Sorted by last update: nothing further down can touch the window
            if pr.updated_at < window.start_datetime:
                break
            if pr.id in seen:
                continue
            day = self._day_in_window(pr, window)
            if day is None:
                continue
            seen.add(pr.id)
            yield DiscoveredItem(label=f"PR #{pr.number}", day=day, ref=pr)

    @staticmethod
    def _day_in_window(pr: GitHubPullRequest, window: DateRange) -> date | None:
        days = sorted(
            {to_day(ts) for ts in [*pr.activity_dates(), pr.updated_at]} & set(window.days())
        )
        return days[0] if days else None

    async def count(self, unit: SyncUnit, window: DateRange) -> int:
        return await self._client.count_pull_requests(unit.organization, unit.repository, window)

    async def ingest(self, unit: SyncUnit, item: DiscoveredItem) -> None:
        owner, repo = unit.organization, unit.repository
        listed: GitHubPullRequest = item.ref
        item_logger = bind_item(unit, item.label)

        # List responses are abbreviated; the detail call carries the stats
        pr = await self._client.get_pull_request(owner, repo, listed.number)
        reviews = [
            r for r in await self._client.list_reviews(owner, repo, pr.number) if not r.is_pending
        ]
        issue_comments = await self._client.list_issue_comments(owner, repo, pr.number)
        review_comments = await self._client.list_review_comments(owner, repo, pr.number)
        commits = await self._client.list_pull_request_commits(owner, repo, pr.number)

        await self._pr_repository.upsert(pr.to_row(owner, repo))
        await self._review_repository.upsert_many([r.to_row(owner, repo, pr) for r in reviews])
        await self._comment_repository.upsert_many(
            [c.to_row(owner, repo, pr, CommentType.ISSUE) for c in issue_comments]
            + [c.to_row(owner, repo, pr, CommentType.REVIEW) for c in review_comments]
        )
        await self._commit_repository.upsert_many([c.to_row(owner, repo, pr) for c in commits])

        item_logger.debug(
            "Stored PR with {} reviews, {} comments, {} commits",
            len(reviews),
            len(issue_comments) + len(review_comments),
            len(commits),
        )


class CommitFetcher(ResourceFetcher):
    """Commits on the repository's default branch, placed by committer date."""

    resource_type = ResourceType.COMMITS.value
    calls_per_item = 1

    def __init__(
        self,
        client: GitHubClient,
        commit_repository: CommitRepository,
        commit_file_repository: CommitFileRepository,
        metadata_repository: RepositoryMetadataRepository,
        default_branch_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._client = client
        self._commit_repository = commit_repository
        self._commit_file_repository = commit_file_repository
        self._metadata_repository = metadata_repository
        self._default_branch_ttl = default_branch_ttl

    async def default_branch(self, unit: SyncUnit) -> str:
        """The default branch, from the local cache while it is fresh."""
        cached = await self._metadata_repository.get_fresh_default_branch(
            unit.organization, unit.repository, self._default_branch_ttl
        )
        if cached is not None:
            return cached
        repository = await self._client.get_repository(unit.organization, unit.repository)
        await self._metadata_repository.save_default_branch(
            unit.organization, unit.repository, repository.default_branch
        )
        logger.debug("Default branch of {} is {}", unit.full_name, repository.default_branch)
        return repository.default_branch

    async def discover(self, unit: SyncUnit, window: DateRange) -> AsyncIterator[DiscoveredItem]:
        branch = await self.default_branch(unit)
        seen: set[str] = set()
        async for commit in self._client.iter_commits(
            unit.organization,
            unit.repository,
            sha=branch,
            since=window.start_datetime,
            until=window.end_datetime,
        ):
            day = to_day(commit.committed_at)
            if day not in window or commit.sha in seen:
                continue
            seen.add(commit.sha)
            yield DiscoveredItem(label=commit.sha[:7], day=day, ref=commit)

    async def count(self, unit: SyncUnit, window: DateRange) -> int:
        return await self._client.count_commits(unit.organization, unit.repository, window)

    async def ingest(self, unit: SyncUnit, item: DiscoveredItem) -> None:
        listed: GitHubCommit = item.ref
        commit = listed
        # Merge commits carry no meaningful line stats; skip the detail call
        if not listed.is_merge:
            commit = await self._client.get_commit(unit.organization, unit.repository, listed.sha)
        await self._commit_repository.upsert_many(
            [commit.to_row(unit.organization, unit.repository)]
        )
        file_rows = commit.file_rows(unit.organization, unit.repository)
        if file_rows:
            await self._commit_file_repository.upsert_many(file_rows)


def build_fetchers(
    client: GitHubClient,
    session: AsyncSession,
    settings: Settings,
) -> dict[str, ResourceFetcher]:
    """Fetcher registry keyed by resource type, bound to one session."""
    commit_repository = CommitRepository(session)
    fetchers: list[ResourceFetcher] = [
        PullRequestFetcher(
            client,
            PullRequestRepository(session),
            ReviewRepository(session),
            CommentRepository(session),
            commit_repository,
        ),
        CommitFetcher(
            client,
            commit_repository,
            CommitFileRepository(session),
            RepositoryMetadataRepository(session),
            settings.sync.default_branch_ttl,
        ),
    ]
    return {fetcher.resource_type: fetcher for fetcher in fetchers}
