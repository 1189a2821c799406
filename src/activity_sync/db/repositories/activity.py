"""Repositories for the fetched activity records.

Each write is an idempotent upsert keyed on GitHub's identifiers, so
refetching a day (``--force``, or after a reset) overwrites rather than
duplicates.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from activity_sync.db.models import Comment, Commit, CommitFile, PullRequest, Review

from .base import BaseRepository


class PullRequestRepository(BaseRepository[PullRequest]):
    """Pull request rows keyed by GitHub PR ID."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PullRequest)

    async def upsert(self, row: dict[str, Any]) -> None:
        await self._upsert([row], index_elements=["id"])

    async def get_by_number(
        self,
        organization: str,
        repository: str,
        number: int,
    ) -> PullRequest | None:
        stmt = select(PullRequest).where(
            PullRequest.organization == organization,
            PullRequest.repository == repository,
            PullRequest.number == number,
        )
        result = await self._execute(stmt, "read pull request")
        return result.scalar_one_or_none()


class ReviewRepository(BaseRepository[Review]):
    """Submitted reviews keyed by GitHub review ID."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Review)

    async def upsert_many(self, rows: Sequence[dict[str, Any]]) -> int:
        return await self._upsert(rows, index_elements=["id"])

    async def list_for_pull_request(self, pull_request_id: int) -> list[Review]:
        stmt = (
            select(Review)
            .where(Review.pull_request_id == pull_request_id)
            .order_by(Review.submitted_at)
        )
        result = await self._execute(stmt, "read reviews")
        return list(result.scalars().all())


class CommentRepository(BaseRepository[Comment]):
    """Issue and review comments keyed by (ID, comment type)."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Comment)

    async def upsert_many(self, rows: Sequence[dict[str, Any]]) -> int:
        return await self._upsert(rows, index_elements=["id", "comment_type"])

    async def list_for_pull_request(self, pull_request_id: int) -> list[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.pull_request_id == pull_request_id)
            .order_by(Comment.created_at)
        )
        result = await self._execute(stmt, "read comments")
        return list(result.scalars().all())


class CommitRepository(BaseRepository[Commit]):
    """Commits keyed by (organization, repository, SHA).

    The same commit may arrive from a pull request listing and from the
    default branch listing; neither source erases what the other knew.
    """

    _KEEP_WHEN_NULL = (
        "pull_request_id",
        "pr_number",
        "author",
        "additions",
        "deletions",
        "files_changed",
    )

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Commit)

    async def upsert_many(self, rows: Sequence[dict[str, Any]]) -> int:
        return await self._upsert(
            rows,
            index_elements=["organization", "repository", "sha"],
            keep_existing_when_null=self._KEEP_WHEN_NULL,
        )

    async def get(self, organization: str, repository: str, sha: str) -> Commit | None:
        return await self._session.get(Commit, (organization, repository, sha))


class CommitFileRepository(BaseRepository[CommitFile]):
    """Files changed per commit, keyed by (organization, repository, SHA, filename)."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, CommitFile)

    async def upsert_many(self, rows: Sequence[dict[str, Any]]) -> int:
        return await self._upsert(
            rows, index_elements=["organization", "repository", "sha", "filename"]
        )

    async def list_for_commit(
        self, organization: str, repository: str, sha: str
    ) -> list[CommitFile]:
        stmt = (
            select(CommitFile)
            .where(
                CommitFile.organization == organization,
                CommitFile.repository == repository,
                CommitFile.sha == sha,
            )
            .order_by(CommitFile.filename)
        )
        result = await self._execute(stmt, "read commit files")
        return list(result.scalars().all())
