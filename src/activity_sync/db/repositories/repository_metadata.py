"""Repository for cached repository metadata."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from activity_sync.db.models import RepositoryMetadata

from .base import BaseRepository


class RepositoryMetadataRepository(BaseRepository[RepositoryMetadata]):
    """Caches the default branch of each repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, RepositoryMetadata)

    async def get(self, organization: str, repository: str) -> RepositoryMetadata | None:
        stmt = select(RepositoryMetadata).where(
            RepositoryMetadata.organization == organization,
            RepositoryMetadata.repository == repository,
        )
        result = await self._execute(stmt, "read repository metadata")
        return result.scalar_one_or_none()

    async def get_fresh_default_branch(
        self,
        organization: str,
        repository: str,
        max_age: timedelta,
    ) -> str | None:
        """Cached default branch, or None if missing or older than max_age."""
        metadata = await self.get(organization, repository)
        if metadata is None:
            return None
        fetched_at = metadata.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=UTC)
        if datetime.now(UTC) - fetched_at > max_age:
            return None
        return metadata.default_branch

    async def save_default_branch(
        self,
        organization: str,
        repository: str,
        default_branch: str,
    ) -> None:
        await self._upsert(
            [
                {
                    "organization": organization,
                    "repository": repository,
                    "default_branch": default_branch,
                    "fetched_at": datetime.now(UTC),
                }
            ],
            index_elements=["organization", "repository"],
        )
