"""Commit Manager - Batch commit boundaries for database resilience.

Manages commit boundaries during a sync run so that a failure part-way
through only loses the last uncommitted batch of days. Each unit of work
is a fully recorded day: its coverage record is written after all of its
items, in the same transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from activity_sync.db.exceptions import StorageError
from activity_sync.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class CommitManager:
    """Manages commit boundaries for batch operations.

    Usage:
        async with get_session() as session:
            commit_manager = CommitManager(session, batch_size=1)

            # ... store one day's items and its coverage record ...
            await commit_manager.record_success()  # Auto-commits at batch_size

            await commit_manager.finalize()  # Commit remaining

    Attributes:
        uncommitted_count: Number of days pending commit.
        total_committed: Total days committed across all batches.
    """

    def __init__(self, session: AsyncSession, batch_size: int = 1) -> None:
        """Initialize the commit manager.

        Args:
            session: Async SQLAlchemy session to commit on.
            batch_size: Number of recorded days before auto-commit.
                        Default is 1: every day is durable once recorded.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self._session = session
        self._batch_size = batch_size
        self._uncommitted_count = 0
        self._total_committed = 0

    @property
    def uncommitted_count(self) -> int:
        """Number of days pending commit."""
        return self._uncommitted_count

    @property
    def total_committed(self) -> int:
        """Total days committed across all batches."""
        return self._total_committed

    @property
    def batch_size(self) -> int:
        """Configured batch size."""
        return self._batch_size

    async def record_success(self) -> int:
        """Record a completed day, commit if batch size reached.

        Returns:
            Number of days committed (0 if batch not full yet).
        """
        self._uncommitted_count += 1
        if self._uncommitted_count >= self._batch_size:
            return await self.commit()
        return 0

    async def commit(self) -> int:
        """Force commit of pending changes.

        Returns:
            Number of days committed (0 if nothing to commit).

        Raises:
            StorageError: If the database rejects the commit
        """
        if self._uncommitted_count == 0:
            return 0

        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            raise StorageError("commit", str(e)) from e

        committed = self._uncommitted_count
        self._total_committed += committed
        self._uncommitted_count = 0

        logger.debug(
            "Committed batch of {} days (total: {})",
            committed,
            self._total_committed,
        )
        return committed

    async def finalize(self) -> int:
        """Commit any remaining uncommitted days.

        Call this at the end of a run (or when aborting) so that partial
        batches that never reached batch_size are kept.

        Returns:
            Number of days committed (0 if nothing pending).
        """
        return await self.commit()
