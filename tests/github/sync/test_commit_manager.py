"""Unit tests for CommitManager batch commit functionality."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from activity_sync.db.exceptions import StorageError
from activity_sync.db.repositories import SyncCoverageRepository
from activity_sync.github.sync.commit_manager import CommitManager
from tests.conftest import JAN_01, JAN_02


class TestCommitManagerRecordSuccess:
    """Test record_success tracking and batch triggering."""

    async def test_record_success_increments_count(self, db_session):
        """Verify record_success increments uncommitted_count."""
        # Arrange
        manager = CommitManager(db_session, batch_size=5)

        # Act
        await manager.record_success()

        # Assert
        assert manager.uncommitted_count == 1
        assert manager.total_committed == 0

    async def test_record_success_no_commit_before_batch_size(self, db_session):
        """Verify no commit happens until batch_size reached."""
        # Arrange
        manager = CommitManager(db_session, batch_size=5)

        # Act
        for _ in range(4):
            result = await manager.record_success()

        # Assert
        assert result == 0  # No commit yet
        assert manager.uncommitted_count == 4
        assert manager.total_committed == 0

    async def test_record_success_triggers_commit_at_batch_size(self, db_session):
        """Verify commit triggers exactly at batch_size."""
        # Arrange
        manager = CommitManager(db_session, batch_size=5)

        # Act
        for _ in range(4):
            await manager.record_success()
        result = await manager.record_success()  # 5th call

        # Assert
        assert result == 5
        assert manager.uncommitted_count == 0
        assert manager.total_committed == 5

    async def test_default_batch_commits_every_day(self, db_session):
        manager = CommitManager(db_session)

        assert await manager.record_success() == 1
        assert await manager.record_success() == 1
        assert manager.total_committed == 2


class TestCommitManagerCommit:
    """Test explicit commit behavior."""

    async def test_commit_returns_uncommitted_count(self, db_session):
        # Arrange
        manager = CommitManager(db_session, batch_size=10)
        for _ in range(7):
            await manager.record_success()

        # Act
        result = await manager.commit()

        # Assert
        assert result == 7
        assert manager.uncommitted_count == 0
        assert manager.total_committed == 7

    async def test_commit_noop_when_empty(self):
        """Nothing pending means no round trip to the database."""
        # Arrange
        session = MagicMock()
        session.commit = AsyncMock()
        manager = CommitManager(session, batch_size=3)

        # Act
        result = await manager.commit()

        # Assert
        assert result == 0
        session.commit.assert_not_awaited()

    async def test_session_commit_called_once_per_batch(self):
        session = MagicMock()
        session.commit = AsyncMock()
        manager = CommitManager(session, batch_size=2)

        for _ in range(5):
            await manager.record_success()

        assert session.commit.await_count == 2
        assert manager.uncommitted_count == 1

    async def test_rejected_commit_raises_storage_error(self):
        # Arrange
        session = MagicMock()
        session.commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, Exception("database is locked"))
        )
        manager = CommitManager(session, batch_size=1)

        # Act / Assert
        with pytest.raises(StorageError, match="commit failed"):
            await manager.record_success()
        assert manager.total_committed == 0

    async def test_committed_day_survives_rollback(self, db_session, items_unit):
        """Recorded days are durable once their batch is committed."""
        # Arrange
        coverage = SyncCoverageRepository(db_session)
        manager = CommitManager(db_session, batch_size=1)
        await coverage.upsert_day(items_unit, JAN_01, datetime.now(UTC), 3)
        await manager.record_success()

        # Act
        await coverage.upsert_day(items_unit, JAN_02, datetime.now(UTC), 1)
        await db_session.rollback()

        # Assert
        assert await coverage.get_synced_days(items_unit, JAN_01, JAN_02) == [JAN_01]


class TestCommitManagerFinalize:
    """Test finalize at the end of a run."""

    async def test_finalize_commits_partial_batch(self, db_session):
        # Arrange
        manager = CommitManager(db_session, batch_size=10)
        for _ in range(3):
            await manager.record_success()

        # Act
        result = await manager.finalize()

        # Assert
        assert result == 3
        assert manager.uncommitted_count == 0
        assert manager.total_committed == 3

    async def test_finalize_after_full_batches(self, db_session):
        manager = CommitManager(db_session, batch_size=2)
        for _ in range(4):
            await manager.record_success()

        assert await manager.finalize() == 0
        assert manager.total_committed == 4


class TestCommitManagerConfig:
    """Test construction."""

    def test_batch_size_property(self, db_session):
        assert CommitManager(db_session, batch_size=25).batch_size == 25

    @pytest.mark.parametrize("batch_size", [0, -1])
    def test_invalid_batch_size_rejected(self, db_session, batch_size):
        with pytest.raises(ValueError, match="batch_size"):
            CommitManager(db_session, batch_size=batch_size)
