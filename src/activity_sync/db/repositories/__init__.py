"""Repository pattern implementation for database access.

This module provides repository classes that encapsulate all database
access logic, providing a clean abstraction over SQLAlchemy models.
"""

from .activity import (
    CommentRepository,
    CommitFileRepository,
    CommitRepository,
    PullRequestRepository,
    ReviewRepository,
)
from .base import BaseRepository
from .repository_metadata import RepositoryMetadataRepository
from .sync_coverage import CoverageSummaryRow, DayRecordInput, SyncCoverageRepository

__all__ = [
    "BaseRepository",
    "CommentRepository",
    "CommitFileRepository",
    "CommitRepository",
    "CoverageSummaryRow",
    "DayRecordInput",
    "PullRequestRepository",
    "RepositoryMetadataRepository",
    "ReviewRepository",
    "SyncCoverageRepository",
]
