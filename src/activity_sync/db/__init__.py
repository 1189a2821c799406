"""Database module for Activity Sync."""

from activity_sync.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
)
from activity_sync.db.exceptions import StorageError
from activity_sync.db.models import (
    Base,
    Comment,
    Commit,
    DaySyncRecord,
    PullRequest,
    RepositoryMetadata,
    Review,
)
from activity_sync.db.repositories import (
    BaseRepository,
    CommentRepository,
    CommitRepository,
    PullRequestRepository,
    RepositoryMetadataRepository,
    ReviewRepository,
    SyncCoverageRepository,
)

__all__ = [
    # Models
    "Base",
    "Comment",
    "Commit",
    "DaySyncRecord",
    "PullRequest",
    "RepositoryMetadata",
    "Review",
    # Engine
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Errors
    "StorageError",
    # Repositories
    "BaseRepository",
    "CommentRepository",
    "CommitRepository",
    "PullRequestRepository",
    "RepositoryMetadataRepository",
    "ReviewRepository",
    "SyncCoverageRepository",
]
