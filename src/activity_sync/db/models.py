"""SQLAlchemy ORM models for Activity Sync."""

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON

from activity_sync.schemas.enums import CommentType, PRState


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ------------------------------------------------------------------------------
# Sync coverage ledger
# ------------------------------------------------------------------------------
class DaySyncRecord(Base):
    """One fully synchronized day of one sync unit.

    A row exists only once every item attributed to that day has been
    fetched (or recorded as failed) and persisted. Rows are upserted,
    never partially written.
    """

    __tablename__ = "daily_sync_metadata"

    id: Mapped[int] = mapped_column(primary_key=True)
    resource_type: Mapped[str] = mapped_column(String(50))
    organization: Mapped[str] = mapped_column(String(100))
    repository: Mapped[str] = mapped_column(String(100))
    sync_date: Mapped[date] = mapped_column(Date)  # UTC calendar day
    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    items_synced: Mapped[int] = mapped_column(default=0)

    __table_args__ = (
        UniqueConstraint(
            "resource_type",
            "organization",
            "repository",
            "sync_date",
            name="uq_daily_sync_unit_day",
        ),
        Index("ix_daily_sync_unit", "resource_type", "organization", "repository"),
    )

    def __repr__(self) -> str:
        return (
            f"<DaySyncRecord({self.resource_type}:{self.organization}/{self.repository} "
            f"{self.sync_date.isoformat()}, items={self.items_synced})>"
        )


# ------------------------------------------------------------------------------
# Repository metadata (default branch cache)
# ------------------------------------------------------------------------------
class RepositoryMetadata(Base):
    """Cached repository facts that rarely change."""

    __tablename__ = "repository_metadata"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization: Mapped[str] = mapped_column(String(100))
    repository: Mapped[str] = mapped_column(String(100))
    default_branch: Mapped[str] = mapped_column(String(200))
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("organization", "repository", name="uq_repository_metadata"),
    )

    def __repr__(self) -> str:
        return (
            f"<RepositoryMetadata({self.organization}/{self.repository}, "
            f"default_branch='{self.default_branch}')>"
        )


# ------------------------------------------------------------------------------
# PullRequest model
# ------------------------------------------------------------------------------
class PullRequest(Base):
    """GitHub pull request, keyed by its global GitHub ID."""

    __tablename__ = "pull_requests"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    organization: Mapped[str] = mapped_column(String(100))
    repository: Mapped[str] = mapped_column(String(100))
    number: Mapped[int] = mapped_column()
    html_url: Mapped[str] = mapped_column(String(500))
    title: Mapped[str] = mapped_column(String(500))
    author: Mapped[str] = mapped_column(String(100))
    state: Mapped[PRState] = mapped_column(default=PRState.OPEN)
    is_draft: Mapped[bool] = mapped_column(default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    merged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    merged_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    additions: Mapped[int] = mapped_column(default=0)
    deletions: Mapped[int] = mapped_column(default=0)
    changed_files: Mapped[int] = mapped_column(default=0)
    commits_count: Mapped[int] = mapped_column(default=0)
    comments_count: Mapped[int] = mapped_column(default=0)
    review_comments_count: Mapped[int] = mapped_column(default=0)
    labels: Mapped[list[str]] = mapped_column(JSON, default=list)

    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("organization", "repository", "number", name="uq_repo_pr_number"),
    )

    def __repr__(self) -> str:
        return f"<PullRequest({self.organization}/{self.repository}#{self.number})>"


# ------------------------------------------------------------------------------
# Review model
# ------------------------------------------------------------------------------
class Review(Base):
    """Submitted pull request review."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    pull_request_id: Mapped[int] = mapped_column(index=True)
    organization: Mapped[str] = mapped_column(String(100))
    repository: Mapped[str] = mapped_column(String(100))
    pr_number: Mapped[int] = mapped_column()
    reviewer: Mapped[str] = mapped_column(String(100))
    state: Mapped[str] = mapped_column(String(30))
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, pr={self.pr_number}, state='{self.state}')>"


# ------------------------------------------------------------------------------
# Comment model
# ------------------------------------------------------------------------------
class Comment(Base):
    """Issue or review comment on a pull request."""

    __tablename__ = "comments"

    # Issue and review comment IDs come from separate sequences
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    comment_type: Mapped[CommentType] = mapped_column(primary_key=True)
    pull_request_id: Mapped[int] = mapped_column(index=True)
    organization: Mapped[str] = mapped_column(String(100))
    repository: Mapped[str] = mapped_column(String(100))
    pr_number: Mapped[int] = mapped_column()
    author: Mapped[str] = mapped_column(String(100))
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    line: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, type={self.comment_type.value}, pr={self.pr_number})>"


# ------------------------------------------------------------------------------
# Commit model
# ------------------------------------------------------------------------------
class Commit(Base):
    """Commit seen on a default branch or inside a pull request."""

    __tablename__ = "commits"

    organization: Mapped[str] = mapped_column(String(100), primary_key=True)
    repository: Mapped[str] = mapped_column(String(100), primary_key=True)
    sha: Mapped[str] = mapped_column(String(40), primary_key=True)

    pull_request_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    pr_number: Mapped[int | None] = mapped_column(nullable=True)
    author: Mapped[str | None] = mapped_column(String(100), nullable=True)
    author_name: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    authored_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    committed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    is_merge: Mapped[bool] = mapped_column(default=False)

    # Only known after a single-commit fetch
    additions: Mapped[int | None] = mapped_column(nullable=True)
    deletions: Mapped[int | None] = mapped_column(nullable=True)
    files_changed: Mapped[int | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Commit({self.organization}/{self.repository}@{self.sha[:7]})>"


# ------------------------------------------------------------------------------
# Commit file model
# ------------------------------------------------------------------------------
class CommitFile(Base):
    """File changed by a commit, known after a single-commit fetch."""

    __tablename__ = "commit_files"

    organization: Mapped[str] = mapped_column(String(100), primary_key=True)
    repository: Mapped[str] = mapped_column(String(100), primary_key=True)
    sha: Mapped[str] = mapped_column(String(40), primary_key=True)
    filename: Mapped[str] = mapped_column(String(500), primary_key=True)

    status: Mapped[str] = mapped_column(String(20))
    additions: Mapped[int] = mapped_column(default=0)
    deletions: Mapped[int] = mapped_column(default=0)

    __table_args__ = (Index("ix_commit_files_filename", "organization", "repository", "filename"),)

    def __repr__(self) -> str:
        return f"<CommitFile({self.sha[:7]}:{self.filename}, {self.status})>"
