"""Pydantic schemas for Activity Sync.

This module provides validation models for GitHub API responses.
"""

from .enums import CommentType, PRState, ResourceType
from .github_api import (
    GitHubComment,
    GitHubCommit,
    GitHubCommitAuthor,
    GitHubCommitDetail,
    GitHubCommitParent,
    GitHubCommitStats,
    GitHubFile,
    GitHubLabel,
    GitHubPullRequest,
    GitHubRepository,
    GitHubReview,
    GitHubSearchResult,
    GitHubUser,
)
from .sync import DateRange, DayCoverage, SyncUnit, parse_repo_string, to_day

__all__ = [
    # Enums
    "CommentType",
    "PRState",
    "ResourceType",
    # Sync value types
    "DateRange",
    "DayCoverage",
    "SyncUnit",
    "parse_repo_string",
    "to_day",
    # GitHub API
    "GitHubComment",
    "GitHubCommit",
    "GitHubCommitAuthor",
    "GitHubCommitDetail",
    "GitHubCommitParent",
    "GitHubCommitStats",
    "GitHubFile",
    "GitHubLabel",
    "GitHubPullRequest",
    "GitHubRepository",
    "GitHubReview",
    "GitHubSearchResult",
    "GitHubUser",
]
