"""Enums shared by API schemas and ORM models."""

from enum import Enum


class PRState(str, Enum):
    """Pull request state enum."""

    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"  # closed without merge


class CommentType(str, Enum):
    """Where on a pull request a comment was left."""

    ISSUE = "issue"  # conversation tab
    REVIEW = "review"  # inline on the diff


class ResourceType(str, Enum):
    """Independently synchronized activity streams.

    Reviews, comments, and PR commits are fetched alongside their pull
    request and share its coverage.
    """

    PULL_REQUESTS = "pull_requests"
    COMMITS = "commits"
