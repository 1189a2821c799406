"""Pydantic schemas for parsing GitHub API responses.

These schemas map directly to the GitHub REST API response structure and
know how to turn themselves into rows for the activity tables.
See: https://docs.github.com/en/rest/pulls
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import CommentType, PRState

GHOST_LOGIN = "ghost"


class GitHubUser(BaseModel):
    """GitHub user object from API responses."""

    login: str = Field(description="GitHub username")
    id: int = Field(description="GitHub user ID")
    type: str = Field(default="User", description="User type")


class GitHubLabel(BaseModel):
    """GitHub label object from API responses."""

    id: int = Field(description="Label ID")
    name: str = Field(description="Label name")


def _login(user: GitHubUser | None) -> str:
    # Deleted accounts come back as null users
    return user.login if user else GHOST_LOGIN


# -----------------------------------------------------------------------------
# Pull Requests
# -----------------------------------------------------------------------------
class GitHubPullRequest(BaseModel):
    """GitHub Pull Request object from API.

    List responses (GET /repos/{owner}/{repo}/pulls) leave the stats at
    zero; the detail response (GET .../pulls/{number}) fills them in.
    """

    id: int = Field(description="Global PR ID")
    number: int = Field(description="PR number")
    html_url: str = Field(description="GitHub PR URL")
    state: str = Field(description="PR state (open, closed)")
    title: str = Field(description="PR title")
    draft: bool = Field(default=False, description="Whether PR is a draft")

    user: GitHubUser | None = Field(default=None, description="PR author")
    merged_by: GitHubUser | None = Field(default=None, description="Who merged the PR")

    created_at: datetime = Field(description="When PR was created")
    updated_at: datetime = Field(description="Last update timestamp")
    closed_at: datetime | None = Field(default=None, description="When PR was closed")
    merged_at: datetime | None = Field(default=None, description="When PR was merged")
    merged: bool = Field(default=False, description="Whether PR was merged")

    commits: int = Field(default=0, description="Number of commits")
    additions: int = Field(default=0, description="Lines added")
    deletions: int = Field(default=0, description="Lines deleted")
    changed_files: int = Field(default=0, description="Number of files changed")
    comments: int = Field(default=0, description="Issue comment count")
    review_comments: int = Field(default=0, description="Review comment count")

    labels: list[GitHubLabel] = Field(default_factory=list, description="PR labels")

    @property
    def pr_state(self) -> PRState:
        """Open, merged, or closed without merge."""
        if self.merged or self.merged_at is not None:
            return PRState.MERGED
        if self.state == "closed":
            return PRState.CLOSED
        return PRState.OPEN

    def activity_dates(self) -> list[datetime]:
        """Timestamps that place this PR on a day: created, merged, closed."""
        return [d for d in (self.created_at, self.merged_at, self.closed_at) if d is not None]

    def to_row(self, organization: str, repository: str) -> dict[str, Any]:
        """Convert to a pull_requests row."""
        return {
            "id": self.id,
            "organization": organization,
            "repository": repository,
            "number": self.number,
            "html_url": self.html_url,
            "title": self.title,
            "author": _login(self.user),
            "state": self.pr_state,
            "is_draft": self.draft,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "closed_at": self.closed_at,
            "merged_at": self.merged_at,
            "merged_by": self.merged_by.login if self.merged_by else None,
            "additions": self.additions,
            "deletions": self.deletions,
            "changed_files": self.changed_files,
            "commits_count": self.commits,
            "comments_count": self.comments,
            "review_comments_count": self.review_comments,
            "labels": [label.name for label in self.labels],
        }


class GitHubReview(BaseModel):
    """GitHub review object from reviews endpoint."""

    id: int = Field(description="Review ID")
    user: GitHubUser | None = Field(default=None, description="Reviewer")
    state: str = Field(description="APPROVED, CHANGES_REQUESTED, COMMENTED, DISMISSED, PENDING")
    body: str | None = Field(default=None, description="Review body")
    submitted_at: datetime | None = Field(default=None, description="When review was submitted")

    @property
    def is_pending(self) -> bool:
        """Pending reviews are drafts visible only to their author."""
        return self.state == "PENDING"

    def to_row(self, organization: str, repository: str, pr: GitHubPullRequest) -> dict[str, Any]:
        """Convert to a reviews row."""
        return {
            "id": self.id,
            "pull_request_id": pr.id,
            "organization": organization,
            "repository": repository,
            "pr_number": pr.number,
            "reviewer": _login(self.user),
            "state": self.state,
            "body": self.body,
            "submitted_at": self.submitted_at,
        }


class GitHubComment(BaseModel):
    """Issue comment or review (diff) comment on a pull request."""

    id: int = Field(description="Comment ID")
    user: GitHubUser | None = Field(default=None, description="Comment author")
    body: str | None = Field(default=None, description="Comment text")
    created_at: datetime = Field(description="When comment was created")
    updated_at: datetime | None = Field(default=None, description="Last edit")
    path: str | None = Field(default=None, description="File path (review comments)")
    line: int | None = Field(default=None, description="Line number (review comments)")

    def to_row(
        self,
        organization: str,
        repository: str,
        pr: GitHubPullRequest,
        comment_type: CommentType,
    ) -> dict[str, Any]:
        """Convert to a comments row."""
        return {
            "id": self.id,
            "comment_type": comment_type,
            "pull_request_id": pr.id,
            "organization": organization,
            "repository": repository,
            "pr_number": pr.number,
            "author": _login(self.user),
            "body": self.body,
            "path": self.path,
            "line": self.line,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


# -----------------------------------------------------------------------------
# Commits
# -----------------------------------------------------------------------------
class GitHubCommitAuthor(BaseModel):
    """Commit author info (from git, not GitHub user)."""

    name: str = Field(description="Author name")
    email: str | None = Field(default=None, description="Author email")
    date: datetime = Field(description="Commit date (UTC)")


class GitHubCommitDetail(BaseModel):
    """Nested commit detail object."""

    author: GitHubCommitAuthor = Field(description="Git author")
    committer: GitHubCommitAuthor | None = Field(default=None, description="Git committer")
    message: str = Field(description="Commit message")


class GitHubCommitParent(BaseModel):
    """Parent commit reference."""

    sha: str = Field(description="Parent SHA")


class GitHubCommitStats(BaseModel):
    """Line stats, present only on single-commit responses."""

    additions: int = Field(default=0)
    deletions: int = Field(default=0)
    total: int = Field(default=0)


class GitHubFile(BaseModel):
    """File touched by a commit."""

    filename: str = Field(description="File path")
    status: str = Field(default="modified", description="added, modified, removed, ...")
    additions: int = Field(default=0, description="Lines added")
    deletions: int = Field(default=0, description="Lines deleted")


class GitHubCommit(BaseModel):
    """GitHub commit object from the commits endpoints."""

    sha: str = Field(description="Commit SHA")
    commit: GitHubCommitDetail = Field(description="Git commit details")
    author: GitHubUser | None = Field(default=None, description="Linked GitHub account")
    parents: list[GitHubCommitParent] = Field(default_factory=list)
    stats: GitHubCommitStats | None = Field(default=None)
    files: list[GitHubFile] | None = Field(default=None)

    @property
    def is_merge(self) -> bool:
        """Merge commits have more than one parent."""
        return len(self.parents) > 1

    @property
    def committed_at(self) -> datetime:
        """Committer date, falling back to the author date."""
        if self.commit.committer is not None:
            return self.commit.committer.date
        return self.commit.author.date

    def to_row(
        self,
        organization: str,
        repository: str,
        pr: GitHubPullRequest | None = None,
    ) -> dict[str, Any]:
        """Convert to a commits row."""
        return {
            "organization": organization,
            "repository": repository,
            "sha": self.sha,
            "pull_request_id": pr.id if pr else None,
            "pr_number": pr.number if pr else None,
            "author": self.author.login if self.author else None,
            "author_name": self.commit.author.name,
            "message": self.commit.message,
            "authored_at": self.commit.author.date,
            "committed_at": self.committed_at,
            "is_merge": self.is_merge,
            "additions": self.stats.additions if self.stats else None,
            "deletions": self.stats.deletions if self.stats else None,
            "files_changed": len(self.files) if self.files is not None else None,
        }

    def file_rows(self, organization: str, repository: str) -> list[dict[str, Any]]:
        """Convert the changed files (detail payloads only) to commit_files rows."""
        return [
            {
                "organization": organization,
                "repository": repository,
                "sha": self.sha,
                "filename": f.filename,
                "status": f.status,
                "additions": f.additions,
                "deletions": f.deletions,
            }
            for f in self.files or []
        ]


# -----------------------------------------------------------------------------
# Repositories & Search
# -----------------------------------------------------------------------------
class GitHubRepository(BaseModel):
    """Repository object from GET /repos/{owner}/{repo} and the org listing."""

    id: int = Field(description="Repository ID")
    name: str = Field(description="Repository name")
    full_name: str = Field(description="owner/name")
    default_branch: str = Field(description="Default branch name")
    archived: bool = Field(default=False)
    disabled: bool = Field(default=False)
    pushed_at: datetime | None = Field(default=None, description="Last push to any branch")

    def active_since(self, since: datetime) -> bool:
        """Writable and pushed to at or after ``since`` (unknown push counts as active)."""
        if self.archived or self.disabled:
            return False
        return self.pushed_at is None or self.pushed_at >= since


class GitHubSearchResult(BaseModel):
    """Search response; only the count is of interest."""

    total_count: int = Field(ge=0, description="Total matches")
    incomplete_results: bool = Field(default=False)
