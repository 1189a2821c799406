"""GitHub client exceptions.

Every failure leaving the client is one of the classes below, and each
carries an ``ErrorKind`` tag. Classification happens once, where the
response is inspected; callers branch on the class (or ``kind``) and
never re-parse status codes or messages.
"""

from datetime import datetime
from enum import StrEnum


class ErrorKind(StrEnum):
    """Closed set of client failure kinds."""

    TRANSIENT = "transient"
    RETRIES_EXHAUSTED = "retries_exhausted"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    kind: ErrorKind
    retryable: bool = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubTransientError(GitHubClientError):
    """Network failure, timeout, 5xx, or secondary throttling.

    Retried with exponential backoff inside the client; only surfaces
    wrapped in ``GitHubRetriesExhaustedError``.
    """

    kind = ErrorKind.TRANSIENT
    retryable = True

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.retry_after = retry_after


class GitHubRetriesExhaustedError(GitHubClientError):
    """A transient failure persisted past the retry budget."""

    kind = ErrorKind.RETRIES_EXHAUSTED

    def __init__(self, attempts: int, last_error: GitHubTransientError) -> None:
        super().__init__(
            f"Gave up after {attempts} attempts: {last_error}",
            last_error.status_code,
        )
        self.attempts = attempts
        self.last_error = last_error


class GitHubAuthenticationError(GitHubClientError):
    """Raised when authentication fails (401, or 403 without rate limiting)."""

    kind = ErrorKind.AUTHENTICATION


class GitHubNotFoundError(GitHubClientError):
    """Raised when a resource is not found (404/410)."""

    kind = ErrorKind.NOT_FOUND


class GitHubRateLimitError(GitHubClientError):
    """Primary rate limit exhausted; no request will succeed before ``reset_at``."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str,
        reset_at: datetime,
        status_code: int | None = None,
        pool: str = "core",
    ) -> None:
        super().__init__(message, status_code)
        self.reset_at = reset_at
        self.pool = pool


class GitHubValidationError(GitHubClientError):
    """Request rejected as invalid (400/422) or response payload malformed."""

    kind = ErrorKind.VALIDATION
