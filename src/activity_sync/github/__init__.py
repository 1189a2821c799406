"""GitHub API client module.

This module provides:
- GitHubClient: Async GitHub API client with quota tracking and retries
- Quota monitoring: QuotaMonitor, Quota, RateLimitStatus, etc.
- Sync: SyncOrchestrator, QuotaEstimator, and the resource fetchers
"""

from .client import GitHubClient
from .exceptions import (
    ErrorKind,
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetriesExhaustedError,
    GitHubTransientError,
    GitHubValidationError,
)
from .rate_limit import (
    Quota,
    QuotaMonitor,
    QuotaSnapshot,
    RateLimitPool,
    RateLimitStatus,
)

__all__ = [
    # Client
    "GitHubClient",
    # Exceptions
    "ErrorKind",
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubRetriesExhaustedError",
    "GitHubTransientError",
    "GitHubValidationError",
    # Quota monitoring
    "Quota",
    "QuotaMonitor",
    "QuotaSnapshot",
    "RateLimitPool",
    "RateLimitStatus",
]
