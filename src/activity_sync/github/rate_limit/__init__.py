"""Quota tracking for GitHub API.

Passive tracking from response headers, with an explicit monitor
owned by each sync run.
"""

from .monitor import QuotaMonitor
from .schemas import Quota, QuotaSnapshot, RateLimitPool, RateLimitStatus

__all__ = [
    "Quota",
    "QuotaMonitor",
    "QuotaSnapshot",
    "RateLimitPool",
    "RateLimitStatus",
]
