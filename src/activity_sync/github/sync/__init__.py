"""Sync module - incremental GitHub to database synchronization.

Services:
- SyncOrchestrator: Per-unit cache check, quota check, fetch, and record
- QuotaEstimator: Strategy and request-cost estimate for pending work
- Fetchers: Per-resource discovery, counting, and ingestion
- CoverageService: Coverage reports and explicit invalidation
- discover_repositories: Active repositories of an organization
- CommitManager: Batch commit boundaries for database resilience
"""

from .commit_manager import CommitManager
from .coverage import CoverageService
from .days import compute_gap, contiguous_ranges, format_day_ranges, resolve_range
from .discovery import RepositoryDiscovery, discover_repositories
from .enums import OutputFormat, SyncStrategy, UnitState
from .fetchers import (
    CommitFetcher,
    DiscoveredItem,
    PullRequestFetcher,
    ResourceFetcher,
    build_fetchers,
)
from .orchestrator import SyncOrchestrator
from .quota_estimator import QuotaEstimate, QuotaEstimator
from .results import CoverageReport, SyncAbortedError, SyncSummary, UnitSyncResult

__all__ = [
    # Orchestration
    "CoverageService",
    "SyncOrchestrator",
    "SyncAbortedError",
    "SyncSummary",
    "UnitSyncResult",
    "CoverageReport",
    # Estimation
    "QuotaEstimate",
    "QuotaEstimator",
    # Repository discovery
    "RepositoryDiscovery",
    "discover_repositories",
    # Fetchers
    "CommitFetcher",
    "DiscoveredItem",
    "PullRequestFetcher",
    "ResourceFetcher",
    "build_fetchers",
    # Enums
    "OutputFormat",
    "SyncStrategy",
    "UnitState",
    # Day arithmetic
    "compute_gap",
    "contiguous_ranges",
    "format_day_ranges",
    "resolve_range",
    # Commit management
    "CommitManager",
]
