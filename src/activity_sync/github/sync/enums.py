"""Enums for sync operations."""

from enum import Enum


class UnitState(str, Enum):
    """Where a sync unit is in its per-run lifecycle.

    PENDING -> CACHE_CHECK -> (SKIPPED_CACHED | QUOTA_CHECK)
    QUOTA_CHECK -> (SKIPPED_QUOTA | FETCHING)
    FETCHING -> (COMPLETED | PARTIALLY_FAILED | FAILED | ABORTED)
    """

    PENDING = "pending"
    CACHE_CHECK = "cache_check"
    SKIPPED_CACHED = "skipped_cached"
    QUOTA_CHECK = "quota_check"
    SKIPPED_QUOTA = "skipped_quota"
    FETCHING = "fetching"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        UnitState.SKIPPED_CACHED,
        UnitState.SKIPPED_QUOTA,
        UnitState.COMPLETED,
        UnitState.PARTIALLY_FAILED,
        UnitState.FAILED,
        UnitState.ABORTED,
    }
)


class SyncStrategy(str, Enum):
    """How a requested range relates to what is already recorded."""

    CACHE_HIT = "cache_hit"
    """Every requested day is recorded. No remote calls."""

    EXTENSION = "extension"
    """Coverage reaches into the range and only a short tail is new. Estimated locally."""

    FULL = "full"
    """Anything else. Estimated with one count request."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
