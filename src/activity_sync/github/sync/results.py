"""Result objects for sync operations.

Structured results provide consistent interfaces for monitoring,
error handling, and CLI output. A ``SyncSummary`` is produced for every
run, including runs that stop early.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from activity_sync.schemas.sync import DateRange, DayCoverage, SyncUnit

from .days import format_day_ranges
from .enums import SyncStrategy, UnitState

RESUME_INSTRUCTION = "Re-run with identical parameters to resume; completed days are skipped."


@dataclass
class UnitSyncResult:
    """Outcome of one sync unit within a run."""

    unit: SyncUnit
    state: UnitState = UnitState.PENDING
    strategy: SyncStrategy | None = None

    days_requested: int = 0
    days_cached: int = 0
    """Requested days already recorded before this run."""

    days_synced: int = 0
    """Days fetched and recorded by this run."""

    items_fetched: int = 0
    items_failed: int = 0
    items_skipped_cached: int = 0
    """Items recorded for cached days (no remote calls made for them)."""

    estimated_cost: int | None = None
    quota_remaining: int | None = None

    errors: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def days_skipped(self) -> int:
        """Gap days left unrecorded (skipped for quota, failed, or aborted)."""
        return max(self.days_requested - self.days_cached - self.days_synced, 0)

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "unit": self.unit.label,
            "resource_type": self.unit.resource_type,
            "repository": self.unit.full_name,
            "state": self.state.value,
            "strategy": self.strategy.value if self.strategy else None,
            "days_requested": self.days_requested,
            "days_cached": self.days_cached,
            "days_synced": self.days_synced,
            "days_skipped": self.days_skipped,
            "items_fetched": self.items_fetched,
            "items_failed": self.items_failed,
            "items_skipped_cached": self.items_skipped_cached,
            "estimated_cost": self.estimated_cost,
            "quota_remaining": self.quota_remaining,
            "errors": list(self.errors),
            "duration_seconds": round(self.duration_seconds, 2),
        }


@dataclass
class SyncSummary:
    """Aggregate result of a sync run.

    Aggregates results from all units, in processing order.
    """

    unit_results: list[UnitSyncResult] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)
    """Ordered (unit label, error message) pairs."""

    elapsed_seconds: float = 0.0

    aborted: bool = False
    abort_reason: str | None = None
    resume_at: datetime | None = None
    resume_hint: str | None = None

    def _count(self, state: UnitState) -> int:
        return sum(1 for r in self.unit_results if r.state == state)

    @property
    def items_fetched(self) -> int:
        return sum(r.items_fetched for r in self.unit_results)

    @property
    def items_failed(self) -> int:
        return sum(r.items_failed for r in self.unit_results)

    @property
    def items_skipped_cached(self) -> int:
        return sum(r.items_skipped_cached for r in self.unit_results)

    @property
    def days_synced(self) -> int:
        return sum(r.days_synced for r in self.unit_results)

    @property
    def days_skipped(self) -> int:
        return sum(r.days_skipped for r in self.unit_results)

    @property
    def units_completed(self) -> int:
        return self._count(UnitState.COMPLETED)

    @property
    def units_partially_failed(self) -> int:
        return self._count(UnitState.PARTIALLY_FAILED)

    @property
    def units_skipped_cached(self) -> int:
        return self._count(UnitState.SKIPPED_CACHED)

    @property
    def units_skipped_quota(self) -> int:
        return self._count(UnitState.SKIPPED_QUOTA)

    @property
    def units_failed(self) -> int:
        return self._count(UnitState.FAILED)

    @property
    def units_aborted(self) -> int:
        return self._count(UnitState.ABORTED)

    @property
    def success(self) -> bool:
        """True when nothing failed and the run was not stopped."""
        return not self.aborted and not self.errors

    def add_error(self, unit: SyncUnit, message: str) -> None:
        self.errors.append((unit.label, message))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "summary": {
                "total_units": len(self.unit_results),
                "units_completed": self.units_completed,
                "units_partially_failed": self.units_partially_failed,
                "units_skipped_cached": self.units_skipped_cached,
                "units_skipped_quota": self.units_skipped_quota,
                "units_failed": self.units_failed,
                "units_aborted": self.units_aborted,
                "items_fetched": self.items_fetched,
                "items_failed": self.items_failed,
                "items_skipped_cached": self.items_skipped_cached,
                "days_synced": self.days_synced,
                "days_skipped": self.days_skipped,
                "elapsed_seconds": round(self.elapsed_seconds, 2),
            },
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "resume_at": self.resume_at.isoformat() if self.resume_at else None,
            "resume_hint": self.resume_hint,
            "errors": [{"unit": unit, "error": message} for unit, message in self.errors],
            "units": [r.to_dict() for r in self.unit_results],
        }


@dataclass
class CoverageReport:
    """Recorded and missing days of one unit within a range."""

    unit: SyncUnit
    requested: DateRange
    synced_days: list[date]
    gap_days: list[date]
    items_synced: int
    coverage: DayCoverage | None
    last_synced_at: datetime | None = None

    @property
    def coverage_percent(self) -> float:
        return 100.0 * len(self.synced_days) / self.requested.day_count

    @property
    def is_complete(self) -> bool:
        return not self.gap_days

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "unit": self.unit.label,
            "requested": {
                "start": self.requested.start.isoformat(),
                "end": self.requested.end.isoformat(),
                "days": self.requested.day_count,
            },
            "synced_days": len(self.synced_days),
            "synced_ranges": format_day_ranges(self.synced_days),
            "gap_days": [d.isoformat() for d in self.gap_days],
            "gap_ranges": format_day_ranges(self.gap_days),
            "items_synced": self.items_synced,
            "coverage_percent": round(self.coverage_percent, 1),
            "overall": self.coverage.to_dict() if self.coverage else None,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }


class SyncAbortedError(Exception):
    """A run-level hard stop (rate limit, authentication, or storage failure).

    Carries the complete summary of everything done before the stop.
    """

    def __init__(self, summary: SyncSummary, cause: BaseException) -> None:
        super().__init__(summary.abort_reason or str(cause))
        self.summary = summary
        self.cause = cause
