"""Sync Orchestrator - incremental, quota-aware sync of many units.

Each unit moves through a small state machine:

    PENDING -> CACHE_CHECK -> SKIPPED_CACHED
                           -> QUOTA_CHECK -> SKIPPED_QUOTA
                                          -> FETCHING -> COMPLETED | PARTIALLY_FAILED | FAILED

Only the days missing from the coverage ledger are fetched, one window of
consecutive days at a time and one day at a time within a window, in
ascending order. A day is recorded after every one of its items was
either stored or rejected as malformed; a day interrupted by any other
error stays unrecorded and is fetched again by the next run.

Rate limit exhaustion, rejected credentials, and storage failures stop
the whole run: the current and every later unit end ABORTED and
``SyncAbortedError`` carries the summary of what was done.
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from activity_sync.db.exceptions import StorageError
from activity_sync.github.exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubRateLimitError,
    GitHubValidationError,
)
from activity_sync.logging import LogContext, bind_item, bind_unit, get_logger
from activity_sync.schemas.sync import DateRange, DayCoverage, SyncUnit

from .coverage import CoverageService
from .days import compute_gap, contiguous_ranges
from .enums import SyncStrategy, UnitState
from .fetchers import DiscoveredItem, ResourceFetcher
from .quota_estimator import QuotaEstimator
from .results import (
    RESUME_INSTRUCTION,
    CoverageReport,
    SyncAbortedError,
    SyncSummary,
    UnitSyncResult,
)

if TYPE_CHECKING:
    from activity_sync.db.repositories import SyncCoverageRepository
    from activity_sync.github.client import GitHubClient

    from .commit_manager import CommitManager

logger = get_logger(__name__)

ProgressCallback = Callable[[str], None]

_RUN_STOPPING_ERRORS = (GitHubRateLimitError, GitHubAuthenticationError, StorageError)


class SyncOrchestrator:
    """Orchestrates incremental sync of GitHub activity.

    Usage:
        monitor = QuotaMonitor()
        async with GitHubClient(quota_monitor=monitor) as client:
            async with get_session() as session:
                fetchers = build_fetchers(client, session, settings)
                orchestrator = SyncOrchestrator(
                    client=client,
                    coverage=SyncCoverageRepository(session),
                    estimator=QuotaEstimator(fetchers),
                    fetchers=fetchers,
                    commit_manager=CommitManager(session),
                )
                summary = await orchestrator.sync(units, DateRange(start, end))
    """

    def __init__(
        self,
        client: GitHubClient,
        coverage: SyncCoverageRepository,
        estimator: QuotaEstimator,
        fetchers: Mapping[str, ResourceFetcher],
        commit_manager: CommitManager | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: GitHub API client (its monitor is read for remaining quota)
            coverage: Coverage ledger repository
            estimator: Quota estimator
            fetchers: Fetcher registry keyed by resource type
            commit_manager: Optional CommitManager; when provided, each
                recorded day counts towards a commit
        """
        self._client = client
        self._coverage = coverage
        self._estimator = estimator
        self._fetchers = fetchers
        self._commit_manager = commit_manager
        self._coverage_service = CoverageService(coverage)

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------
    async def sync(
        self,
        units: Sequence[SyncUnit],
        date_range: DateRange,
        *,
        force: bool = False,
        on_progress: ProgressCallback | None = None,
        skip_quota_check: bool = False,
    ) -> SyncSummary:
        """Bring every unit's coverage of the range up to date.

        Args:
            units: Units to sync, processed in order
            date_range: Requested days (inclusive, UTC)
            force: Refetch every requested day, recorded or not
            on_progress: Receives one human-readable line per unit and day
            skip_quota_check: Fetch without pricing the work first

        Returns:
            Summary of the run

        Raises:
            SyncAbortedError: The run was stopped early; carries the summary
        """
        start_time = time.monotonic()
        summary = SyncSummary(
            unit_results=[
                UnitSyncResult(unit=unit, days_requested=date_range.day_count) for unit in units
            ]
        )
        logger.info(
            "Starting sync of {} units for {}{}",
            len(units),
            date_range,
            " (forced)" if force else "",
        )

        try:
            for result in summary.unit_results:
                await self._sync_unit(
                    result, date_range, summary, force, skip_quota_check, on_progress
                )
            await self._finalize_commits()
        except _RUN_STOPPING_ERRORS as e:
            self._abort(summary, e)
            # Days recorded before the stop are complete; keep them
            if not isinstance(e, StorageError):
                await self._finalize_commits()
            summary.elapsed_seconds = time.monotonic() - start_time
            logger.error("Sync aborted: {}", summary.abort_reason)
            self._notify(on_progress, f"Sync aborted: {summary.abort_reason}")
            raise SyncAbortedError(summary, e) from e

        summary.elapsed_seconds = time.monotonic() - start_time

        logger.info(
            "Sync complete: units={}, completed={}, cached={}, quota_skipped={}, "
            "failed={}, items={}, days={} ({:.1f}s)",
            len(summary.unit_results),
            summary.units_completed + summary.units_partially_failed,
            summary.units_skipped_cached,
            summary.units_skipped_quota,
            summary.units_failed,
            summary.items_fetched,
            summary.days_synced,
            summary.elapsed_seconds,
        )
        return summary

    async def _sync_unit(
        self,
        result: UnitSyncResult,
        date_range: DateRange,
        summary: SyncSummary,
        force: bool,
        skip_quota_check: bool,
        on_progress: ProgressCallback | None,
    ) -> None:
        unit = result.unit
        unit_logger = bind_unit(unit)
        result.started_at = datetime.now(UTC)

        try:
            fetcher = self._fetchers.get(unit.resource_type)
            if fetcher is None:
                raise ValueError(f"No fetcher for resource type {unit.resource_type!r}")

            # CACHE_CHECK
            result.state = UnitState.CACHE_CHECK
            synced = (
                []
                if force
                else await self._coverage.get_synced_days(unit, date_range.start, date_range.end)
            )
            gap = compute_gap(date_range, synced)
            result.days_cached = len(synced)
            if synced:
                result.items_skipped_cached = await self._coverage.sum_items(
                    unit, date_range.start, date_range.end
                )
            if not gap:
                result.state = UnitState.SKIPPED_CACHED
                result.strategy = SyncStrategy.CACHE_HIT
                unit_logger.info("All {} days already synced", date_range.day_count)
                self._notify(on_progress, f"{unit.label}: all {date_range.day_count} days cached")
                return

            # QUOTA_CHECK
            result.state = UnitState.QUOTA_CHECK
            if not skip_quota_check and await self._over_budget(result, date_range, force):
                result.state = UnitState.SKIPPED_QUOTA
                unit_logger.warning(
                    "Skipping: estimated {} requests ({}) but only {} remaining",
                    result.estimated_cost,
                    result.strategy.value if result.strategy else "unknown",
                    result.quota_remaining,
                )
                self._notify(
                    on_progress,
                    f"{unit.label}: skipped, needs ~{result.estimated_cost} requests, "
                    f"{result.quota_remaining} remaining",
                )
                return

            # FETCHING
            result.state = UnitState.FETCHING
            unit_logger.info("Fetching {} missing days", len(gap))
            for window in contiguous_ranges(gap):
                await self._fetch_window(result, fetcher, window, summary, on_progress)

            result.state = (
                UnitState.PARTIALLY_FAILED if result.items_failed else UnitState.COMPLETED
            )
            unit_logger.info(
                "Synced {} days, {} items ({} failed)",
                result.days_synced,
                result.items_fetched,
                result.items_failed,
            )
        except _RUN_STOPPING_ERRORS:
            raise
        except GitHubClientError as e:
            self._fail(result, summary, f"{type(e).__name__}: {e}")
            unit_logger.error("Unit failed: {}", e)
        except Exception as e:
            self._fail(result, summary, f"Unexpected error: {e}")
            unit_logger.exception("Unit failed unexpectedly")
        finally:
            result.completed_at = datetime.now(UTC)

        if result.state == UnitState.FAILED:
            self._notify(on_progress, f"{unit.label}: failed")
        else:
            self._notify(
                on_progress,
                f"{unit.label}: {result.state.value}, {result.days_synced} days, "
                f"{result.items_fetched} items",
            )

    async def _over_budget(self, result: UnitSyncResult, date_range: DateRange, force: bool) -> bool:
        """Price the unit's pending work and compare it to remaining quota."""
        coverage = None if force else await self._coverage.get_coverage(result.unit)
        estimate = await self._estimator.classify(result.unit, date_range, coverage)
        result.strategy = estimate.strategy
        result.estimated_cost = estimate.estimated_cost

        remaining = await self._remaining_quota()
        result.quota_remaining = remaining
        if remaining is None:
            return False
        return QuotaEstimator.should_skip(
            estimate.estimated_cost, remaining, self._estimator.safety_margin
        )

    async def _remaining_quota(self) -> int | None:
        """Last observed core quota, asking /rate_limit once if none was seen."""
        quota = self._client.quota_monitor.quota
        if quota is None:
            quota = await self._client.refresh_quota()
        return quota.remaining if quota else None

    async def _fetch_window(
        self,
        result: UnitSyncResult,
        fetcher: ResourceFetcher,
        window: DateRange,
        summary: SyncSummary,
        on_progress: ProgressCallback | None,
    ) -> None:
        """Fetch one run of consecutive missing days, recording each day as it completes."""
        unit = result.unit
        by_day: dict[date, list[DiscoveredItem]] = defaultdict(list)
        dropped_before = self._client.malformed_entries
        async for item in fetcher.discover(unit, window):
            by_day[item.day].append(item)
        self._record_dropped(result, summary, str(window), dropped_before)

        for day in window.days():
            stored = 0
            dropped_before = self._client.malformed_entries
            with LogContext(day=day.isoformat()):
                for item in by_day.get(day, []):
                    try:
                        await fetcher.ingest(unit, item)
                    except GitHubValidationError as e:
                        result.items_failed += 1
                        message = f"{day.isoformat()} {item.label}: {e}"
                        result.errors.append(message)
                        summary.add_error(unit, message)
                        bind_item(unit, item.label).warning("Skipping malformed item: {}", e)
                        continue
                    stored += 1
            self._record_dropped(result, summary, day.isoformat(), dropped_before)

            await self._coverage.upsert_day(unit, day, datetime.now(UTC), stored)
            if self._commit_manager is not None:
                await self._commit_manager.record_success()
            result.days_synced += 1
            result.items_fetched += stored
            self._notify(on_progress, f"{unit.label}: {day.isoformat()} synced ({stored} items)")

    def _record_dropped(
        self, result: UnitSyncResult, summary: SyncSummary, scope: str, before: int
    ) -> None:
        """Count list entries the client dropped as malformed since ``before``."""
        dropped = self._client.malformed_entries - before
        if not dropped:
            return
        result.items_failed += dropped
        message = f"{scope}: {dropped} malformed list entries skipped"
        result.errors.append(message)
        summary.add_error(result.unit, message)

    def _fail(self, result: UnitSyncResult, summary: SyncSummary, message: str) -> None:
        result.state = UnitState.FAILED
        result.errors.append(message)
        summary.add_error(result.unit, message)

    def _abort(self, summary: SyncSummary, error: Exception) -> None:
        """Mark the interrupted unit and every unit after it ABORTED."""
        now = datetime.now(UTC)
        for result in summary.unit_results:
            if result.state.is_terminal:
                continue
            if result.state != UnitState.PENDING:
                result.errors.append(str(error))
                summary.add_error(result.unit, str(error))
                result.completed_at = now
            result.state = UnitState.ABORTED

        summary.aborted = True
        if isinstance(error, GitHubRateLimitError):
            summary.resume_at = error.reset_at
            summary.abort_reason = f"Rate limit exhausted until {error.reset_at.isoformat()}"
            summary.resume_hint = (
                f"Quota resets at {error.reset_at.isoformat()}. {RESUME_INSTRUCTION}"
            )
        elif isinstance(error, GitHubAuthenticationError):
            summary.abort_reason = f"Authentication failed: {error}"
            summary.resume_hint = f"Check GITHUB_TOKEN. {RESUME_INSTRUCTION}"
        else:
            summary.abort_reason = f"Storage failure: {error}"
            summary.resume_hint = RESUME_INSTRUCTION

    async def _finalize_commits(self) -> None:
        if self._commit_manager is not None:
            await self._commit_manager.finalize()

    @staticmethod
    def _notify(on_progress: ProgressCallback | None, message: str) -> None:
        if on_progress is None:
            return
        try:
            on_progress(message)
        except Exception:
            logger.exception("Progress callback raised; continuing")

    # -------------------------------------------------------------------------
    # Coverage
    # -------------------------------------------------------------------------
    async def get_coverage(self, unit: SyncUnit) -> DayCoverage | None:
        """Overall recorded extent of a unit."""
        return await self._coverage_service.get_coverage(unit)

    async def get_synced_days(self, unit: SyncUnit, date_range: DateRange) -> list[date]:
        """Recorded days of a unit within a range."""
        return await self._coverage_service.get_synced_days(unit, date_range)

    async def reset_range(self, unit: SyncUnit, date_range: DateRange) -> int:
        """Forget recorded days so the next run fetches them again."""
        return await self._coverage_service.reset_range(unit, date_range)

    async def coverage_report(self, unit: SyncUnit, date_range: DateRange) -> CoverageReport:
        """Recorded and missing days of a unit within a range."""
        return await self._coverage_service.coverage_report(unit, date_range)
