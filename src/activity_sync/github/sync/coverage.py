"""Coverage Service - read and invalidate the day-level sync ledger.

Needs no GitHub access, so the coverage and reset commands use it directly;
``SyncOrchestrator`` delegates its coverage queries here.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from activity_sync.logging import bind_unit
from activity_sync.schemas.sync import DateRange, DayCoverage, SyncUnit

from .days import compute_gap
from .results import CoverageReport

if TYPE_CHECKING:
    from activity_sync.db.repositories import CoverageSummaryRow, SyncCoverageRepository


class CoverageService:
    """Coverage queries and explicit invalidation for sync units."""

    def __init__(self, coverage: SyncCoverageRepository) -> None:
        self._coverage = coverage

    async def get_coverage(self, unit: SyncUnit) -> DayCoverage | None:
        """Overall recorded extent of a unit."""
        return await self._coverage.get_coverage(unit)

    async def get_synced_days(self, unit: SyncUnit, date_range: DateRange) -> list[date]:
        """Recorded days of a unit within a range."""
        return await self._coverage.get_synced_days(unit, date_range.start, date_range.end)

    async def reset_range(self, unit: SyncUnit, date_range: DateRange) -> int:
        """Forget recorded days so the next run fetches them again.

        Stored activity rows are kept; refetching overwrites them.

        Returns:
            Number of day records removed
        """
        removed = await self._coverage.delete_range(unit, date_range.start, date_range.end)
        bind_unit(unit).info("Reset {} recorded days in {}", removed, date_range)
        return removed

    async def reset_unit(self, unit: SyncUnit) -> int:
        """Forget every recorded day of a unit."""
        removed = await self._coverage.delete_unit(unit)
        bind_unit(unit).info("Reset all {} recorded days", removed)
        return removed

    async def summary(self, organization: str | None = None) -> list[CoverageSummaryRow]:
        """Recorded days and items per repository and resource type."""
        return await self._coverage.get_summary(organization)

    async def coverage_report(self, unit: SyncUnit, date_range: DateRange) -> CoverageReport:
        """Recorded and missing days of a unit within a range."""
        synced = await self.get_synced_days(unit, date_range)
        return CoverageReport(
            unit=unit,
            requested=date_range,
            synced_days=synced,
            gap_days=compute_gap(date_range, synced),
            items_synced=await self._coverage.sum_items(unit, date_range.start, date_range.end),
            coverage=await self._coverage.get_coverage(unit),
            last_synced_at=await self._coverage.get_last_synced_at(unit),
        )
