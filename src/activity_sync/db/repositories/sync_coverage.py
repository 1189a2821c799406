"""Repository for the per-day sync coverage ledger."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from activity_sync.db.models import DaySyncRecord
from activity_sync.schemas.sync import DayCoverage, SyncUnit

from .base import BaseRepository

_UNIQUE_COLUMNS = ["resource_type", "organization", "repository", "sync_date"]


@dataclass(frozen=True)
class DayRecordInput:
    """One day to be recorded for a unit."""

    unit: SyncUnit
    day: date
    synced_at: datetime
    items_synced: int = 0

    def to_row(self) -> dict[str, Any]:
        return {
            "resource_type": self.unit.resource_type,
            "organization": self.unit.organization,
            "repository": self.unit.repository,
            "sync_date": self.day,
            "synced_at": self.synced_at,
            "items_synced": self.items_synced,
        }


@dataclass(frozen=True)
class CoverageSummaryRow:
    """Recorded days and items for one repository and resource type."""

    organization: str
    repository: str
    resource_type: str
    day_count: int
    total_items: int
    first_day: date
    last_day: date
    last_synced_at: datetime


class SyncCoverageRepository(BaseRepository[DaySyncRecord]):
    """Persistent ledger of which (unit, day) pairs are fully synchronized.

    Records are only ever upserted; a missing row means the day still has
    to be fetched. Day keys are UTC calendar dates.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session
        """
        super().__init__(session, DaySyncRecord)

    @staticmethod
    def _unit_filter(unit: SyncUnit) -> list[Any]:
        return [
            DaySyncRecord.resource_type == unit.resource_type,
            DaySyncRecord.organization == unit.organization,
            DaySyncRecord.repository == unit.repository,
        ]

    # -------------------------------------------------------------------------
    # Write Methods
    # -------------------------------------------------------------------------

    async def upsert_day(
        self,
        unit: SyncUnit,
        day: date,
        synced_at: datetime,
        items_synced: int,
    ) -> None:
        """Record a day as synchronized, overwriting any earlier record.

        Args:
            unit: The sync unit
            day: UTC calendar day
            synced_at: When the day's fetch completed
            items_synced: Items successfully stored for the day
        """
        await self.upsert_batch([DayRecordInput(unit, day, synced_at, items_synced)])

    async def upsert_batch(self, records: Sequence[DayRecordInput]) -> int:
        """Record several days in one statement (all or none).

        Args:
            records: Days to record; later duplicates of a (unit, day) win

        Returns:
            Number of distinct days written
        """
        rows: dict[tuple[str, str, str, date], dict[str, Any]] = {}
        for record in records:
            row = record.to_row()
            rows[tuple(row[c] for c in _UNIQUE_COLUMNS)] = row  # type: ignore[misc]
        return await self._upsert(list(rows.values()), index_elements=_UNIQUE_COLUMNS)

    async def delete_range(self, unit: SyncUnit, start: date, end: date) -> int:
        """Forget recorded days so they will be fetched again.

        Returns:
            Number of records removed
        """
        stmt = delete(DaySyncRecord).where(
            *self._unit_filter(unit),
            DaySyncRecord.sync_date >= start,
            DaySyncRecord.sync_date <= end,
        )
        result = await self._execute(stmt, "delete sync days")
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def delete_unit(self, unit: SyncUnit) -> int:
        """Forget every recorded day of a unit.

        Returns:
            Number of records removed
        """
        stmt = delete(DaySyncRecord).where(*self._unit_filter(unit))
        result = await self._execute(stmt, "delete sync unit")
        return result.rowcount or 0  # type: ignore[attr-defined]

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_synced_days(self, unit: SyncUnit, start: date, end: date) -> list[date]:
        """Recorded days of a unit within [start, end], ascending and unique."""
        stmt = (
            select(DaySyncRecord.sync_date)
            .distinct()
            .where(
                *self._unit_filter(unit),
                DaySyncRecord.sync_date >= start,
                DaySyncRecord.sync_date <= end,
            )
            .order_by(DaySyncRecord.sync_date)
        )
        result = await self._execute(stmt, "read synced days")
        return list(result.scalars().all())

    async def get_coverage(self, unit: SyncUnit) -> DayCoverage | None:
        """Earliest day, latest day, and day count for a unit (None if nothing recorded)."""
        stmt = select(
            func.min(DaySyncRecord.sync_date),
            func.max(DaySyncRecord.sync_date),
            func.count(DaySyncRecord.id),
        ).where(*self._unit_filter(unit))
        result = await self._execute(stmt, "read coverage")
        min_day, max_day, day_count = result.one()
        if not day_count:
            return None
        return DayCoverage(min_day=min_day, max_day=max_day, day_count=day_count)

    async def get_day(self, unit: SyncUnit, day: date) -> DaySyncRecord | None:
        """The record of one day, if synced."""
        stmt = select(DaySyncRecord).where(
            *self._unit_filter(unit),
            DaySyncRecord.sync_date == day,
        )
        result = await self._execute(stmt, "read sync day")
        return result.scalar_one_or_none()

    async def is_day_synced(self, unit: SyncUnit, day: date) -> bool:
        """Whether a day has been recorded."""
        return await self.get_day(unit, day) is not None

    async def sum_items(self, unit: SyncUnit, start: date, end: date) -> int:
        """Total items recorded for a unit within [start, end]."""
        stmt = select(func.coalesce(func.sum(DaySyncRecord.items_synced), 0)).where(
            *self._unit_filter(unit),
            DaySyncRecord.sync_date >= start,
            DaySyncRecord.sync_date <= end,
        )
        result = await self._execute(stmt, "sum synced items")
        return int(result.scalar() or 0)

    async def get_last_synced_at(self, unit: SyncUnit) -> datetime | None:
        """When any day of the unit was last recorded."""
        stmt = select(func.max(DaySyncRecord.synced_at)).where(*self._unit_filter(unit))
        result = await self._execute(stmt, "read last sync time")
        return result.scalar()

    async def get_summary(self, organization: str | None = None) -> list[CoverageSummaryRow]:
        """Day counts and item totals per repository and resource type."""
        stmt = (
            select(
                DaySyncRecord.organization,
                DaySyncRecord.repository,
                DaySyncRecord.resource_type,
                func.count(DaySyncRecord.id),
                func.coalesce(func.sum(DaySyncRecord.items_synced), 0),
                func.min(DaySyncRecord.sync_date),
                func.max(DaySyncRecord.sync_date),
                func.max(DaySyncRecord.synced_at),
            )
            .group_by(
                DaySyncRecord.organization,
                DaySyncRecord.repository,
                DaySyncRecord.resource_type,
            )
            .order_by(
                DaySyncRecord.organization,
                DaySyncRecord.repository,
                DaySyncRecord.resource_type,
            )
        )
        if organization is not None:
            stmt = stmt.where(DaySyncRecord.organization == organization)
        result = await self._execute(stmt, "summarize coverage")
        return [
            CoverageSummaryRow(
                organization=org,
                repository=repo,
                resource_type=resource_type,
                day_count=day_count,
                total_items=int(total_items),
                first_day=first_day,
                last_day=last_day,
                last_synced_at=last_synced_at,
            )
            for (
                org,
                repo,
                resource_type,
                day_count,
                total_items,
                first_day,
                last_day,
                last_synced_at,
            ) in result.all()
        ]
