"""Value types describing what is synchronized and over which days.

All day keys are ``datetime.date`` values taken in UTC, so a timestamp
near midnight lands on the same day regardless of the local timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Self

from .enums import ResourceType


def to_day(value: datetime | date) -> date:
    """UTC calendar day of a timestamp (naive datetimes are taken as UTC)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(UTC).date()
    return value


def parse_repo_string(repo: str) -> tuple[str, str]:
    """Parse 'owner/name' into its two parts.

    Raises:
        ValueError: If the string is not exactly owner/name
    """
    parts = repo.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid repository format: {repo!r} (expected owner/name)")
    return parts[0], parts[1]


@dataclass(frozen=True)
class SyncUnit:
    """One independently synchronized stream: a resource type in a repository."""

    resource_type: str
    organization: str
    repository: str

    @property
    def full_name(self) -> str:
        return f"{self.organization}/{self.repository}"

    @property
    def label(self) -> str:
        return f"{self.resource_type}:{self.full_name}"

    @classmethod
    def from_repo_string(cls, repo: str, resource_type: ResourceType | str) -> Self:
        """Build a unit from 'owner/name'."""
        owner, name = parse_repo_string(repo)
        return cls(ResourceType(resource_type).value, owner, name)

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of UTC calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} is after end {self.end}")

    @classmethod
    def single(cls, day: date) -> Self:
        return cls(day, day)

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def start_datetime(self) -> datetime:
        """First instant of the range (UTC)."""
        return datetime.combine(self.start, time.min, tzinfo=UTC)

    @property
    def end_datetime(self) -> datetime:
        """Last instant of the range (UTC)."""
        return datetime.combine(self.end, time.max, tzinfo=UTC)

    def days(self) -> list[date]:
        """Every day in the range, ascending."""
        return [self.start + timedelta(days=i) for i in range(self.day_count)]

    def __contains__(self, day: object) -> bool:
        if isinstance(day, datetime):
            day = to_day(day)
        if not isinstance(day, date):
            return False
        return self.start <= day <= self.end

    def __str__(self) -> str:
        if self.start == self.end:
            return self.start.isoformat()
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


@dataclass(frozen=True)
class DayCoverage:
    """Extent of the recorded days of one unit."""

    min_day: date
    max_day: date
    day_count: int

    @property
    def is_contiguous(self) -> bool:
        """True when every day between min and max is recorded."""
        return self.day_count == (self.max_day - self.min_day).days + 1

    def contains(self, requested: DateRange) -> bool:
        """True when contiguous coverage spans the whole requested range."""
        return (
            self.is_contiguous
            and self.min_day <= requested.start
            and requested.end <= self.max_day
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "min_day": self.min_day.isoformat(),
            "max_day": self.max_day.isoformat(),
            "day_count": self.day_count,
            "contiguous": self.is_contiguous,
        }
