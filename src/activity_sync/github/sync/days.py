"""Day arithmetic for gap computation and coverage reports."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from activity_sync.schemas.sync import DateRange


def today_utc() -> date:
    return datetime.now(UTC).date()


def compute_gap(requested: DateRange, synced: Iterable[date]) -> list[date]:
    """Requested days that are not yet synced, ascending.

    Example:
        >>> compute_gap(DateRange(date(2025, 1, 1), date(2025, 1, 5)),
        ...             [date(2025, 1, 1), date(2025, 1, 3), date(2025, 1, 5)])
        [datetime.date(2025, 1, 2), datetime.date(2025, 1, 4)]
    """
    done = set(synced)
    return [day for day in requested.days() if day not in done]


def contiguous_ranges(days: Iterable[date]) -> list[DateRange]:
    """Collapse days into ascending runs of consecutive days."""
    ranges: list[DateRange] = []
    start: date | None = None
    previous: date | None = None
    for day in sorted(set(days)):
        if start is None or previous is None:
            start = day
        elif day - previous > timedelta(days=1):
            ranges.append(DateRange(start, previous))
            start = day
        previous = day
    if start is not None and previous is not None:
        ranges.append(DateRange(start, previous))
    return ranges


def format_day_ranges(days: Iterable[date]) -> str:
    """Render days as 'start..end' runs, e.g. '2025-01-01..2025-01-03, 2025-01-05'."""
    ranges = contiguous_ranges(days)
    if not ranges:
        return "none"
    return ", ".join(str(r) for r in ranges)


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD string.

    Raises:
        ValueError: If the string is not an ISO date
    """
    return date.fromisoformat(value.strip())


def parse_since(value: str, today: date | None = None) -> date:
    """Parse a start day given as YYYY-MM-DD or as a number of days back.

    ``"7"`` means the last seven days including today.

    Raises:
        ValueError: If the value is neither form, or the count is not positive
    """
    value = value.strip()
    if value.isdigit():
        days_back = int(value)
        if days_back < 1:
            raise ValueError("Number of days must be at least 1")
        return (today or today_utc()) - timedelta(days=days_back - 1)
    return parse_day(value)


def resolve_range(
    since: str | None,
    until: str | None,
    default_lookback_days: int,
    today: date | None = None,
) -> DateRange:
    """Build the requested range from CLI inputs (end defaults to today, UTC).

    Raises:
        ValueError: If either bound is malformed or start is after end
    """
    today = today or today_utc()
    end = parse_day(until) if until else today
    start = parse_since(since, today) if since else end - timedelta(days=default_lookback_days - 1)
    return DateRange(start, end)
