"""Tests for day arithmetic and the day-range value types."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from activity_sync.github.sync.days import (
    compute_gap,
    contiguous_ranges,
    format_day_ranges,
    parse_since,
    resolve_range,
)
from activity_sync.schemas import DateRange, DayCoverage, SyncUnit, to_day
from tests.conftest import JAN_01, JAN_02, JAN_03, JAN_04, JAN_05, JAN_06, JAN_07


class TestComputeGap:
    """Requested days minus recorded days."""

    def test_nothing_synced(self):
        assert compute_gap(DateRange(JAN_01, JAN_03), []) == [JAN_01, JAN_02, JAN_03]

    def test_everything_synced(self):
        assert compute_gap(DateRange(JAN_01, JAN_03), [JAN_01, JAN_02, JAN_03]) == []

    def test_interior_holes(self):
        gap = compute_gap(DateRange(JAN_01, JAN_05), [JAN_01, JAN_03, JAN_05])

        assert gap == [JAN_02, JAN_04]

    def test_synced_days_outside_range_ignored(self):
        synced = [JAN_01 - timedelta(days=3), JAN_02]

        assert compute_gap(DateRange(JAN_01, JAN_03), synced) == [JAN_01, JAN_03]


class TestContiguousRanges:
    """Collapsing days into windows."""

    def test_empty(self):
        assert contiguous_ranges([]) == []

    def test_runs(self):
        ranges = contiguous_ranges([JAN_05, JAN_01, JAN_02, JAN_07, JAN_06])

        assert ranges == [DateRange(JAN_01, JAN_02), DateRange(JAN_05, JAN_07)]

    def test_duplicates(self):
        assert contiguous_ranges([JAN_03, JAN_03]) == [DateRange.single(JAN_03)]

    def test_format(self):
        assert format_day_ranges([JAN_01, JAN_02, JAN_03, JAN_05]) == (
            "2025-01-01..2025-01-03, 2025-01-05"
        )
        assert format_day_ranges([]) == "none"


class TestParsing:
    """CLI date inputs."""

    def test_since_iso(self):
        assert parse_since("2025-01-03") == JAN_03

    def test_since_days_back_includes_today(self):
        assert parse_since("7", today=JAN_07) == JAN_01
        assert parse_since("1", today=JAN_07) == JAN_07

    def test_since_zero_rejected(self):
        with pytest.raises(ValueError):
            parse_since("0", today=JAN_07)

    def test_since_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_since("last week")

    def test_resolve_range_defaults(self):
        assert resolve_range(None, None, 30, today=JAN_07) == DateRange(
            JAN_07 - timedelta(days=29), JAN_07
        )

    def test_resolve_range_explicit(self):
        assert resolve_range("2025-01-02", "2025-01-05", 30) == DateRange(JAN_02, JAN_05)

    def test_resolve_range_inverted(self):
        with pytest.raises(ValueError):
            resolve_range("2025-01-05", "2025-01-02", 30)


class TestDateRange:
    """Inclusive UTC day ranges."""

    def test_days(self):
        assert DateRange(JAN_01, JAN_03).days() == [JAN_01, JAN_02, JAN_03]
        assert DateRange(JAN_01, JAN_03).day_count == 3

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError):
            DateRange(JAN_03, JAN_01)

    def test_datetime_bounds(self):
        window = DateRange(JAN_01, JAN_02)

        assert window.start_datetime == datetime(2025, 1, 1, tzinfo=UTC)
        assert window.end_datetime.date() == JAN_02
        assert window.end_datetime.hour == 23

    def test_contains_uses_utc_day(self):
        window = DateRange.single(JAN_03)
        just_after_midnight = datetime(2025, 1, 3, 0, 30, tzinfo=UTC)

        assert just_after_midnight in window
        assert JAN_04 not in window
        assert "2025-01-03" not in window

    def test_str(self):
        assert str(DateRange(JAN_01, JAN_03)) == "2025-01-01..2025-01-03"
        assert str(DateRange.single(JAN_03)) == "2025-01-03"


class TestToDay:
    """UTC day keys."""

    def test_aware_datetime_converted_to_utc(self):
        tokyo = timezone(timedelta(hours=9))
        # 08:00 Jan 4 in Tokyo is still Jan 3 in UTC
        assert to_day(datetime(2025, 1, 4, 8, 0, tzinfo=tokyo)) == JAN_03

    def test_naive_datetime_taken_as_utc(self):
        assert to_day(datetime(2025, 1, 3, 23, 59)) == JAN_03

    def test_date_passthrough(self):
        assert to_day(JAN_05) == JAN_05


class TestDayCoverage:
    """Recorded extent of a unit."""

    def test_contiguous(self):
        assert DayCoverage(JAN_01, JAN_05, 5).is_contiguous
        assert not DayCoverage(JAN_01, JAN_05, 4).is_contiguous

    def test_contains(self):
        coverage = DayCoverage(JAN_01, JAN_06, 6)

        assert coverage.contains(DateRange(JAN_02, JAN_05))
        assert not coverage.contains(DateRange(JAN_02, JAN_07))

    def test_holes_never_contain(self):
        assert not DayCoverage(JAN_01, JAN_06, 5).contains(DateRange(JAN_02, JAN_03))


class TestSyncUnit:
    """Unit identity."""

    def test_from_repo_string(self):
        unit = SyncUnit.from_repo_string("prebid/prebid-server", "commits")

        assert unit == SyncUnit("commits", "prebid", "prebid-server")
        assert unit.label == "commits:prebid/prebid-server"

    @pytest.mark.parametrize("repo", ["prebid", "a/b/c", "/name", "owner/"])
    def test_invalid_repo_string(self, repo):
        with pytest.raises(ValueError):
            SyncUnit.from_repo_string(repo, "commits")

    def test_unknown_resource_rejected(self):
        with pytest.raises(ValueError):
            SyncUnit.from_repo_string("prebid/prebid-server", "issues")
