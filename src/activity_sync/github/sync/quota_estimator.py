"""Quota Estimator - pre-flight affordability check for a pending unit.

Before any work on a unit starts, the estimator decides how the
requested range relates to what is already recorded and prices the
remaining work in remote requests:

- CACHE_HIT: every requested day is recorded; nothing to price.
- EXTENSION: recorded coverage reaches into the range and only a short
  tail of new days follows it; priced with a per-day heuristic, without
  spending a request on measurement.
- FULL: anything else; priced from one exact search count.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

from activity_sync.config import QuotaConfig, get_settings
from activity_sync.github.exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from activity_sync.github.rate_limit import RateLimitPool
from activity_sync.logging import bind_unit
from activity_sync.schemas.sync import DateRange, DayCoverage, SyncUnit

from .enums import SyncStrategy
from .fetchers import ResourceFetcher


@dataclass(frozen=True)
class QuotaEstimate:
    """Strategy and projected request cost of a unit's pending work."""

    strategy: SyncStrategy
    estimated_items: int
    estimated_cost: int
    exact: bool = False
    """True when the item count came from a remote count."""


class QuotaEstimator:
    """Classifies pending work and decides whether it is affordable.

    Usage:
        estimator = QuotaEstimator(fetchers)
        estimate = await estimator.classify(unit, requested, coverage)
        if QuotaEstimator.should_skip(estimate.estimated_cost, remaining, estimator.safety_margin):
            ...
    """

    def __init__(
        self,
        fetchers: Mapping[str, ResourceFetcher],
        config: QuotaConfig | None = None,
        page_size: int | None = None,
    ) -> None:
        """Initialize the estimator.

        Args:
            fetchers: Fetcher registry keyed by resource type
            config: Heuristic constants (defaults from settings)
            page_size: Listing page size used to price pagination
        """
        settings = get_settings()
        self._fetchers = fetchers
        self._config = config or settings.quota
        self._page_size = page_size or settings.sync.page_size

    @property
    def safety_margin(self) -> int:
        return self._config.safety_margin

    async def classify(
        self,
        unit: SyncUnit,
        requested: DateRange,
        coverage: DayCoverage | None,
    ) -> QuotaEstimate:
        """Pick the strategy for a unit and estimate its cost.

        Args:
            unit: The unit to price
            requested: Days the caller asked for
            coverage: Recorded coverage of the unit (None when nothing is
                recorded, or when a forced run ignores it)

        Raises:
            GitHubRateLimitError: Core quota exhausted while counting
            GitHubAuthenticationError: Credentials rejected while counting
            GitHubNotFoundError: Repository does not exist
        """
        if coverage is not None and coverage.contains(requested):
            return QuotaEstimate(SyncStrategy.CACHE_HIT, 0, 0)

        fetcher = self._fetcher(unit)
        new_days = self._extension_days(requested, coverage)
        if new_days is not None:
            items = self._heuristic_items(new_days)
            return QuotaEstimate(
                SyncStrategy.EXTENSION, items, self.estimate_cost(items, fetcher.calls_per_item)
            )

        try:
            items = await fetcher.count(unit, requested)
        except (GitHubAuthenticationError, GitHubNotFoundError):
            raise
        except GitHubRateLimitError as e:
            if e.pool != RateLimitPool.SEARCH:
                raise
            bind_unit(unit).warning("Search quota exhausted; estimating {} heuristically", requested)
            items = self._heuristic_items(requested.day_count)
            exact = False
        except GitHubClientError as e:
            bind_unit(unit).warning("Count failed ({}); estimating {} heuristically", e, requested)
            items = self._heuristic_items(requested.day_count)
            exact = False
        else:
            exact = True

        return QuotaEstimate(
            SyncStrategy.FULL,
            items,
            self.estimate_cost(items, fetcher.calls_per_item),
            exact=exact,
        )

    def _fetcher(self, unit: SyncUnit) -> ResourceFetcher:
        try:
            return self._fetchers[unit.resource_type]
        except KeyError:
            raise ValueError(f"No fetcher for resource type {unit.resource_type!r}") from None

    def _extension_days(self, requested: DateRange, coverage: DayCoverage | None) -> int | None:
        """New trailing days when the request extends contiguous coverage, else None.

        A request that also moves the start before recorded coverage is
        not an extension.
        """
        if coverage is None or not coverage.is_contiguous:
            return None
        if not coverage.min_day <= requested.start <= coverage.max_day:
            return None
        new_days = (requested.end - coverage.max_day).days
        if new_days <= 0 or new_days > self._config.extension_max_days:
            return None
        return new_days

    def _heuristic_items(self, days: int) -> int:
        return max(self._config.min_estimated_items, self._config.extension_items_per_day * days)

    def estimate_cost(self, items: int, calls_per_item: int) -> int:
        """Listing pages plus per-item detail calls."""
        return math.ceil(items / self._page_size) + items * calls_per_item

    @staticmethod
    def should_skip(estimated_cost: int, remaining: int, safety_margin: int) -> bool:
        """True when the work would eat into the reserved margin."""
        return remaining < estimated_cost + safety_margin
