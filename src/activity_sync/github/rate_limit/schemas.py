"""Pydantic schemas for GitHub API quota data.

These schemas represent quota information from:
- GET /rate_limit API endpoint
- x-ratelimit-* response headers
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, Field, computed_field


class RateLimitPool(StrEnum):
    """GitHub rate limit resource pools tracked by the monitor.

    Each pool has its own quota. Listing and detail calls draw from
    'core'; exact counts go through the search API.
    """

    CORE = "core"
    SEARCH = "search"


class RateLimitStatus(StrEnum):
    """Quota health status.

    Thresholds are configurable but defaults are:
    - HEALTHY: > 50% remaining
    - WARNING: 20-50% remaining
    - CRITICAL: 5-20% remaining
    - EXHAUSTED: 0 remaining
    """

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"


class Quota(BaseModel):
    """Remaining request budget for one pool, as last reported by GitHub."""

    pool: RateLimitPool = Field(default=RateLimitPool.CORE, description="Resource pool")
    limit: int = Field(ge=0, description="Maximum requests allowed per window")
    remaining: int = Field(ge=0, description="Requests remaining in current window")
    used: int = Field(default=0, ge=0, description="Requests used in current window")
    reset_at: datetime = Field(description="UTC datetime when the window resets")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining_percent(self) -> float:
        """Percentage of quota remaining (0.0 to 100.0)."""
        if self.limit == 0:
            return 0.0
        return (self.remaining / self.limit) * 100

    @property
    def seconds_until_reset(self) -> float:
        """Seconds until the window resets (0 if already past)."""
        delta = self.reset_at - datetime.now(UTC)
        return max(0.0, delta.total_seconds())

    def get_status(
        self,
        healthy_threshold: float = 50.0,
        warning_threshold: float = 20.0,
        critical_threshold: float = 5.0,
    ) -> RateLimitStatus:
        """Determine quota health status.

        Args:
            healthy_threshold: % remaining above which is HEALTHY
            warning_threshold: % remaining above which is WARNING (below healthy)
            critical_threshold: % remaining above which is CRITICAL (below warning)

        Returns:
            RateLimitStatus enum value
        """
        if self.remaining == 0:
            return RateLimitStatus.EXHAUSTED
        if self.remaining_percent >= healthy_threshold:
            return RateLimitStatus.HEALTHY
        if self.remaining_percent >= warning_threshold:
            return RateLimitStatus.WARNING
        return RateLimitStatus.CRITICAL

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Self | None:
        """Parse from HTTP response headers.

        GitHub includes quota info on every response:
        - x-ratelimit-limit
        - x-ratelimit-remaining
        - x-ratelimit-used
        - x-ratelimit-reset (epoch seconds)
        - x-ratelimit-resource (pool name)

        Args:
            headers: HTTP response headers (case-insensitive mapping)

        Returns:
            Quota, or None when the headers carry incomplete quota data
            or name a pool that is not tracked
        """
        remaining = headers.get("x-ratelimit-remaining")
        reset = headers.get("x-ratelimit-reset")
        if remaining is None or reset is None:
            return None

        try:
            pool = RateLimitPool(headers.get("x-ratelimit-resource", RateLimitPool.CORE.value))
        except ValueError:
            return None

        try:
            reset_ts = int(reset)
            return cls(
                pool=pool,
                limit=int(headers.get("x-ratelimit-limit", "0")),
                remaining=int(remaining),
                used=int(headers.get("x-ratelimit-used", "0")),
                reset_at=datetime.fromtimestamp(reset_ts, tz=UTC),
            )
        except ValueError:
            return None


class QuotaSnapshot(BaseModel):
    """Point-in-time view of all tracked pools."""

    timestamp: datetime = Field(description="When this snapshot was taken")
    pools: dict[RateLimitPool, Quota] = Field(
        default_factory=dict, description="Quota by pool"
    )

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Self:
        """Parse from GitHub /rate_limit API response.

        Args:
            data: Raw API response dict with 'resources' key

        Returns:
            QuotaSnapshot instance
        """
        pools: dict[RateLimitPool, Quota] = {}
        resources = data.get("resources", {})

        for pool in RateLimitPool:
            if pool.value in resources:
                r = resources[pool.value]
                pools[pool] = Quota(
                    pool=pool,
                    limit=r["limit"],
                    remaining=r["remaining"],
                    used=r.get("used", 0),
                    reset_at=datetime.fromtimestamp(r["reset"], tz=UTC),
                )

        return cls(timestamp=datetime.now(UTC), pools=pools)

    def get_core(self) -> Quota | None:
        """Convenience accessor for core pool (most common)."""
        return self.pools.get(RateLimitPool.CORE)
