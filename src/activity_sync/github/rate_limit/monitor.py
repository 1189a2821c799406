"""Quota monitoring for GitHub API.

The monitor is the single holder of the quota value during a run. It is
constructed by whoever starts the run and handed to the client, which
updates it from every response; readers (the quota estimator, the CLI)
only ever look at what GitHub last reported.

Key Features:
- Passive tracking from response headers (zero API cost)
- Separate pools for core and search quotas
- Warning log when a pool's status degrades
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from activity_sync.config import RateLimitConfig, get_settings
from activity_sync.logging import get_logger

from .schemas import Quota, QuotaSnapshot, RateLimitPool, RateLimitStatus

logger = get_logger(__name__)

_STATUS_ORDER = [
    RateLimitStatus.HEALTHY,
    RateLimitStatus.WARNING,
    RateLimitStatus.CRITICAL,
    RateLimitStatus.EXHAUSTED,
]


class QuotaMonitor:
    """Tracks the remaining GitHub request budget for one run.

    Usage:
        monitor = QuotaMonitor()
        async with GitHubClient(quota_monitor=monitor) as client:
            await client.refresh_quota()
            if monitor.remaining() is not None:
                ...
    """

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        """Initialize the monitor.

        Args:
            config: Optional rate limit configuration (uses settings if not provided)
        """
        self._config = config or get_settings().rate_limit
        self._pools: dict[RateLimitPool, Quota] = {}
        self._previous_status: dict[RateLimitPool, RateLimitStatus] = {}
        self._last_update: datetime | None = None

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------
    def update(self, quota: Quota) -> None:
        """Replace the tracked value for the quota's pool."""
        self._pools[quota.pool] = quota
        self._last_update = datetime.now(UTC)
        self._check_degradation(quota)

    def update_from_headers(self, headers: Mapping[str, str]) -> Quota | None:
        """Update from response headers (success or error responses alike).

        Args:
            headers: HTTP response headers

        Returns:
            The parsed quota, or None if the headers carried none
        """
        quota = Quota.from_headers(headers)
        if quota is not None:
            self.update(quota)
        return quota

    def update_from_snapshot(self, snapshot: QuotaSnapshot) -> None:
        """Update every pool present in a /rate_limit snapshot."""
        for quota in snapshot.pools.values():
            self.update(quota)

    def _check_degradation(self, quota: Quota) -> None:
        current = self._status_of(quota)
        previous = self._previous_status.get(quota.pool, RateLimitStatus.HEALTHY)
        if _STATUS_ORDER.index(current) > _STATUS_ORDER.index(previous):
            logger.warning(
                "Quota for {} pool is {} ({}/{} remaining, resets {})",
                quota.pool.value,
                current.value,
                quota.remaining,
                quota.limit,
                quota.reset_at.isoformat(),
            )
        self._previous_status[quota.pool] = current

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def quota(self) -> Quota | None:
        """Core pool quota (None if never observed)."""
        return self._pools.get(RateLimitPool.CORE)

    @property
    def last_update(self) -> datetime | None:
        """When any pool was last updated."""
        return self._last_update

    def get_quota(self, pool: RateLimitPool = RateLimitPool.CORE) -> Quota | None:
        """Get the tracked quota for a pool."""
        return self._pools.get(pool)

    def remaining(self, pool: RateLimitPool = RateLimitPool.CORE) -> int | None:
        """Requests remaining in a pool (None if never observed)."""
        quota = self._pools.get(pool)
        return quota.remaining if quota else None

    def get_status(self, pool: RateLimitPool = RateLimitPool.CORE) -> RateLimitStatus:
        """Get health status for a pool (HEALTHY if unknown)."""
        quota = self._pools.get(pool)
        if quota is None:
            return RateLimitStatus.HEALTHY
        return self._status_of(quota)

    def _status_of(self, quota: Quota) -> RateLimitStatus:
        return quota.get_status(
            self._config.healthy_threshold_pct,
            self._config.warning_threshold_pct,
            self._config.critical_threshold_pct,
        )

    def below_threshold(self, pool: RateLimitPool = RateLimitPool.CORE) -> bool:
        """True when the pool is known to sit under the client's safety threshold."""
        quota = self._pools.get(pool)
        return quota is not None and quota.remaining < self._config.safety_threshold

    def time_until_reset(self, pool: RateLimitPool = RateLimitPool.CORE) -> float:
        """Seconds until the pool resets (0 if unknown or already reset)."""
        quota = self._pools.get(pool)
        if quota is None:
            return 0.0
        return quota.seconds_until_reset

    def to_dict(self) -> dict[str, Any]:
        """Export current state as dictionary (for logging/CLI output)."""
        pools_data: dict[str, Any] = {}
        for pool, quota in self._pools.items():
            pools_data[pool.value] = {
                "limit": quota.limit,
                "remaining": quota.remaining,
                "used": quota.used,
                "remaining_percent": round(quota.remaining_percent, 2),
                "reset_at": quota.reset_at.isoformat(),
                "seconds_until_reset": int(quota.seconds_until_reset),
                "status": self.get_status(pool).value,
            }

        return {
            "last_update": self._last_update.isoformat() if self._last_update else None,
            "pools": pools_data,
        }
