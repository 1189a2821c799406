"""Repository discovery for organization-wide syncs."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from activity_sync.logging import get_logger

if TYPE_CHECKING:
    from activity_sync.github.client import GitHubClient
    from activity_sync.schemas.sync import DateRange

logger = get_logger(__name__)


@dataclass
class RepositoryDiscovery:
    """Outcome of listing an organization's repositories."""

    active: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    inactive: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.active) + len(self.excluded) + len(self.inactive)


async def discover_repositories(
    client: GitHubClient,
    organization: str,
    date_range: DateRange,
    exclude: Collection[str] = (),
) -> RepositoryDiscovery:
    """List the organization's repositories worth syncing for a range.

    Archived and disabled repositories are dropped, as are repositories
    with no push since the first day of the range. ``exclude`` entries
    match either the bare name or owner/name.
    """
    excluded_names = {name.strip().lower() for name in exclude if name.strip()}
    discovery = RepositoryDiscovery()
    async for repo in client.iter_org_repositories(organization):
        if repo.name.lower() in excluded_names or repo.full_name.lower() in excluded_names:
            discovery.excluded.append(repo.full_name)
        elif not repo.active_since(date_range.start_datetime):
            discovery.inactive.append(repo.full_name)
        else:
            discovery.active.append(repo.full_name)

    logger.info(
        "Found {} repositories in {}: {} active, {} excluded, {} inactive since {}",
        discovery.total,
        organization,
        len(discovery.active),
        len(discovery.excluded),
        len(discovery.inactive),
        date_range.start.isoformat(),
    )
    return discovery
