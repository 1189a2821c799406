"""Async GitHub REST client with quota tracking, retries, and lazy pagination.

Every remote call goes through ``GitHubClient.execute``, which:
- sleeps until the quota window resets when remaining quota is low,
- updates the run's ``QuotaMonitor`` from the headers of every response,
- classifies failures once into the exceptions in ``.exceptions``,
- retries transient failures with exponential backoff.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from datetime import UTC, datetime, timedelta
from functools import partial
from typing import Any, Literal, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from activity_sync.config import RateLimitConfig, get_settings
from activity_sync.logging import get_logger
from activity_sync.schemas.github_api import (
    GitHubComment,
    GitHubCommit,
    GitHubPullRequest,
    GitHubRepository,
    GitHubReview,
    GitHubSearchResult,
)
from activity_sync.schemas.sync import DateRange

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetriesExhaustedError,
    GitHubTransientError,
    GitHubValidationError,
)
from .rate_limit import Quota, QuotaMonitor, QuotaSnapshot, RateLimitPool

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

RequestOp = Callable[[], Awaitable[httpx.Response]]
PageFetcher = Callable[[int, int], Awaitable[httpx.Response]]

PRState = Literal["open", "closed", "all"]

API_VERSION = "2022-11-28"
MAX_PAGE_SIZE = 100
UNKNOWN_RESET_WAIT = timedelta(hours=1)


class GitHubClient:
    """Async GitHub API client.

    Usage:
        monitor = QuotaMonitor()
        async with GitHubClient(quota_monitor=monitor) as client:
            async for pr in client.iter_pull_requests("prebid", "prebid-server"):
                print(pr.title)

    Tests inject an ``httpx.AsyncClient`` built on ``httpx.MockTransport``.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        quota_monitor: QuotaMonitor | None = None,
        config: RateLimitConfig | None = None,
        base_url: str | None = None,
        page_size: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub PAT. If not provided, uses GITHUB_TOKEN from settings.
            quota_monitor: Monitor owned by the current run. A private one is
                created when omitted.
            config: Retry and throttle settings (defaults from settings)
            base_url: API root (defaults from settings)
            page_size: Items per page for list endpoints (max 100)
            http_client: Pre-built HTTP client; the caller keeps ownership

        Raises:
            GitHubAuthenticationError: If no token is available.
        """
        settings = get_settings()
        self._token = token or settings.github_token
        if not self._token:
            raise GitHubAuthenticationError(
                "GitHub token required. Set GITHUB_TOKEN environment variable."
            )
        self._config = config or settings.rate_limit
        self._quota = quota_monitor or QuotaMonitor(self._config)
        self._page_size = min(page_size or settings.sync.page_size, MAX_PAGE_SIZE)
        self._malformed_entries = 0

        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url or settings.github_api_url,
            timeout=self._config.request_timeout_seconds,
        )
        self._http.headers.update(
            {
                "Authorization": f"Bearer {self._token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "activity-sync",
            }
        )

    @property
    def quota_monitor(self) -> QuotaMonitor:
        """The monitor updated by every response."""
        return self._quota

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def malformed_entries(self) -> int:
        """List entries dropped so far because they failed validation."""
        return self._malformed_entries

    async def close(self) -> None:
        """Close the underlying HTTP client (if this client created it)."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> GitHubClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------
    async def execute(
        self,
        op: RequestOp,
        *,
        pool: RateLimitPool | None = RateLimitPool.CORE,
    ) -> httpx.Response:
        """Run one remote call with throttling, classification, and retries.

        Args:
            op: Zero-argument coroutine factory issuing the request; called
                again on every retry
            pool: Quota pool to throttle on before each attempt (None skips
                the throttle, for free endpoints)

        Returns:
            The successful response

        Raises:
            GitHubRetriesExhaustedError: Transient failures outlasted max_retries
            GitHubRateLimitError: Primary quota exhausted (never retried)
            GitHubAuthenticationError, GitHubNotFoundError,
            GitHubValidationError: Permanent failures (never retried)
        """
        attempt = 0
        while True:
            if pool is not None:
                await self._wait_for_quota(pool)

            error: GitHubClientError
            try:
                response = await op()
            except httpx.TransportError as e:
                error = GitHubTransientError(f"Network error: {e!r}")
                error.__cause__ = e
            else:
                # Error responses carry quota headers too
                self._quota.update_from_headers(response.headers)
                if response.is_success:
                    return response
                error = self._classify(response)

            if not isinstance(error, GitHubTransientError):
                raise error
            if attempt >= self._config.max_retries:
                raise GitHubRetriesExhaustedError(attempt + 1, error) from error

            delay = self._backoff_delay(attempt, error)
            logger.warning(
                "Transient GitHub failure ({}); retry {}/{} in {:.1f}s",
                error,
                attempt + 1,
                self._config.max_retries,
                delay,
            )
            await asyncio.sleep(delay)
            attempt += 1

    async def _wait_for_quota(self, pool: RateLimitPool) -> None:
        """Sleep until reset when the pool is below the safety threshold."""
        if not self._quota.below_threshold(pool):
            return
        wait = self._quota.time_until_reset(pool)
        if wait <= 0:
            return
        quota = self._quota.get_quota(pool)
        logger.warning(
            "Only {} {} requests left; sleeping {:.0f}s until quota resets",
            quota.remaining if quota else "?",
            pool.value,
            wait,
        )
        await asyncio.sleep(wait)

    def _backoff_delay(self, attempt: int, error: GitHubTransientError) -> float:
        delay = self._config.backoff_base_seconds * (2**attempt)
        if error.retry_after is not None:
            delay = max(delay, error.retry_after)
        return delay

    def _classify(self, response: httpx.Response) -> GitHubClientError:
        """Map a failed response to exactly one error kind."""
        status = response.status_code
        message = _error_message(response)
        headers = response.headers

        if status in (403, 429):
            if headers.get("x-ratelimit-remaining") == "0":
                return GitHubRateLimitError(
                    f"GitHub rate limit exceeded: {message}",
                    reset_at=self._reset_time(headers),
                    status_code=status,
                    pool=headers.get("x-ratelimit-resource", RateLimitPool.CORE.value),
                )
            retry_after = headers.get("retry-after")
            if (
                retry_after is not None
                or status == 429
                or "secondary rate limit" in message.lower()
            ):
                return GitHubTransientError(
                    f"Secondary rate limit: {message}",
                    status_code=status,
                    retry_after=_parse_seconds(retry_after),
                )
            return GitHubAuthenticationError(f"Access forbidden: {message}", status)
        if status == 401:
            return GitHubAuthenticationError(f"Bad credentials: {message}", status)
        if status in (404, 410):
            return GitHubNotFoundError(
                f"Not found: {response.request.url.path} ({message})", status
            )
        if status >= 500:
            return GitHubTransientError(f"GitHub server error ({status}): {message}", status)
        return GitHubValidationError(f"GitHub API error ({status}): {message}", status)

    def _reset_time(self, headers: Mapping[str, str]) -> datetime:
        """Reset time from headers, else the last known quota, else an hour out."""
        try:
            reset_ts = int(headers.get("x-ratelimit-reset", "0"))
        except ValueError:
            reset_ts = 0
        if reset_ts > 0:
            return datetime.fromtimestamp(reset_ts, tz=UTC)
        quota = self._quota.quota
        if quota is not None:
            return quota.reset_at
        return datetime.now(UTC) + UNKNOWN_RESET_WAIT

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------
    async def paginate(
        self,
        fetch_page: PageFetcher,
        per_page: int | None = None,
    ) -> AsyncIterator[list[Any]]:
        """Yield pages lazily; page N+1 is only requested when pulled for.

        Iteration ends after the first page holding fewer than per_page
        items. Empty pages are not yielded. Stop iterating to cancel.

        Args:
            fetch_page: Coroutine factory taking (page, per_page)
            per_page: Page size (defaults to the client's page size)
        """
        size = per_page or self._page_size
        page = 1
        while True:
            response = await self.execute(partial(fetch_page, page, size))
            items = _json(response)
            if not isinstance(items, list):
                raise GitHubValidationError(
                    f"Expected a list page from {response.request.url.path}",
                    response.status_code,
                )
            if items:
                yield items
            if len(items) < size:
                return
            page += 1

    def _page_fetcher(self, path: str, params: Mapping[str, Any] | None = None) -> PageFetcher:
        base_params = dict(params or {})

        async def fetch(page: int, per_page: int) -> httpx.Response:
            return await self._http.get(
                path, params={**base_params, "page": page, "per_page": per_page}
            )

        return fetch

    async def _iter_models(
        self,
        path: str,
        model: type[ModelT],
        params: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[ModelT]:
        """Iterate validated items across pages, skipping malformed entries."""
        async for page in self.paginate(self._page_fetcher(path, params)):
            for raw in page:
                try:
                    yield model.model_validate(raw)
                except ValidationError as e:
                    self._malformed_entries += 1
                    logger.warning(
                        "Skipping malformed {} from {} ({} validation errors)",
                        model.__name__,
                        path,
                        e.error_count(),
                    )

    async def _list_models(
        self,
        path: str,
        model: type[ModelT],
        params: Mapping[str, Any] | None = None,
    ) -> list[ModelT]:
        return [item async for item in self._iter_models(path, model, params)]

    async def _get_model(
        self,
        path: str,
        model: type[ModelT],
        params: Mapping[str, Any] | None = None,
        *,
        pool: RateLimitPool | None = RateLimitPool.CORE,
    ) -> ModelT:
        """Fetch a single object; a malformed payload is a validation error."""
        response = await self.execute(partial(self._http.get, path, params=params), pool=pool)
        try:
            return model.model_validate(response.json())
        except ValueError as e:
            raise GitHubValidationError(
                f"Malformed {model.__name__} payload from {path}",
                response.status_code,
            ) from e

    # -------------------------------------------------------------------------
    # Quota
    # -------------------------------------------------------------------------
    async def refresh_quota(self) -> Quota | None:
        """Fetch current quotas from /rate_limit (does not count against quota).

        Returns:
            The core pool quota
        """
        response = await self.execute(partial(self._http.get, "/rate_limit"), pool=None)
        data = _json(response)
        if not isinstance(data, dict):
            raise GitHubValidationError("Malformed /rate_limit payload", response.status_code)
        try:
            snapshot = QuotaSnapshot.from_api_response(data)
        except (KeyError, TypeError, ValueError) as e:
            raise GitHubValidationError("Malformed /rate_limit payload") from e
        self._quota.update_from_snapshot(snapshot)
        return snapshot.get_core()

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------
    def iter_pull_requests(
        self,
        owner: str,
        repo: str,
        *,
        state: PRState = "all",
        sort: Literal["created", "updated", "popularity", "long-running"] = "updated",
        direction: Literal["asc", "desc"] = "desc",
    ) -> AsyncIterator[GitHubPullRequest]:
        """Iterate over pull requests lazily (list data; stats are zero).

        Break out of the loop to stop fetching further pages.
        """
        return self._iter_models(
            f"/repos/{owner}/{repo}/pulls",
            GitHubPullRequest,
            {"state": state, "sort": sort, "direction": direction},
        )

    async def get_pull_request(self, owner: str, repo: str, number: int) -> GitHubPullRequest:
        """Get full details for a single pull request.

        Raises:
            GitHubNotFoundError: If PR doesn't exist
        """
        return await self._get_model(f"/repos/{owner}/{repo}/pulls/{number}", GitHubPullRequest)

    async def list_reviews(self, owner: str, repo: str, number: int) -> list[GitHubReview]:
        return await self._list_models(f"/repos/{owner}/{repo}/pulls/{number}/reviews", GitHubReview)

    async def list_issue_comments(
        self, owner: str, repo: str, number: int
    ) -> list[GitHubComment]:
        return await self._list_models(
            f"/repos/{owner}/{repo}/issues/{number}/comments", GitHubComment
        )

    async def list_review_comments(
        self, owner: str, repo: str, number: int
    ) -> list[GitHubComment]:
        return await self._list_models(
            f"/repos/{owner}/{repo}/pulls/{number}/comments", GitHubComment
        )

    async def list_pull_request_commits(
        self, owner: str, repo: str, number: int
    ) -> list[GitHubCommit]:
        return await self._list_models(f"/repos/{owner}/{repo}/pulls/{number}/commits", GitHubCommit)

    # -------------------------------------------------------------------------
    # Commits & Repositories
    # -------------------------------------------------------------------------
    def iter_commits(
        self,
        owner: str,
        repo: str,
        *,
        sha: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> AsyncIterator[GitHubCommit]:
        """Iterate over commits of a branch, newest first, filtered by commit date."""
        params: dict[str, Any] = {}
        if sha:
            params["sha"] = sha
        if since:
            params["since"] = _isoformat(since)
        if until:
            params["until"] = _isoformat(until)
        return self._iter_models(f"/repos/{owner}/{repo}/commits", GitHubCommit, params)

    async def get_commit(self, owner: str, repo: str, sha: str) -> GitHubCommit:
        """Get a single commit including stats and files."""
        return await self._get_model(f"/repos/{owner}/{repo}/commits/{sha}", GitHubCommit)

    async def get_repository(self, owner: str, repo: str) -> GitHubRepository:
        return await self._get_model(f"/repos/{owner}/{repo}", GitHubRepository)

    def iter_org_repositories(self, organization: str) -> AsyncIterator[GitHubRepository]:
        """Iterate over every repository of an organization, by full name."""
        return self._iter_models(
            f"/orgs/{organization}/repos",
            GitHubRepository,
            {"type": "all", "sort": "full_name", "direction": "asc"},
        )

    # -------------------------------------------------------------------------
    # Exact Counts (search API)
    # -------------------------------------------------------------------------
    async def search_count(
        self,
        query: str,
        kind: Literal["issues", "commits"] = "issues",
    ) -> int:
        """Total matches for a search query, in a single request."""
        result = await self._get_model(
            f"/search/{kind}",
            GitHubSearchResult,
            {"q": query, "per_page": 1},
            pool=RateLimitPool.SEARCH,
        )
        return result.total_count

    async def count_pull_requests(self, owner: str, repo: str, window: DateRange) -> int:
        """Pull requests updated within the window."""
        return await self.search_count(
            f"repo:{owner}/{repo} is:pr updated:{window.start.isoformat()}..{window.end.isoformat()}"
        )

    async def count_commits(self, owner: str, repo: str, window: DateRange) -> int:
        """Default-branch commits committed within the window."""
        return await self.search_count(
            f"repo:{owner}/{repo} "
            f"committer-date:{window.start.isoformat()}..{window.end.isoformat()}",
            kind="commits",
        )


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise GitHubValidationError(
            f"Invalid JSON from {response.request.url.path}", response.status_code
        ) from e


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def _parse_seconds(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
