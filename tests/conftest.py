"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM and repository tests: use the db_session fixture
- For GitHub API payloads: import dict factories from tests.factories
- For orchestrator tests: use FakeFetcher and make_mock_client from tests.factories
"""

from datetime import UTC, date, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from activity_sync.config import get_settings
from activity_sync.db.models import Base
from activity_sync.schemas import ResourceType, SyncUnit

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# All hardcoded dates should reference these constants for consistency.
# -----------------------------------------------------------------------------

# Calendar days (coverage keys)
JAN_01 = date(2025, 1, 1)
JAN_02 = date(2025, 1, 2)
JAN_03 = date(2025, 1, 3)
JAN_04 = date(2025, 1, 4)
JAN_05 = date(2025, 1, 5)
JAN_06 = date(2025, 1, 6)
JAN_07 = date(2025, 1, 7)

# Timestamps (datetime objects for Pydantic/ORM)
JAN_03_NOON = datetime(2025, 1, 3, 12, 0, 0, tzinfo=UTC)
JAN_06_NOON = datetime(2025, 1, 6, 12, 0, 0, tzinfo=UTC)

# ISO 8601 strings (for GitHub API mocks)
DEC_20_ISO = "2024-12-20T10:00:00Z"      # Before every test window
JAN_02_ISO = "2025-01-02T09:00:00Z"
JAN_03_ISO = "2025-01-03T10:00:00Z"
JAN_03_LATE_ISO = "2025-01-03T23:30:00Z"  # Late evening, still Jan 3 in UTC
JAN_04_ISO = "2025-01-04T15:00:00Z"
JAN_05_ISO = "2025-01-05T16:00:00Z"
JAN_06_ISO = "2025-01-06T11:00:00Z"
JAN_09_ISO = "2025-01-09T08:00:00Z"      # After every test window


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    Each test gets a fresh database with all tables created.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create an async session with auto-rollback.

    Changes are rolled back after each test to ensure isolation.
    """
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


# -----------------------------------------------------------------------------
# Settings Isolation
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start and end every test uncached."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -----------------------------------------------------------------------------
# Sync Units
# -----------------------------------------------------------------------------
@pytest.fixture
def pr_unit() -> SyncUnit:
    """Pull request unit for prebid/prebid-server."""
    return SyncUnit(ResourceType.PULL_REQUESTS.value, "prebid", "prebid-server")


@pytest.fixture
def commit_unit() -> SyncUnit:
    """Commit unit for prebid/prebid-server."""
    return SyncUnit(ResourceType.COMMITS.value, "prebid", "prebid-server")


@pytest.fixture
def items_unit() -> SyncUnit:
    """Generic unit served by FakeFetcher."""
    return SyncUnit("items", "orgX", "repoY")


# -----------------------------------------------------------------------------
# Utility Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def utc_now() -> datetime:
    """Current UTC datetime for tests."""
    return datetime.now(UTC)
