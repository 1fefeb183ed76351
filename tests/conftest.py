"""Shared pytest fixtures for the test suite."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from issue_cost_estimator.config import EstimationConfig, RateLimitConfig, Settings, StorageConfig
from issue_cost_estimator.db.models import Base
from issue_cost_estimator.estimation.budgets import resolve_params
from issue_cost_estimator.logging import reset_logging
from issue_cost_estimator.schemas.estimation import EstimationParams
from issue_cost_estimator.schemas.repository import RepoRef

# -----------------------------------------------------------------------------
# Test Timeline Constants
# -----------------------------------------------------------------------------
# All tests use January 2024 as the base timeline for consistency.
#
#   Jan 10 - Issue created
#   Jan 12 - First comment
#   Jan 15 - Second comment / last update
#
JAN_10 = datetime(2024, 1, 10, 10, 0, 0, tzinfo=UTC)
JAN_12 = datetime(2024, 1, 12, 9, 30, 0, tzinfo=UTC)
JAN_15 = datetime(2024, 1, 15, 14, 0, 0, tzinfo=UTC)

JAN_10_ISO = "2024-01-10T10:00:00Z"
JAN_12_ISO = "2024-01-12T09:30:00Z"
JAN_15_ISO = "2024-01-15T14:00:00Z"

# Epoch seconds used as "now" in rate limiter tests
T0 = 1_700_000_000.0


@pytest.fixture(autouse=True)
def _quiet_logging():
    """Start every test without loguru sinks."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for testing."""
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
    """Create a database session for testing."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def session_factory(test_engine):
    """Committing session factory bound to the in-memory engine."""
    maker = async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def _session():
        async with maker() as session:
            yield session
            await session.commit()

    return _session


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        github_token="test-token",
        openai_api_key="test-key",
        storage=StorageConfig(persist_results=False),
        rate_limit=RateLimitConfig(),
        estimation=EstimationConfig(),
    )


@pytest.fixture
def params() -> EstimationParams:
    """Default parameters: 100-1000 USD split into derived tier ranges."""
    return resolve_params(None, EstimationConfig())


@pytest.fixture
def repo() -> RepoRef:
    return RepoRef(owner="octocat", name="hello-world")
