"""Engine and session handling for the estimation history database."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import pool
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from issue_cost_estimator.config import get_settings
from issue_cost_estimator.db.models import Base

# Created on first use from Settings.database_url
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(database_url: str) -> dict[str, Any]:
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite"):
        return {"pool_pre_ping": True}

    # File databases: make sure the directory exists and avoid pooled
    # connections holding the SQLite write lock between sessions.
    if url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        return {"poolclass": pool.NullPool}
    return {}


def get_engine() -> AsyncEngine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        database_url = get_settings().database_url
        _engine = create_async_engine(database_url, **_engine_options(database_url))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits when the block exits cleanly and rolls back otherwise.

    Usage:
        async with get_session() as session:
            runs = await EstimationRunRepository(session).list_recent()
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def create_tables() -> None:
    """Create the history tables that don't exist yet."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    """Drop the history tables and everything in them (tests only)."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine (app shutdown)."""
    global _engine, _async_session_factory
    engine, _engine, _async_session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()
