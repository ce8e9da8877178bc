"""Database engine and session management.

The engine is created by ``init_database()`` at startup rather than at import
time, so importing models or services never requires a configured database.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from elearning_service.core.exceptions import ServiceUnavailableException

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy import MetaData

    from elearning_service.core.settings.database import DatabaseSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(db_settings: DatabaseSettings) -> AsyncEngine:
    """Create an async engine from settings without connecting."""
    kwargs: dict[str, Any] = {"echo": db_settings.echo}
    if not db_settings.is_sqlite:
        kwargs["pool_pre_ping"] = db_settings.pool_pre_ping
    return create_async_engine(db_settings.database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the scheduler services and request handlers."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database not initialized: call init_database() first"
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        msg = "Database not initialized: call init_database() first"
        raise RuntimeError(msg)
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(Quiz))
            quizzes = result.scalars().all()
    """
    async with get_session_factory()() as session:
        yield session


async def check_database() -> bool:
    """Run ``SELECT 1`` against the current engine."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def create_schema(metadata: MetaData) -> None:
    """Create missing tables. Intended for SQLite and local development."""
    async with get_engine().begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Database schema ensured", extra={"tables": len(metadata.tables)})


async def init_database(db_settings: DatabaseSettings) -> AsyncEngine:
    """Create the engine and verify connectivity.

    A failed check is fatal for the process: the caller logs and exits.

    Raises:
        ServiceUnavailableException: If the database cannot be reached within
            ``connect_timeout`` seconds.
    """
    global _engine, _session_factory

    safe_url = make_url(db_settings.database_url).render_as_string(hide_password=True)
    logger.info("Initializing database connection", extra={"url": safe_url})

    engine = build_engine(db_settings)
    _engine = engine
    _session_factory = build_session_factory(engine)

    try:
        await asyncio.wait_for(check_database(), timeout=db_settings.connect_timeout)
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"url": safe_url, "error": str(e)},
        )
        await close_database()
        raise ServiceUnavailableException(
            detail="Database connection failed",
            type="database-unavailable",
            extra={"url": safe_url},
        ) from e

    logger.info("Database connection established", extra={"url": safe_url})
    return engine


async def close_database() -> None:
    """Dispose the engine. Safe to call when never initialized."""
    global _engine, _session_factory

    if _engine is None:
        return

    logger.info("Closing database connection")
    try:
        await _engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
    finally:
        _engine = None
        _session_factory = None
