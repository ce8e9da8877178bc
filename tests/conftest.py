"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings defaults so no test needs external infrastructure
    - Application Fixtures: FastAPI app and HTTP client
    - Database Fixtures: in-memory SQLite engine and session factory
    - Data Fixtures: quiz and attempt factories
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

    from elearning_service.features.quizzes.models import Quiz, QuizAttempt

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("SCHEDULER_TIMEZONE", "UTC")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Reload settings for every test so monkeypatched env vars take effect."""
    from elearning_service.core.settings import clear_all_caches

    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def now() -> datetime:
    """Fixed sweep reference time."""
    return NOW


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app() -> FastAPI:
    """Fresh application instance. The lifespan is not run by ASGITransport."""
    from elearning_service.app.main import create_app

    return create_app()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """HTTPX client bound to the app.

    Unhandled exceptions are rendered by the 500 handler instead of being
    re-raised into the test.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with every table created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    from elearning_service.core.database.base import Base
    from elearning_service.features.quizzes import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
def make_quiz(session_factory: async_sessionmaker[AsyncSession]):
    """Factory persisting a quiz (and optional attempts) in its own transaction.

    Example:
        quiz = await make_quiz(close_date=now - timedelta(hours=1), attempts=["in_progress"])
    """
    from elearning_service.core.database import BaseRepository
    from elearning_service.features.quizzes import get_quiz_repository
    from elearning_service.features.quizzes.models import Quiz, QuizAttempt, QuizStatus

    quizzes = get_quiz_repository()
    attempts_repo = BaseRepository(QuizAttempt)

    async def _make(
        *,
        close_date: datetime,
        status: str = QuizStatus.ACTIVE,
        is_active: bool = True,
        attempts: list[str] | None = None,
        **fields: Any,
    ) -> tuple[Quiz, list[QuizAttempt]]:
        quiz = Quiz(
            title=fields.pop("title", "Weekly quiz"),
            course_id=fields.pop("course_id", "course-1"),
            close_date=close_date,
            status=status,
            is_active=is_active,
            **fields,
        )
        async with session_factory() as session, session.begin():
            await quizzes.create(session, quiz)
            created = await attempts_repo.create_many(
                session,
                [
                    QuizAttempt(
                        quiz_id=quiz.id,
                        student_id=f"student-{index}",
                        status=attempt_status,
                        start_time=close_date - timedelta(minutes=30),
                    )
                    for index, attempt_status in enumerate(attempts or [])
                ],
            )
        return quiz, list(created)

    return _make
