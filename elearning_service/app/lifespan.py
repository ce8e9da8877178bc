"""Application lifespan management.

Startup order:
1. Core (logging)
2. Database: required; a failure aborts startup
3. Deadline scheduler: expiry sweep and daily reminders

Shutdown runs in reverse: scheduler stopped, then the engine disposed.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING

from elearning_service.core.database.base import Base
from elearning_service.core.settings import (
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_scheduler_settings,
)
from elearning_service.features.quizzes.service import QuizExpiryService
from elearning_service.features.reminders.service import DeadlineReminderService
from elearning_service.infra.database.session import (
    close_database,
    create_schema,
    get_session_factory,
    init_database,
)
from elearning_service.infra.logging.config import setup_logging
from elearning_service.infra.tasks.scheduler import DeadlineScheduler

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


async def _startup_core() -> None:
    """Configure logging."""
    app = get_app_settings()
    setup_logging(log_settings=get_logging_settings(), force=True)
    logger.info(
        "Application starting",
        extra={"service": app.service_name, "environment": app.environment},
    )


async def _startup_database() -> None:
    """Connect to the database. Missing configuration or connectivity is fatal."""
    db = get_db_settings()
    await init_database(db)

    if db.create_schema:
        await create_schema(Base.metadata)


def build_scheduler() -> DeadlineScheduler:
    """Wire the deadline services onto the current session factory."""
    settings = get_scheduler_settings()
    session_factory = get_session_factory()
    return DeadlineScheduler(
        expiry_service=QuizExpiryService(session_factory),
        reminder_service=DeadlineReminderService(
            session_factory,
            window=timedelta(hours=settings.reminder_window_hours),
        ),
        settings=settings,
    )


async def _startup_scheduler(app: FastAPI) -> DeadlineScheduler:
    scheduler = build_scheduler()
    app.state.scheduler = scheduler

    if not scheduler.settings.enabled:
        logger.info("Deadline scheduler disabled")
        return scheduler

    await scheduler.start()
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    # =========================================================================
    # STARTUP PHASE
    # =========================================================================

    await _startup_core()

    try:
        await _startup_database()
    except Exception as e:
        logger.critical(
            "Database required but unavailable, failing startup",
            extra={"error": str(e)},
        )
        raise

    scheduler = await _startup_scheduler(app)

    app_settings = get_app_settings()
    logger.info(
        "Application is LIVE and ready to serve requests on http://%s:%s",
        app_settings.host,
        app_settings.port,
        extra={
            "service": app_settings.service_name,
            "environment": app_settings.environment,
            "version": app_settings.version,
            "scheduler_enabled": scheduler.settings.enabled,
        },
    )

    # =========================================================================
    # APPLICATION RUNTIME
    # =========================================================================

    yield

    # =========================================================================
    # SHUTDOWN PHASE - reverse order
    # =========================================================================

    logger.info("Application shutting down", extra={"service": app_settings.service_name})

    try:
        await scheduler.stop()
    except Exception as e:
        logger.exception("Error stopping deadline scheduler", extra={"error": str(e)})

    await close_database()
    logger.info("Application shutdown complete")
