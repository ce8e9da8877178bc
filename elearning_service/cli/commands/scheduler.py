"""Deadline scheduler commands.

Run the expiry sweep or the reminder pass once against the configured
database, or preview upcoming fire times.
"""

from __future__ import annotations

import sys
from datetime import datetime

import click

from elearning_service.cli.utils import coro, error, header, info, success, warning
from elearning_service.core.exceptions import (
    ConfigurationError,
    SchedulerSweepError,
    ServiceUnavailableException,
)
from elearning_service.core.settings import get_db_settings


async def _open_database() -> None:
    from elearning_service.core.database import Base
    from elearning_service.infra.database import create_schema, init_database

    try:
        db_settings = get_db_settings()
        await init_database(db_settings)
    except ConfigurationError as e:
        error(str(e))
        sys.exit(1)
    except ServiceUnavailableException as e:
        error(f"Database unavailable: {e.detail}")
        sys.exit(1)

    if db_settings.create_schema:
        await create_schema(Base.metadata)


def _parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--now") from e
    if parsed.tzinfo is None:
        raise click.BadParameter(
            "must include a UTC offset, e.g. 2025-03-01T09:00:00+00:00", param_hint="--now"
        )
    return parsed


@click.group(name="scheduler")
def scheduler() -> None:
    """Quiz deadline job commands."""


@scheduler.command(name="sweep")
@click.option("--now", "now_value", default=None, help="Override the current time (ISO 8601)")
@coro
async def sweep(now_value: str | None) -> None:
    """Close expired quizzes and auto-submit their in-progress attempts."""
    from elearning_service.app.lifespan import build_scheduler
    from elearning_service.infra.database import close_database

    now = _parse_now(now_value)
    await _open_database()
    try:
        result = await build_scheduler().run_expiry_sweep(now)
    except SchedulerSweepError as e:
        error(str(e))
        sys.exit(1)
    finally:
        await close_database()

    if not result.wrote:
        info("No expired quizzes")
        return
    success(
        f"Closed {result.quizzes_closed} quizzes, "
        f"auto-submitted {result.attempts_auto_submitted} attempts"
    )


@scheduler.command(name="remind")
@click.option("--now", "now_value", default=None, help="Override the current time (ISO 8601)")
@coro
async def remind(now_value: str | None) -> None:
    """Send reminders for quizzes closing within the reminder window."""
    from elearning_service.app.lifespan import build_scheduler
    from elearning_service.infra.database import close_database

    now = _parse_now(now_value)
    await _open_database()
    try:
        result = await build_scheduler().run_deadline_reminders(now)
    except SchedulerSweepError as e:
        error(str(e))
        sys.exit(1)
    finally:
        await close_database()

    if result.failed:
        warning(f"{len(result.failed)} reminders failed and will be retried next run")
    success(f"Sent {result.sent} reminders")


@scheduler.command(name="next-runs")
@click.option("--count", default=3, show_default=True, type=click.IntRange(min=1))
def next_runs(count: int) -> None:
    """Show upcoming fire times for both jobs without touching the database."""
    from elearning_service.core.settings import get_scheduler_settings
    from elearning_service.infra.tasks import DeadlineScheduler

    # Services are never invoked by a preview.
    preview = DeadlineScheduler(
        expiry_service=None,  # type: ignore[arg-type]
        reminder_service=None,  # type: ignore[arg-type]
        settings=get_scheduler_settings(),
    ).preview_runs(count=count)

    for job_id, runs in preview.items():
        header(job_id)
        for run in runs:
            click.echo(f"  {run.isoformat()}")
