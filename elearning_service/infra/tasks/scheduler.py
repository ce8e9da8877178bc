"""APScheduler integration for the quiz deadline jobs.

Two in-process jobs run on the API server's event loop:

- ``quiz_expiry_sweep``: every few minutes, close quizzes past their deadline
  and auto-submit their in-progress attempts.
- ``deadline_reminders``: once a day at a fixed local time, remind about
  quizzes closing within the next window.

The scheduler is a plain object built at the composition root (the FastAPI
lifespan, or the CLI) and driven through ``start()``/``stop()``. There is no
distributed lock: run it on one instance only.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import (
    AsyncIOScheduler,  # type: ignore[import-untyped]
)
from apscheduler.triggers.interval import (
    IntervalTrigger,  # type: ignore[import-untyped]
)

from elearning_service.core.exceptions import SchedulerSweepError
from elearning_service.core.settings.scheduler import SchedulerSettings

if TYPE_CHECKING:
    from elearning_service.features.quizzes.service import QuizExpiryService, SweepResult
    from elearning_service.features.reminders.service import (
        DeadlineReminderService,
        ReminderResult,
    )

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "quiz_expiry_sweep"
REMINDER_JOB_ID = "deadline_reminders"
REMINDER_INTERVAL = timedelta(hours=24)


def compute_first_reminder_run(now: datetime, hour: int = 9, minute: int = 0) -> datetime:
    """First reminder run: today at ``hour:minute`` if still ahead, else tomorrow.

    ``now`` should be timezone-aware in the scheduler's zone; the result keeps
    its tzinfo.

    Example:
            >>> compute_first_reminder_run(datetime(2025, 3, 1, 8, 30))
            datetime.datetime(2025, 3, 1, 9, 0)
            >>> compute_first_reminder_run(datetime(2025, 3, 1, 9, 0))
            datetime.datetime(2025, 3, 2, 9, 0)
    """
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if now < candidate:
        return candidate
    return candidate + timedelta(days=1)


class DeadlineScheduler:
    """Owns the AsyncIOScheduler and the two deadline jobs.

    Scheduled runs never raise: failures are logged as SchedulerSweepError
    and the job keeps its schedule. Manual runs (``run_expiry_sweep()``,
    ``run_deadline_reminders()``) raise SchedulerSweepError to the caller.
    """

    def __init__(
        self,
        expiry_service: QuizExpiryService,
        reminder_service: DeadlineReminderService,
        settings: SchedulerSettings | None = None,
    ) -> None:
        self.settings = settings or SchedulerSettings()
        self._expiry_service = expiry_service
        self._reminder_service = reminder_service

        scheduler_kwargs: dict[str, Any] = {
            "job_defaults": {
                "coalesce": True,  # Combine multiple pending executions into one
                "max_instances": 1,  # Only one instance of each job at a time
                "misfire_grace_time": self.settings.misfire_grace_time,
            },
        }
        if self.settings.timezone:
            scheduler_kwargs["timezone"] = self.settings.timezone
        self._scheduler = AsyncIOScheduler(**scheduler_kwargs)
        self.first_reminder_run: datetime | None = None

    @property
    def timezone(self) -> Any:
        return self._scheduler.timezone

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def now(self) -> datetime:
        """Current time in the scheduler's timezone."""
        return datetime.now(self.timezone)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def build_sweep_trigger(self) -> IntervalTrigger:
        return IntervalTrigger(
            minutes=self.settings.sweep_interval_minutes, timezone=self.timezone
        )

    def build_reminder_trigger(self, now: datetime) -> IntervalTrigger:
        """24 h interval anchored at the first reminder run (no drift correction)."""
        first_run = compute_first_reminder_run(
            now, self.settings.reminder_hour, self.settings.reminder_minute
        )
        return IntervalTrigger(
            seconds=int(REMINDER_INTERVAL.total_seconds()),
            start_date=first_run,
            timezone=self.timezone,
        )

    def setup_jobs(self, now: datetime | None = None) -> None:
        """Register both jobs. ``now`` anchors the first reminder run."""
        now = now or self.now()
        reminder_trigger = self.build_reminder_trigger(now)
        self.first_reminder_run = reminder_trigger.start_date

        self._scheduler.add_job(
            func=self._expiry_job,
            trigger=self.build_sweep_trigger(),
            id=SWEEP_JOB_ID,
            name="Close expired quizzes",
            replace_existing=True,
        )
        # A late daily run still fires; only the sweep may skip a missed run
        self._scheduler.add_job(
            func=self._reminder_job,
            trigger=reminder_trigger,
            id=REMINDER_JOB_ID,
            name="Send deadline reminders",
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )

        logger.info(
            "Deadline jobs scheduled",
            extra={
                "sweep_interval_minutes": self.settings.sweep_interval_minutes,
                "first_reminder_run": self.first_reminder_run.isoformat(),
            },
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, now: datetime | None = None) -> None:
        """Register the jobs and start the scheduler on the running loop.

        Calling start() on a running scheduler only logs a warning.
        """
        if self._scheduler.running:
            logger.warning("Deadline scheduler is already running")
            return

        self.setup_jobs(now)
        self._scheduler.start()
        logger.info(
            "Deadline scheduler started",
            extra={"jobs": len(self._scheduler.get_jobs()), "timezone": str(self.timezone)},
        )

    async def stop(self) -> None:
        """Stop the scheduler. Jobs already running are not awaited."""
        if not self._scheduler.running:
            logger.debug("Deadline scheduler is not running")
            return

        logger.info("Stopping deadline scheduler")
        self._scheduler.shutdown(wait=False)
        logger.info("Deadline scheduler stopped")

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def run_expiry_sweep(self, now: datetime | None = None) -> SweepResult:
        """Run the expiry sweep once.

        Raises:
            SchedulerSweepError: If the sweep failed; its transaction was rolled back.
        """
        try:
            return await self._expiry_service.close_expired(now)
        except Exception as e:
            raise SchedulerSweepError(SWEEP_JOB_ID, e) from e

    async def run_deadline_reminders(self, now: datetime | None = None) -> ReminderResult:
        """Run the reminder pass once.

        Raises:
            SchedulerSweepError: If the pass failed before completing.
        """
        try:
            return await self._reminder_service.send_deadline_reminders(now)
        except Exception as e:
            raise SchedulerSweepError(REMINDER_JOB_ID, e) from e

    async def _expiry_job(self) -> None:
        try:
            await self.run_expiry_sweep()
        except SchedulerSweepError as e:
            logger.error(str(e), extra={"job_id": e.job_id}, exc_info=e.cause)

    async def _reminder_job(self) -> None:
        try:
            await self.run_deadline_reminders()
        except SchedulerSweepError as e:
            logger.error(str(e), extra={"job_id": e.job_id}, exc_info=e.cause)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_job_status(self) -> list[dict[str, Any]]:
        """Get status of all scheduled jobs.

        Returns:
            List of job information dictionaries.
        """
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": next_run.isoformat() if next_run else None,
                    "trigger": str(job.trigger),
                    "misfire_grace_time": getattr(job, "misfire_grace_time", None),
                }
            )
        return jobs

    def preview_runs(self, now: datetime | None = None, count: int = 3) -> dict[str, list[datetime]]:
        """Upcoming fire times of both jobs without starting the scheduler."""
        now = now or self.now()
        triggers = {
            SWEEP_JOB_ID: self.build_sweep_trigger(),
            REMINDER_JOB_ID: self.build_reminder_trigger(now),
        }
        preview: dict[str, list[datetime]] = {}
        for job_id, trigger in triggers.items():
            runs: list[datetime] = []
            previous: datetime | None = None
            cursor = now
            while len(runs) < count:
                fire_time = trigger.get_next_fire_time(previous, cursor)
                if fire_time is None:
                    break
                runs.append(fire_time)
                previous = cursor = fire_time
            preview[job_id] = runs
        return preview
