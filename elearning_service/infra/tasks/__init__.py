"""Scheduled background jobs."""

from elearning_service.infra.tasks.scheduler import (
    REMINDER_JOB_ID,
    SWEEP_JOB_ID,
    DeadlineScheduler,
    compute_first_reminder_run,
)

__all__ = [
    "REMINDER_JOB_ID",
    "SWEEP_JOB_ID",
    "DeadlineScheduler",
    "compute_first_reminder_run",
]
