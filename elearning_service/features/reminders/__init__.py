"""Deadline reminders: upcoming-deadline pass and notifier protocol."""

from elearning_service.features.reminders.notifier import DeadlineNotifier, LoggingNotifier
from elearning_service.features.reminders.service import DeadlineReminderService, ReminderResult

__all__ = [
    "DeadlineNotifier",
    "DeadlineReminderService",
    "LoggingNotifier",
    "ReminderResult",
]
