"""Delivery channel for deadline reminders."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from elearning_service.features.quizzes.models import Quiz

logger = logging.getLogger(__name__)


@runtime_checkable
class DeadlineNotifier(Protocol):
    """Sends one reminder for one quiz.

    Implementations may email, push or emit on the realtime channel. Raising
    marks that quiz as not reminded; it will be picked up by the next pass.
    """

    async def notify(self, quiz: Quiz, *, now: datetime) -> None: ...


class LoggingNotifier:
    """Default notifier: records the reminder in the application log."""

    async def notify(self, quiz: Quiz, *, now: datetime) -> None:
        remaining = quiz.close_date - now
        logger.info(
            "Quiz deadline approaching",
            extra={
                "quiz_id": str(quiz.id),
                "course_id": quiz.course_id,
                "title": quiz.title,
                "close_date": quiz.close_date.isoformat(),
                "hours_remaining": round(remaining.total_seconds() / 3600, 1),
            },
        )
