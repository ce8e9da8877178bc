"""Daily deadline reminder pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from elearning_service.core.services.base import BaseService
from elearning_service.features.quizzes.repository import QuizRepository, get_quiz_repository
from elearning_service.features.quizzes.service import utc_now
from elearning_service.features.reminders.notifier import DeadlineNotifier, LoggingNotifier

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@dataclass(slots=True)
class ReminderResult:
    """Outcome of one reminder pass."""

    now: datetime
    reminded: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return len(self.reminded)


class DeadlineReminderService(BaseService):
    """Reminds about active quizzes closing within the reminder window.

    Only quizzes with no ``reminder_sent_at`` are selected, and the stamp is
    written with a filtered update after the notifier succeeds. Notifiers run
    with no session open; the stamp gets its own short transaction. Delivery
    is at-least-once: if stamping fails, the next pass reminds again.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: DeadlineNotifier | None = None,
        repository: QuizRepository | None = None,
        window: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._notifier = notifier or LoggingNotifier()
        self._repository = repository or get_quiz_repository()
        self._window = window
        self._clock = clock

    async def send_deadline_reminders(self, now: datetime | None = None) -> ReminderResult:
        """Notify for every quiz closing in ``(now, now + window]``.

        A notifier failure for one quiz is logged and the pass continues with
        the rest; the failed quiz stays unstamped.
        """
        now = now or self._clock()
        result = ReminderResult(now=now)

        async with self._session_factory() as session:
            upcoming = await self._repository.find_upcoming_deadlines(session, now, self._window)

        for quiz in upcoming:
            try:
                await self._notifier.notify(quiz, now=now)
            except Exception as e:
                self.logger.warning(
                    "Deadline reminder failed",
                    extra={"quiz_id": str(quiz.id), "error": str(e)},
                    exc_info=True,
                )
                result.failed.append(quiz.id)
            else:
                result.reminded.append(quiz.id)

        if result.reminded:
            async with self._session_factory() as session, session.begin():
                await self._repository.mark_reminded(session, result.reminded, now)

        self.logger.info(
            "Deadline reminder pass finished",
            extra={
                "now": now.isoformat(),
                "window_hours": self._window.total_seconds() / 3600,
                "sent": result.sent,
                "failed": len(result.failed),
            },
        )
        return result
