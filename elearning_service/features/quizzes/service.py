"""Quiz expiry: close quizzes past their deadline and auto-submit open attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from elearning_service.core.services.base import BaseService
from elearning_service.features.quizzes.models import AttemptStatus
from elearning_service.features.quizzes.repository import QuizRepository, get_quiz_repository

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class SweepResult:
    """Outcome of one expiry sweep."""

    now: datetime
    quiz_ids: list[UUID] = field(default_factory=list)
    quizzes_closed: int = 0
    attempts_auto_submitted: int = 0

    @property
    def wrote(self) -> bool:
        return bool(self.quizzes_closed or self.attempts_auto_submitted)


class QuizExpiryService(BaseService):
    """Runs the expiry sweep in a single transaction.

    For every open quiz whose deadline has passed, its in-progress attempts
    become ``auto_submitted`` with ``end_time`` and ``submission_time`` set to
    the sweep time, then the quiz becomes ``closed`` and inactive. Running the
    sweep again finds nothing and writes nothing.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: QuizRepository | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._repository = repository or get_quiz_repository()
        self._clock = clock

    async def close_expired(self, now: datetime | None = None) -> SweepResult:
        """Close expired quizzes and auto-submit their open attempts.

        Args:
            now: Sweep reference time; defaults to the service clock.

        Returns:
            What the sweep matched and changed.
        """
        now = now or self._clock()
        result = SweepResult(now=now)

        async with self._session_factory() as session, session.begin():
            expired = await self._repository.find_expired_active(session, now)
            if not expired:
                self.logger.debug("No expired quizzes", extra={"now": now.isoformat()})
                return result

            result.quiz_ids = [quiz.id for quiz in expired]
            for quiz in expired:
                updated = await self._repository.bulk_update_attempts(
                    session,
                    quiz.id,
                    AttemptStatus.IN_PROGRESS,
                    {
                        "status": AttemptStatus.AUTO_SUBMITTED,
                        "end_time": now,
                        "submission_time": now,
                    },
                )
                result.attempts_auto_submitted += updated
                self.logger.info(
                    "Auto-submitted attempts for expired quiz",
                    extra={"quiz_id": str(quiz.id), "attempts": updated},
                )

            result.quizzes_closed = await self._repository.bulk_close(
                session, result.quiz_ids, now=now
            )

        self.logger.info(
            "Quiz expiry sweep finished",
            extra={
                "now": now.isoformat(),
                "quizzes_closed": result.quizzes_closed,
                "attempts_auto_submitted": result.attempts_auto_submitted,
            },
        )
        return result
