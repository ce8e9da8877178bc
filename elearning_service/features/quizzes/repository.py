"""Repository for the quizzes feature.

Every write here is a single filtered ``UPDATE ... WHERE``: rows are never
read, modified in Python and written back, so a concurrent writer can only
make a scheduler update match fewer rows, never clobber newer data.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update

from elearning_service.core.database.repository import BaseRepository
from elearning_service.features.quizzes.models import (
    CLOSABLE_STATUSES,
    Quiz,
    QuizAttempt,
    QuizStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql.elements import ColumnElement

_NO_SYNC = {"synchronize_session": False}


def _expired_predicate(now: datetime) -> ColumnElement[bool]:
    """Quizzes past their deadline that are still open."""
    return (
        (Quiz.close_date <= now)
        & Quiz.status.in_(CLOSABLE_STATUSES)
        & Quiz.is_active.is_(True)
    )


class QuizRepository(BaseRepository[Quiz]):
    """Queries and bulk transitions used by the deadline scheduler.

    Inherits from BaseRepository:
        - get(session, id) -> Quiz | None
        - create(session, instance) -> Quiz
        - create_many(session, instances) -> Sequence[Quiz]

    Writes flush through the session; the caller owns the transaction.
    """

    def __init__(self) -> None:
        super().__init__(Quiz)

    async def find_expired_active(self, session: AsyncSession, now: datetime) -> Sequence[Quiz]:
        """Find open quizzes whose ``close_date`` is at or before ``now``.

        Args:
            session: Database session
            now: Reference time of the sweep

        Returns:
            Matching quizzes ordered by close date
        """
        stmt = select(Quiz).where(_expired_predicate(now)).order_by(Quiz.close_date.asc())
        result = await session.execute(stmt)
        items = result.scalars().all()
        self._logger.debug("db.find_expired_active: %d expired as of %s", len(items), now)
        return items

    async def bulk_update_attempts(
        self,
        session: AsyncSession,
        quiz_id: UUID,
        from_status: str,
        values: dict[str, Any],
    ) -> int:
        """Update every attempt of ``quiz_id`` currently in ``from_status``.

        Filtering on the current status is what keeps terminal attempts
        untouched: an attempt submitted a moment before the sweep keeps its
        own end and submission times.

        Returns:
            Number of attempts updated
        """
        stmt = (
            update(QuizAttempt)
            .where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.status == from_status)
            .values(**values)
            .execution_options(**_NO_SYNC)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def bulk_close(
        self,
        session: AsyncSession,
        quiz_ids: Iterable[UUID],
        *,
        now: datetime,
    ) -> int:
        """Close the given quizzes if they still match the expiry predicate.

        Returns:
            Number of quizzes closed
        """
        ids = list(quiz_ids)
        if not ids:
            return 0
        stmt = (
            update(Quiz)
            .where(Quiz.id.in_(ids), _expired_predicate(now))
            .values(status=QuizStatus.CLOSED, is_active=False)
            .execution_options(**_NO_SYNC)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def find_upcoming_deadlines(
        self,
        session: AsyncSession,
        now: datetime,
        window: timedelta,
    ) -> Sequence[Quiz]:
        """Find active quizzes closing within ``(now, now + window]`` that were not reminded yet."""
        stmt = (
            select(Quiz)
            .where(
                Quiz.close_date > now,
                Quiz.close_date <= now + window,
                Quiz.status == QuizStatus.ACTIVE,
                Quiz.is_active.is_(True),
                Quiz.reminder_sent_at.is_(None),
            )
            .order_by(Quiz.close_date.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def mark_reminded(
        self,
        session: AsyncSession,
        quiz_ids: Iterable[UUID],
        now: datetime,
    ) -> int:
        """Stamp ``reminder_sent_at`` on quizzes that have not been stamped yet."""
        ids = list(quiz_ids)
        if not ids:
            return 0
        stmt = (
            update(Quiz)
            .where(Quiz.id.in_(ids), Quiz.reminder_sent_at.is_(None))
            .values(reminder_sent_at=now)
            .execution_options(**_NO_SYNC)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0


_quiz_repository: QuizRepository | None = None


def get_quiz_repository() -> QuizRepository:
    """Get the shared QuizRepository instance."""
    global _quiz_repository
    if _quiz_repository is None:
        _quiz_repository = QuizRepository()
    return _quiz_repository
