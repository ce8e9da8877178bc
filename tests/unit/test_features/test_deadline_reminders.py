"""Tests for the deadline reminder pass."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from elearning_service.features.quizzes.models import Quiz, QuizStatus
from elearning_service.features.reminders.notifier import DeadlineNotifier, LoggingNotifier
from elearning_service.features.reminders.service import DeadlineReminderService


@pytest.mark.unit
class TestDeadlineReminderService:
    """Tests for DeadlineReminderService.send_deadline_reminders."""

    @pytest.mark.asyncio
    async def test_reminds_quizzes_inside_window_once(
        self, session_factory, make_quiz, now: datetime
    ):
        soon, _ = await make_quiz(close_date=now + timedelta(hours=3))
        notifier = AsyncMock(spec=DeadlineNotifier)
        service = DeadlineReminderService(session_factory, notifier=notifier)

        first = await service.send_deadline_reminders(now)
        second = await service.send_deadline_reminders(now + timedelta(hours=1))

        assert first.reminded == [soon.id]
        assert second.sent == 0
        notifier.notify.assert_awaited_once()
        async with session_factory() as session:
            stored = await session.get(Quiz, soon.id)
        assert stored.reminder_sent_at == now

    @pytest.mark.asyncio
    async def test_window_bounds(self, session_factory, make_quiz, now: datetime):
        edge, _ = await make_quiz(close_date=now + timedelta(hours=24))
        await make_quiz(close_date=now + timedelta(hours=24, seconds=1))
        await make_quiz(close_date=now)
        await make_quiz(close_date=now + timedelta(hours=2), status=QuizStatus.DRAFT)
        await make_quiz(close_date=now + timedelta(hours=2), is_active=False)
        service = DeadlineReminderService(session_factory, notifier=AsyncMock())

        result = await service.send_deadline_reminders(now)

        assert result.reminded == [edge.id]

    @pytest.mark.asyncio
    async def test_custom_window(self, session_factory, make_quiz, now: datetime):
        await make_quiz(close_date=now + timedelta(hours=3))
        service = DeadlineReminderService(
            session_factory, notifier=AsyncMock(), window=timedelta(hours=1)
        )

        result = await service.send_deadline_reminders(now)

        assert result.sent == 0

    @pytest.mark.asyncio
    async def test_notifier_failure_leaves_quiz_for_next_pass(
        self, session_factory, make_quiz, now: datetime
    ):
        failing, _ = await make_quiz(close_date=now + timedelta(hours=1), title="A")
        working, _ = await make_quiz(close_date=now + timedelta(hours=2), title="B")

        async def notify(quiz, *, now):
            if quiz.title == "A":
                raise ConnectionError("smtp down")

        notifier = AsyncMock()
        notifier.notify.side_effect = notify
        service = DeadlineReminderService(session_factory, notifier=notifier)

        result = await service.send_deadline_reminders(now)

        assert result.reminded == [working.id]
        assert result.failed == [failing.id]

        notifier.notify.side_effect = None
        retry = await service.send_deadline_reminders(now)
        assert retry.reminded == [failing.id]

    @pytest.mark.asyncio
    async def test_notifier_runs_outside_database_session(
        self, db_engine, make_quiz, now: datetime
    ):
        quiz, _ = await make_quiz(close_date=now + timedelta(hours=2))
        open_sessions: list[AsyncSession] = []

        class TrackingSession(AsyncSession):
            async def __aenter__(self):
                open_sessions.append(self)
                return await super().__aenter__()

            async def __aexit__(self, *exc_info):
                open_sessions.remove(self)
                return await super().__aexit__(*exc_info)

        seen: list[int] = []

        async def notify(_quiz, *, now):
            seen.append(len(open_sessions))

        notifier = AsyncMock()
        notifier.notify.side_effect = notify
        factory = async_sessionmaker(db_engine, class_=TrackingSession, expire_on_commit=False)
        service = DeadlineReminderService(factory, notifier=notifier)

        result = await service.send_deadline_reminders(now)

        assert result.reminded == [quiz.id]
        assert seen == [0]
        assert open_sessions == []


@pytest.mark.unit
class TestLoggingNotifier:
    """Tests for the default notifier."""

    @pytest.mark.asyncio
    async def test_logs_reminder(self, caplog: pytest.LogCaptureFixture, now: datetime):
        caplog.set_level(logging.INFO, logger="elearning_service.features.reminders.notifier")
        quiz = Quiz(
            title="Final exam",
            course_id="course-9",
            close_date=now + timedelta(hours=6),
        )

        await LoggingNotifier().notify(quiz, now=now)

        record = next(r for r in caplog.records if r.getMessage() == "Quiz deadline approaching")
        assert record.course_id == "course-9"
        assert record.hours_remaining == 6.0

    def test_satisfies_protocol(self):
        assert isinstance(LoggingNotifier(), DeadlineNotifier)
