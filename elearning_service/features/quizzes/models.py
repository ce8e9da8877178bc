"""Quiz and quiz attempt database models.

Only the columns the deadline scheduler reads or writes are modelled here;
questions, grading and course structure live elsewhere.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from elearning_service.core.database.base import Base, TimestampMixin, UUIDPKMixin
from elearning_service.core.database.types import UTCDateTime


class QuizStatus(StrEnum):
    """Quiz lifecycle status."""

    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class AttemptStatus(StrEnum):
    """Quiz attempt status. Both submitted states are terminal."""

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto_submitted"


# Statuses the expiry sweep is allowed to close
CLOSABLE_STATUSES: tuple[QuizStatus, ...] = (QuizStatus.ACTIVE, QuizStatus.DRAFT)


class Quiz(Base, UUIDPKMixin, TimestampMixin):
    """A quiz with a hard closing deadline.

    Invariant: a closed quiz is never active (``status == "closed"`` implies
    ``is_active is False``). The expiry sweep writes both columns together.
    """

    __tablename__ = "quizzes"
    __table_args__ = (Index("ix_quizzes_close_date_status", "close_date", "status"),)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    course_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, comment="Owning course (opaque id)",
    )
    close_date: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, comment="Deadline after which attempts are closed",
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=QuizStatus.DRAFT, comment="draft|active|closed",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="When the deadline reminder went out (NULL until then)",
    )

    attempts: Mapped[list[QuizAttempt]] = relationship(
        back_populates="quiz",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Quiz(id={self.id}, title={self.title!r}, status={self.status})>"


class QuizAttempt(Base, UUIDPKMixin, TimestampMixin):
    """One student's attempt at a quiz."""

    __tablename__ = "quiz_attempts"
    __table_args__ = (Index("ix_quiz_attempts_quiz_id_status", "quiz_id", "status"),)

    quiz_id: Mapped[UUID] = mapped_column(
        ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False,
    )
    student_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, comment="Student (opaque id)",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AttemptStatus.IN_PROGRESS,
        comment="in_progress|submitted|auto_submitted",
    )
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    submission_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    quiz: Mapped[Quiz] = relationship(back_populates="attempts")

    def __repr__(self) -> str:
        return f"<QuizAttempt(id={self.id}, quiz_id={self.quiz_id}, status={self.status})>"
