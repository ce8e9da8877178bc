"""Quizzes feature: models, repository and the expiry sweep."""

from elearning_service.features.quizzes.models import (
    AttemptStatus,
    Quiz,
    QuizAttempt,
    QuizStatus,
)
from elearning_service.features.quizzes.repository import QuizRepository, get_quiz_repository
from elearning_service.features.quizzes.service import QuizExpiryService, SweepResult

__all__ = [
    "AttemptStatus",
    "Quiz",
    "QuizAttempt",
    "QuizExpiryService",
    "QuizRepository",
    "QuizStatus",
    "SweepResult",
    "get_quiz_repository",
]
