"""Base service class for business logic."""

from __future__ import annotations

import logging


class BaseService:
    """Base class for service classes.

    Provides a logger named after the concrete service class.

    Example:
            class QuizExpiryService(BaseService):
            async def close_expired(self) -> SweepResult:
                self.logger.info("Sweep started", extra={"now": now.isoformat()})
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"elearning_service.services.{self.__class__.__name__}")
