"""Minimal generic repository for SQLAlchemy models.

Provides basic operations with explicit session passing. For complex queries,
use the session directly: this is a convenience, not a cage.

Example:
    class QuizRepository(BaseRepository[Quiz]):
        async def find_open(self, session: AsyncSession) -> Sequence[Quiz]:
            stmt = select(Quiz).where(Quiz.status == QuizStatus.ACTIVE)
            result = await session.execute(stmt)
            return result.scalars().all()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from elearning_service.core.database.base import Base

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Thin repository over one model class.

    Session is always explicit, with no hidden state. Writes flush but never
    commit; transaction boundaries belong to the caller.
    """

    __slots__ = ("model", "_logger")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._logger = logging.getLogger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Get entity by primary key, or None."""
        return await session.get(self.model, id)

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add and flush a new entity so generated columns are populated."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        self._logger.debug("db.create: %s(%s)", self.model.__name__, getattr(instance, "id", None))
        return instance

    async def create_many(self, session: AsyncSession, instances: Iterable[T]) -> Sequence[T]:
        """Add and flush several entities in one round-trip."""
        items = list(instances)
        session.add_all(items)
        await session.flush()
        self._logger.debug("db.create_many: %s -> %d created", self.model.__name__, len(items))
        return items
