"""Core database package: declarative base, mixins, column types and repository."""

from elearning_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDPKMixin,
)
from elearning_service.core.database.repository import BaseRepository
from elearning_service.core.database.types import UTCDateTime

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDPKMixin",
]
