"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Usage:
    from elearning_service.core.settings.loader import get_app_settings

    settings = get_app_settings()  # First call: loads and validates
    settings = get_app_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    clear_all_caches()
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import ValidationError

from elearning_service.core.exceptions import ConfigurationError

from .app import AppSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .realtime import RealtimeSettings
from .scheduler import SchedulerSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings.

    Returns:
        Validated and frozen AppSettings instance.
    """
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.

    Raises:
        ConfigurationError: If DB_DATABASE_URL is missing or invalid.
    """
    try:
        return DatabaseSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        missing = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        raise ConfigurationError(
            "Invalid database configuration",
            settings_prefix="DB_",
            fields=missing,
        ) from exc


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_realtime_settings() -> RealtimeSettings:
    """Get cached realtime client settings."""
    return RealtimeSettings()


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """Get cached scheduler settings."""
    return SchedulerSettings()


def clear_all_caches() -> None:
    """Clear all settings caches.

    In production, prefer process restarts over cache clearing.
    """
    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_realtime_settings.cache_clear()
    get_scheduler_settings.cache_clear()
