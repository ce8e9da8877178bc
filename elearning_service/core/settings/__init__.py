"""Modular Pydantic Settings v2 configuration.

One frozen settings model per domain (app/db/logging/realtime/scheduler), read
from environment variables and an optional .env file, exposed through cached
loaders:

    from elearning_service.core.settings import get_app_settings
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_realtime_settings,
    get_scheduler_settings,
)
from .logs import LoggingSettings
from .realtime import RealtimeSettings
from .scheduler import SchedulerSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "RealtimeSettings",
    "SchedulerSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_realtime_settings",
    "get_scheduler_settings",
]
