"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from elearning_service.core.settings import get_app_settings
from elearning_service.features.health.router import router as health_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from elearning_service.core.settings.app import AppSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, app_settings: AppSettings | None = None) -> None:
    """Register all feature routers with the application.

    Args:
        app: FastAPI application instance.
        app_settings: Optional application settings override for the API prefix.
    """
    app_settings = app_settings or get_app_settings()
    api_prefix = app_settings.api_prefix

    app.include_router(health_router, prefix=api_prefix, tags=["health"])

    logger.debug("Routers registered", extra={"api_prefix": api_prefix})
