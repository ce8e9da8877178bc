"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from elearning_service.app.exception_handlers import configure_exception_handlers
from elearning_service.app.lifespan import lifespan
from elearning_service.app.router import setup_routers
from elearning_service.core.settings import get_app_settings


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app_settings = get_app_settings()

    app = FastAPI(
        title=app_settings.title,
        version=app_settings.version,
        openapi_url=app_settings.get_openapi_url(),
        docs_url=None if app_settings.disable_docs else f"{app_settings.api_prefix}/docs",
        redoc_url=None,
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    # Exception handlers before middleware
    configure_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials="*" not in app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_routers(app, app_settings)

    return app


# Application instance for uvicorn
app = create_app()
