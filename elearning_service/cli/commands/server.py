"""Server command."""

import sys

import click

from elearning_service.cli.utils import error, info
from elearning_service.core.exceptions import ConfigurationError
from elearning_service.core.settings import (
    get_app_settings,
    get_db_settings,
    get_logging_settings,
)


@click.command(name="serve")
@click.option(
    "--host",
    default=None,
    help="Host to bind (default: APP_HOST)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind (default: APP_PORT)",
)
@click.option(
    "--reload/--no-reload",
    default=None,
    help="Auto-reload on code changes (default: APP_DEBUG)",
)
def serve(host: str | None, port: int | None, reload: bool | None) -> None:
    """Run the API server with the deadline scheduler."""
    try:
        get_db_settings()
    except ConfigurationError as e:
        error(str(e))
        sys.exit(1)

    import uvicorn

    settings = get_app_settings()
    log_settings = get_logging_settings()
    host = host or settings.host
    port = port or settings.port
    reload = settings.debug if reload is None else reload

    info(f"Server will run at: http://{host}:{port}")
    info(f"Environment: {settings.environment}")

    uvicorn.run(
        "elearning_service.app.main:app",
        host=host,
        port=port,
        reload=reload,
        access_log=settings.debug,
        log_level=log_settings.level.lower(),
    )
