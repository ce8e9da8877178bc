"""Main entry point for elearning-service.

- ``--server``: run the FastAPI server (same as ``elearning-service serve``)
- anything else: run the CLI (no arguments shows help)
"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

logger = logging.getLogger(__name__)


def run_fastapi_server() -> NoReturn:
    """Run the API server with uvicorn.

    Exits with status 1 when the database URL is missing or invalid.
    """
    import uvicorn

    from elearning_service.core.exceptions import ConfigurationError
    from elearning_service.core.settings import (
        get_app_settings,
        get_db_settings,
        get_logging_settings,
    )
    from elearning_service.infra.logging import setup_logging

    log_settings = get_logging_settings()
    setup_logging(log_settings)
    try:
        get_db_settings()
    except ConfigurationError as e:
        logger.critical("Refusing to start: %s", e)
        sys.exit(1)

    settings = get_app_settings()
    uvicorn.run(
        "elearning_service.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        access_log=settings.debug,
        log_level=log_settings.level.lower(),
    )
    sys.exit(0)


def run_cli() -> NoReturn:
    """Run the CLI interface."""
    from elearning_service.cli.main import main as cli_main

    cli_main()
    sys.exit(0)


def main() -> NoReturn:
    if "--server" in sys.argv:
        sys.argv.remove("--server")
        run_fastapi_server()
    else:
        run_cli()


if __name__ == "__main__":
    main()
