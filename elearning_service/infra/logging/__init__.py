"""Logging infrastructure: dictConfig + queue-based handlers, JSONL output."""

from elearning_service.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from elearning_service.infra.logging.formatters import JSONFormatter

__all__ = [
    "JSONFormatter",
    "complete",
    "configure_logging",
    "setup_logging",
    "shutdown",
]
