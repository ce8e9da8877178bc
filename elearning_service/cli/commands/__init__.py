"""CLI command modules."""

from elearning_service.cli.commands import realtime, scheduler, server

__all__ = [
    "realtime",
    "scheduler",
    "server",
]
