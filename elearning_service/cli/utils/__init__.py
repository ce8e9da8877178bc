"""CLI helpers: async command runner and colored output."""

from elearning_service.cli.utils.async_runner import coro
from elearning_service.cli.utils.formatters import error, header, info, success, warning

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "success",
    "warning",
]
