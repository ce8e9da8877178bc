"""Database infrastructure: async engine lifecycle and sessions."""

from elearning_service.infra.database.session import (
    build_engine,
    build_session_factory,
    check_database,
    close_database,
    create_schema,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "check_database",
    "close_database",
    "create_schema",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
