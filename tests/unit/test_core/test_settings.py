"""Tests for settings models and cached loaders."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from elearning_service.core.exceptions import ConfigurationError
from elearning_service.core.settings import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    RealtimeSettings,
    SchedulerSettings,
    get_app_settings,
    get_db_settings,
)


@pytest.mark.unit
class TestDatabaseSettings:
    """Tests for DatabaseSettings and get_db_settings."""

    def test_missing_url_is_a_configuration_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("DB_DATABASE_URL", raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            get_db_settings()

        assert "DB_DATABASE_URL" in str(exc_info.value)
        assert exc_info.value.fields == ["database_url"]

    def test_empty_url_is_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DB_DATABASE_URL", "")

        with pytest.raises(ConfigurationError):
            get_db_settings()

    @pytest.mark.parametrize(
        "url",
        [
            "postgres://u:p@db:5432/elearning",
            "postgresql://u:p@db:5432/elearning",
        ],
    )
    def test_postgres_urls_use_async_driver(self, url: str):
        settings = DatabaseSettings(database_url=url)

        assert settings.database_url == "postgresql+psycopg://u:p@db:5432/elearning"
        assert not settings.is_sqlite

    def test_sqlite_url(self):
        settings = DatabaseSettings(database_url="sqlite+aiosqlite:///./dev.db")

        assert settings.is_sqlite

    def test_loader_is_cached(self):
        assert get_db_settings() is get_db_settings()


@pytest.mark.unit
class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self):
        settings = get_app_settings()

        assert settings.port == 5000
        assert settings.api_prefix == "/api"

    def test_debug_forbidden_in_production(self):
        with pytest.raises(ValidationError):
            AppSettings(environment="production", debug=True)

    def test_production_flag(self):
        assert AppSettings(environment="production").is_production
        assert not AppSettings(environment="development").is_production


@pytest.mark.unit
class TestOtherSettings:
    """Tests for logging, realtime and scheduler settings."""

    def test_realtime_defaults(self):
        settings = RealtimeSettings()

        assert settings.base_url == "http://localhost:5000"
        assert settings.transports == ["websocket"]
        assert settings.max_reconnect_attempts == 5
        assert settings.reconnect_delay == 2.0
        assert settings.connect_timeout == 10.0

    def test_realtime_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("REALTIME_MAX_RECONNECT_ATTEMPTS", "3")

        assert RealtimeSettings().max_reconnect_attempts == 3

    def test_scheduler_defaults(self):
        settings = SchedulerSettings()

        assert settings.sweep_interval_minutes == 5
        assert (settings.reminder_hour, settings.reminder_minute) == (9, 0)
        assert settings.reminder_window_hours == 24

    def test_log_level_is_normalized(self):
        settings = LoggingSettings(level="debug")

        assert settings.level == "DEBUG"
        assert settings.to_logging_kwargs()["log_level"] == "DEBUG"
