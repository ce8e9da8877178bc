"""Deadline scheduler configuration settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerSettings(BaseSettings):
    """Settings for the quiz expiry sweep and the daily reminder pass.

    Environment variables use SCHEDULER_ prefix.
    Example: SCHEDULER_SWEEP_INTERVAL_MINUTES=5, SCHEDULER_REMINDER_HOUR=9
    """

    enabled: bool = Field(
        default=True, description="Start the scheduler with the API server",
    )

    sweep_interval_minutes: int = Field(
        default=5,
        ge=1,
        le=1440,
        description="Minutes between expired-quiz sweeps",
    )

    reminder_hour: int = Field(
        default=9, ge=0, le=23, description="Local hour of the daily reminder pass",
    )
    reminder_minute: int = Field(
        default=0, ge=0, le=59, description="Minute of the daily reminder pass",
    )
    reminder_window_hours: int = Field(
        default=24,
        ge=1,
        le=168,
        description="Quizzes closing within this many hours get a reminder",
    )

    timezone: str | None = Field(
        default=None,
        max_length=64,
        description="IANA timezone for the scheduler (None for the host's local zone)",
    )

    misfire_grace_time: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Seconds a missed run may still fire late",
    )

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
