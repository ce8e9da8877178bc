"""Realtime (Socket.IO client) configuration settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RealtimeSettings(BaseSettings):
    """Socket.IO client connection and reconnection settings.

    Environment variables use REALTIME_ prefix.
    Example: REALTIME_BASE_URL=https://api.example.com, REALTIME_MAX_RECONNECT_ATTEMPTS=5
    """

    # ──────────────────────────────────────────────────────────────
    # Endpoint
    # ──────────────────────────────────────────────────────────────

    base_url: str = Field(
        default="http://localhost:5000",
        min_length=1,
        description="Socket.IO server base URL",
    )

    socketio_path: str = Field(
        default="socket.io",
        min_length=1,
        max_length=255,
        description="Socket.IO endpoint path on the server",
    )

    transports: list[str] = Field(
        default_factory=lambda: ["websocket"],
        description="Allowed Engine.IO transports",
    )

    connect_timeout: float = Field(
        default=10.0,
        ge=0.5,
        le=120.0,
        description="Seconds to wait for the namespace handshake",
    )

    # ──────────────────────────────────────────────────────────────
    # Reconnection policy
    # ──────────────────────────────────────────────────────────────

    max_reconnect_attempts: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Automatic attempts before the session settles in error",
    )

    reconnect_delay: float = Field(
        default=2.0,
        gt=0,
        le=300.0,
        description="Base delay in seconds; attempt n waits delay * n",
    )

    reconnect_grace_period: float = Field(
        default=0.5,
        ge=0,
        le=30.0,
        description="Pause between teardown and handshake on a manual reconnect",
    )

    model_config = SettingsConfigDict(
        env_prefix="REALTIME_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
