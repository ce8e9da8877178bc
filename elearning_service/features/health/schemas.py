"""Health check response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class LivenessResponse(BaseModel):
    """Liveness response: the process is up and serving HTTP.

    Example:
        ```json
        {"status": "ok", "message": "Server is running"}
        ```
    """

    status: Literal["ok"] = Field(default="ok", description="Always 'ok' when reachable")
    message: str = Field(default="Server is running", description="Status message")

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "ok", "message": "Server is running"}},
    )


class ReadinessResponse(BaseModel):
    """Readiness response with dependency checks.

    Example:
        ```json
        {
            "ready": true,
            "timestamp": "2025-01-01T09:00:00Z",
            "service": "elearning-service",
            "version": "0.1.0",
            "checks": {"database": true, "scheduler": true},
            "jobs": [{"id": "quiz_expiry_sweep", "next_run_time": "..."}]
        }
        ```
    """

    ready: bool = Field(description="Whether every required dependency is healthy")
    timestamp: datetime = Field(description="Check timestamp")
    service: str = Field(min_length=1, max_length=100, description="Service name")
    version: str = Field(min_length=1, max_length=50, description="Service version")
    checks: dict[str, bool] = Field(default_factory=dict, description="Dependency checks")
    jobs: list[dict[str, Any]] = Field(
        default_factory=list, description="Scheduled deadline jobs"
    )
