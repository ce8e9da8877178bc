"""Health check API endpoints.

- ``GET /api/health``: liveness, answers as long as the process serves HTTP
- ``GET /api/health/ready``: readiness, checks the database and the scheduler
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request, Response, status

from elearning_service.core.settings import get_app_settings
from elearning_service.features.health.schemas import LivenessResponse, ReadinessResponse
from elearning_service.infra.database.session import check_database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=LivenessResponse,
    summary="Liveness check",
    description="Returns ok while the server is running",
)
async def health() -> LivenessResponse:
    return LivenessResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Checks database connectivity and whether the deadline scheduler runs",
    responses={503: {"description": "A required dependency is unhealthy"}},
)
async def readiness(request: Request, response: Response) -> ReadinessResponse:
    """Readiness probe.

    The scheduler only counts when it is enabled; a disabled scheduler is
    not a failure.
    """
    app_settings = get_app_settings()

    try:
        database_ok = await check_database()
    except Exception as e:
        logger.warning("Readiness database check failed", extra={"error": str(e)})
        database_ok = False

    checks = {"database": database_ok}
    jobs: list[dict] = []
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None and scheduler.settings.enabled:
        checks["scheduler"] = scheduler.running
        jobs = scheduler.get_job_status()

    ready = all(checks.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        ready=ready,
        timestamp=datetime.now(UTC),
        service=app_settings.service_name,
        version=app_settings.version,
        checks=checks,
        jobs=jobs,
    )
