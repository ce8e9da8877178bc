"""Health check feature."""

from elearning_service.features.health.router import router

__all__ = ["router"]
