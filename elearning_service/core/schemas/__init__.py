from elearning_service.core.schemas.problem_details import (
    FieldError,
    ProblemDetails,
    ValidationProblemDetails,
)

__all__ = ["FieldError", "ProblemDetails", "ValidationProblemDetails"]
