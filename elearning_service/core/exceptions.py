"""Custom exception classes for the application."""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    All HTTP-facing exceptions inherit from this class.
    Follows RFC 7807 Problem Details for HTTP APIs.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.

    Example:
            raise AppException(
            status_code=404,
            detail="Quiz not found",
            type="quiz-not-found",
            title="Not Found",
            instance="/api/quizzes/abc123",
            extra={"quiz_id": "abc123"}
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title for HTTP status code."""
        titles = {
            400: "Bad Request",
            404: "Not Found",
            409: "Conflict",
            422: "Unprocessable Entity",
            500: "Internal Server Error",
            503: "Service Unavailable",
        }
        return titles.get(status_code, "Error")


class NotFoundException(AppException):
    """Exception raised when a resource or route is not found.

    Example:
            raise NotFoundException(
            detail="Cannot GET /api/nope",
            extra={"method": "GET", "path": "/api/nope"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "not-found",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=404,
            detail=detail,
            type=type,
            title="Not Found",
            instance=instance,
            extra=extra,
        )


class ServiceUnavailableException(AppException):
    """Exception raised when a backing service (the database) is unreachable."""

    def __init__(
        self,
        detail: str,
        type: str = "service-unavailable",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=503,
            detail=detail,
            type=type,
            title="Service Unavailable",
            instance=instance,
            extra=extra,
        )


# ──────────────────────────────────────────────────────────────
# Realtime client errors
# ──────────────────────────────────────────────────────────────


class RealtimeError(Exception):
    """Base class for realtime client errors.

    These never cross an HTTP boundary, so they carry structured context for
    logging instead of a status code.
    """

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class TransportError(RealtimeError):
    """The transport failed to connect or reported a protocol error.

    Always recoverable: the reconnection policy decides what happens next.
    """


class MaxReconnectExceededError(RealtimeError):
    """Automatic reconnection gave up after the configured number of attempts.

    Surfaced as the ``error`` connection state; only a manual reconnect
    starts a new cycle.
    """

    def __init__(self, attempts: int, **context: Any) -> None:
        self.attempts = attempts
        super().__init__(
            f"Gave up reconnecting after {attempts} attempts", attempts=attempts, **context
        )


class NoActiveSessionError(RealtimeError):
    """reconnect() was called before any connect()."""

    def __init__(self, message: str = "No active session: call connect() first") -> None:
        super().__init__(message)


class SubscriberCallbackError(RealtimeError):
    """A subscriber raised while handling an event.

    Wrapped into the handler's DispatchResult; never raised to the transport.
    """

    def __init__(self, event: str, handler: Any, cause: BaseException) -> None:
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__qualname__", repr(handler))
        super().__init__(
            f"Handler {name} failed on '{event}': {cause!r}", event=event, handler=name,
        )


# ──────────────────────────────────────────────────────────────
# Scheduler and startup errors
# ──────────────────────────────────────────────────────────────


class SchedulerSweepError(Exception):
    """A scheduled pass (expiry sweep or reminders) failed.

    Logged by the scheduler; the job keeps its schedule.
    """

    def __init__(self, job_id: str, cause: BaseException) -> None:
        self.job_id = job_id
        self.cause = cause
        super().__init__(f"Scheduled job '{job_id}' failed: {cause!r}")


class ConfigurationError(Exception):
    """Required settings are missing or invalid at startup. Fatal."""

    def __init__(
        self,
        message: str,
        settings_prefix: str | None = None,
        fields: list[str] | None = None,
    ) -> None:
        self.settings_prefix = settings_prefix
        self.fields = fields or []
        if self.fields:
            prefix = settings_prefix or ""
            names = ", ".join(f"{prefix}{f}".upper() for f in self.fields)
            message = f"{message}: {names}"
        super().__init__(message)
