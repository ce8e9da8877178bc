"""Reconnection policy: attempt counting, linear backoff and the retry timer."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from elearning_service.core.exceptions import MaxReconnectExceededError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ReconnectionController:
    """Schedules handshake retries with a delay of ``base_delay * attempt``.

    At most one timer is pending at a time. ``schedule()`` replaces any
    pending timer; ``cancel()`` drops it synchronously. The timer that is
    currently firing is never cancelled by the work it started, so a failing
    handshake can schedule the next attempt from inside the timer.

    Args:
        max_attempts: Automatic attempts allowed before giving up.
        base_delay: Seconds to wait before the first attempt.
        sleep: Awaitable sleep used by the timer (injectable for tests).
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        base_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep
        self._attempts = 0
        self._timer: asyncio.Task[None] | None = None

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def exhausted(self) -> bool:
        return self._attempts >= self.max_attempts

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt

    def reset(self) -> None:
        self._attempts = 0

    def cancel(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()
            logger.debug("Reconnect timer cancelled")

    def schedule(self, callback: Callable[[], Awaitable[None]]) -> float:
        """Count an attempt and run ``callback`` after its delay.

        Returns:
            The delay in seconds before ``callback`` runs.

        Raises:
            MaxReconnectExceededError: When ``max_attempts`` were already used.
        """
        if self.exhausted:
            raise MaxReconnectExceededError(self._attempts)

        self.cancel()
        self._attempts += 1
        delay = self.delay_for(self._attempts)
        self._timer = asyncio.create_task(
            self._fire(delay, callback), name=f"realtime-reconnect-{self._attempts}"
        )
        logger.info(
            "Reconnect scheduled",
            extra={
                "attempt": self._attempts,
                "max_attempts": self.max_attempts,
                "delay_seconds": delay,
            },
        )
        return delay

    async def _fire(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        await self._sleep(delay)
        if self._timer is asyncio.current_task():
            self._timer = None
        try:
            await callback()
        except Exception:
            logger.exception("Reconnect attempt raised", extra={"attempt": self._attempts})

    async def wait(self) -> None:
        """Wait for the pending timer, if any, to finish. Used by tests and shutdown."""
        timer = self._timer
        if timer is not None:
            await asyncio.gather(timer, return_exceptions=True)
