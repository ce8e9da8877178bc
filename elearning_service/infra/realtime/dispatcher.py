"""Fan-out of inbound realtime events to registered handlers."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from elearning_service.core.exceptions import SubscriberCallbackError

if TYPE_CHECKING:
    from collections.abc import Callable

    from elearning_service.infra.realtime.transport import RealtimeTransport

    Handler = Callable[[Any], Any]

logger = logging.getLogger(__name__)

NEW_MESSAGE_EVENT = "new_message"

# Bound by the client itself; user handlers for these are invoked by the client.
LIFECYCLE_EVENTS = frozenset(
    {
        "connect",
        "disconnect",
        "connect_error",
        "error",
        "reconnect",
        "reconnect_attempt",
        "reconnect_error",
        "reconnect_failed",
    }
)


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of delivering one event to one handler."""

    handler: Any
    ok: bool
    value: Any = None
    error: SubscriberCallbackError | None = None


class EventDispatcher:
    """Keeps handler registrations and delivers events to them.

    Registrations live here rather than on the transport, so they survive
    every reconnect: ``bind()`` wires them onto each new transport.

    Broadcast handlers (``on_new_message``) form an ordered, duplicate-free
    list. Named handlers (``on``) are kept per event name and are independent
    of the broadcast list. Each handler call is isolated: one failing handler
    is logged and reported in its DispatchResult, and the rest still run.
    """

    def __init__(self) -> None:
        self._broadcast: list[Handler] = []
        self._named: dict[str, list[Handler]] = {}
        self._transport: RealtimeTransport | None = None
        self._bound: set[str] = set()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def message_listener_count(self) -> int:
        return len(self._broadcast)

    def on_new_message(self, handler: Handler) -> bool:
        """Add a broadcast handler. Returns False if it was already registered."""
        if handler in self._broadcast:
            return False
        self._broadcast.append(handler)
        return True

    def off_new_message(self, handler: Handler | None = None) -> None:
        """Remove one broadcast handler, or all of them when ``handler`` is None."""
        if handler is None:
            self._broadcast.clear()
        elif handler in self._broadcast:
            self._broadcast.remove(handler)

    def on(self, event: str, handler: Handler) -> None:
        self._named.setdefault(event, []).append(handler)
        if self._transport is not None:
            self._bind_event(self._transport, event)

    def off(self, event: str, handler: Handler | None = None) -> None:
        """Remove one handler for ``event``, or every handler when ``handler`` is None."""
        handlers = self._named.get(event)
        if handlers is None:
            return
        if handler is None:
            del self._named[event]
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._named[event]

    def handlers_for(self, event: str) -> list[Handler]:
        return list(self._named.get(event, ()))

    def clear(self) -> None:
        self._broadcast.clear()
        self._named.clear()

    # ------------------------------------------------------------------
    # Transport wiring
    # ------------------------------------------------------------------

    def bind(self, transport: RealtimeTransport) -> None:
        """Route ``new_message`` and every named event of ``transport`` here."""
        self._transport = transport
        self._bound = set()
        self._bind_event(transport, NEW_MESSAGE_EVENT)
        for event in self._named:
            self._bind_event(transport, event)

    def unbind(self) -> None:
        self._transport = None
        self._bound = set()

    def _bind_event(self, transport: RealtimeTransport, event: str) -> None:
        if event in LIFECYCLE_EVENTS or event in self._bound:
            return
        self._bound.add(event)

        async def trampoline(*args: Any) -> None:
            payload = args[0] if len(args) == 1 else (list(args) if args else None)
            if event == NEW_MESSAGE_EVENT:
                await self.dispatch_new_message(payload)
            else:
                await self.dispatch(event, payload)

        transport.on(event, trampoline)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def dispatch_new_message(self, payload: Any) -> list[DispatchResult]:
        """Deliver a ``new_message`` payload to broadcast handlers, then named ones."""
        results = await self._deliver(NEW_MESSAGE_EVENT, list(self._broadcast), payload)
        if NEW_MESSAGE_EVENT in self._named:
            results += await self.dispatch(NEW_MESSAGE_EVENT, payload)
        return results

    async def dispatch(self, event: str, payload: Any) -> list[DispatchResult]:
        """Deliver ``payload`` to the named handlers of ``event``."""
        return await self._deliver(event, self.handlers_for(event), payload)

    async def _deliver(
        self, event: str, handlers: list[Handler], payload: Any
    ) -> list[DispatchResult]:
        results: list[DispatchResult] = []
        for handler in handlers:
            try:
                value = handler(payload)
                if inspect.isawaitable(value):
                    value = await value
            except Exception as e:
                error = SubscriberCallbackError(event, handler, e)
                logger.warning(
                    "Event handler failed",
                    extra={"event": event, "handler": error.context["handler"], "error": str(e)},
                    exc_info=e,
                )
                results.append(DispatchResult(handler=handler, ok=False, error=error))
            else:
                results.append(DispatchResult(handler=handler, ok=True, value=value))
        return results
