"""Connection state and the state-change stream."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    """Lifecycle of one realtime connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"

    @property
    def label(self) -> str:
        """Plain display label for status lines."""
        return _LABELS[self]


_LABELS = {
    ConnectionState.DISCONNECTED: "Disconnected",
    ConnectionState.CONNECTING: "Connecting",
    ConnectionState.CONNECTED: "Connected",
    ConnectionState.RECONNECTING: "Reconnecting",
    ConnectionState.ERROR: "Connection error",
}


@dataclass(slots=True)
class ConnectionSession:
    """Who the client connects as and whether it may reconnect on its own."""

    user_id: str | None = None
    should_auto_reconnect: bool = True


_CLOSED = object()

# Changes buffered per subscription before the oldest are dropped
DEFAULT_SUBSCRIPTION_BUFFER = 256


class StateSubscription:
    """One subscriber's view of the state stream.

    Receives every change published after it was created (no replay), in
    order. Iterate with ``async for``; iteration ends when the subscription
    or the state machine is closed. Callers that stop iterating must call
    ``close()``. At most ``maxsize`` changes are buffered: a subscriber that
    falls further behind loses the oldest ones (counted in ``dropped``).
    """

    def __init__(
        self, owner: ConnectionStateMachine, maxsize: int = DEFAULT_SUBSCRIPTION_BUFFER
    ) -> None:
        self._owner = owner
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _push(self, state: ConnectionState) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            if self.dropped == 1:
                logger.warning(
                    "State subscriber is not consuming; dropping oldest changes",
                    extra={"maxsize": self._queue.maxsize},
                )
        self._queue.put_nowait(state)

    def drain(self) -> list[ConnectionState]:
        """Return the changes received so far without waiting."""
        items: list[ConnectionState] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                break
            items.append(item)  # type: ignore[arg-type]
        return items

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._owner._discard(self)
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> StateSubscription:
        return self

    async def __anext__(self) -> ConnectionState:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


class ConnectionStateMachine:
    """Holds the current ConnectionState and publishes every change.

    Writing the current value again publishes nothing, so no subscriber ever
    sees the same state twice in a row. Subscribers are notified after the
    new value is stored: reading ``state`` from a listener returns the new
    value.
    """

    def __init__(self, initial: ConnectionState = ConnectionState.DISCONNECTED) -> None:
        self._state = initial
        self._subscriptions: list[StateSubscription] = []
        self._listeners: list[Callable[[ConnectionState], object]] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    def set(self, new_state: ConnectionState) -> bool:
        """Move to ``new_state``. Returns False when it was already current."""
        if new_state == self._state:
            return False

        previous = self._state
        self._state = new_state
        logger.debug(
            "Connection state changed",
            extra={"previous_state": previous.value, "state": new_state.value},
        )

        for subscription in list(self._subscriptions):
            subscription._push(new_state)
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception(
                    "State listener failed",
                    extra={"listener": getattr(listener, "__qualname__", repr(listener))},
                )
        return True

    def subscribe(self, maxsize: int = DEFAULT_SUBSCRIPTION_BUFFER) -> StateSubscription:
        subscription = StateSubscription(self, maxsize)
        self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, listener: Callable[[ConnectionState], object]) -> None:
        """Register a synchronous callback. Duplicates are ignored."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[ConnectionState], object]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _discard(self, subscription: StateSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def close(self) -> None:
        """End every subscription and drop all listeners."""
        for subscription in list(self._subscriptions):
            subscription.close()
        self._listeners.clear()
