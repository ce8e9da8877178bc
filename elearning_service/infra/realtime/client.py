"""Realtime client: one user's Socket.IO session with auto-reconnect.

The client owns a ConnectionStateMachine, a ReconnectionController and an
EventDispatcher, and builds a fresh transport for every handshake.

Example:
    client = RealtimeClient(get_realtime_settings())
    client.on_new_message(lambda payload: print(payload))

    async for state in client.subscribe():
        ...

    await client.connect("user-42")
    ...
    await client.disconnect(permanent=True)

Transitions driven by transport events:

    any                  handshake started       -> connecting
    connecting           connect                 -> connected (attempts reset, "register" sent)
    connected            disconnect (unexpected) -> disconnected, then reconnection policy
    connecting/connected connect_error           -> error, then reconnection policy
    connecting/connected error                   -> error
    any                  reconnect               -> connected (attempts reset)
    any                  reconnect_attempt       -> reconnecting
    any                  reconnect_failed        -> error
    any                  handshake raised        -> error, then reconnection policy

``disconnect()`` (non-permanent) closes the transport and then runs the
reconnection policy like a lost connection; ``disconnect(permanent=True)``
never reconnects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from elearning_service.core.exceptions import (
    MaxReconnectExceededError,
    NoActiveSessionError,
    TransportError,
)
from elearning_service.core.settings.realtime import RealtimeSettings
from elearning_service.infra.realtime.dispatcher import EventDispatcher
from elearning_service.infra.realtime.reconnect import ReconnectionController
from elearning_service.infra.realtime.state import (
    ConnectionSession,
    ConnectionState,
    ConnectionStateMachine,
    StateSubscription,
)
from elearning_service.infra.realtime.transport import socketio_transport_factory

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from elearning_service.infra.realtime.dispatcher import DispatchResult
    from elearning_service.infra.realtime.transport import RealtimeTransport

logger = logging.getLogger(__name__)

REGISTER_EVENT = "register"


class RealtimeClient:
    """Connection-state machine for one realtime session.

    Args:
        settings: Endpoint and reconnection settings.
        transport_factory: Builds a new transport per handshake.
        sleep: Awaitable sleep for the reconnect timer and the manual
            reconnect grace period (injectable for tests).
    """

    def __init__(
        self,
        settings: RealtimeSettings | None = None,
        transport_factory: Callable[[], RealtimeTransport] = socketio_transport_factory,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or RealtimeSettings()
        self._transport_factory = transport_factory
        self._sleep = sleep

        self._session = ConnectionSession()
        self._state = ConnectionStateMachine()
        self._dispatcher = EventDispatcher()
        self._reconnector = ReconnectionController(
            max_attempts=self.settings.max_reconnect_attempts,
            base_delay=self.settings.reconnect_delay,
            sleep=sleep,
        )

        self._transport: RealtimeTransport | None = None
        # Incremented per handshake; events from older transports are ignored.
        self._generation = 0
        self._failed_generation: int | None = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state.state

    @property
    def is_connected(self) -> bool:
        return self._state.state is ConnectionState.CONNECTED

    @property
    def is_reconnecting(self) -> bool:
        return self._state.state is ConnectionState.RECONNECTING

    @property
    def user_id(self) -> str | None:
        return self._session.user_id

    @property
    def should_auto_reconnect(self) -> bool:
        return self._session.should_auto_reconnect

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnector.attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnector.pending

    @property
    def message_listener_count(self) -> int:
        return self._dispatcher.message_listener_count

    def describe_status(self) -> str:
        """Plain status line, e.g. ``"Connected (user: 42)"``."""
        if not self._initialized:
            return "not initialized"
        return f"{self.state.label} (user: {self._session.user_id or 'none'})"

    # ------------------------------------------------------------------
    # State stream
    # ------------------------------------------------------------------

    def subscribe(self) -> StateSubscription:
        """Stream of state changes from now on (no replay of the current state).

        Close the subscription when done with it; ``close()`` on the client
        ends every subscription.
        """
        return self._state.subscribe()

    def add_listener(self, listener: Callable[[ConnectionState], object]) -> None:
        self._state.add_listener(listener)

    def remove_listener(self, listener: Callable[[ConnectionState], object]) -> None:
        self._state.remove_listener(listener)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def on_new_message(self, handler: Callable[[Any], Any]) -> bool:
        return self._dispatcher.on_new_message(handler)

    def off_new_message(self, handler: Callable[[Any], Any] | None = None) -> None:
        self._dispatcher.off_new_message(handler)

    def on(self, event: str, handler: Callable[[Any], Any]) -> None:
        self._dispatcher.on(event, handler)

    def off(self, event: str, handler: Callable[[Any], Any] | None = None) -> None:
        self._dispatcher.off(event, handler)

    async def emit(
        self, event: str, payload: Any = None, ack: Callable[..., Any] | None = None
    ) -> bool:
        """Send an event while connected.

        Returns False when the event was dropped: the client is not connected
        or the transport failed mid-send (the socket dropped after the check).
        """
        transport = self._transport
        if not self.is_connected or transport is None:
            logger.warning(
                "Dropped emit: not connected",
                extra={"event": event, "state": self.state.value},
            )
            return False
        try:
            await transport.emit(event, payload, callback=ack)
        except Exception as e:
            logger.warning(
                "Dropped emit: transport failed",
                extra={"event": event, "error": str(e)},
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    async def connect(self, user_id: str, *, auto_reconnect: bool = True) -> None:
        """Open a session for ``user_id``. No-op while already connected."""
        if self._transport is not None and self._transport.connected:
            logger.info(
                "Already connected; connect() ignored",
                extra={"user_id": self._session.user_id},
            )
            return

        self._session.user_id = user_id
        self._session.should_auto_reconnect = auto_reconnect
        self._reconnector.cancel()
        self._reconnector.reset()
        await self._handshake()

    async def disconnect(self, *, permanent: bool = False) -> None:
        """Close the session.

        The pending reconnect timer is cancelled before anything is awaited.
        A non-permanent disconnect is treated as a lost connection: the
        reconnection policy schedules the next attempt. A permanent disconnect
        never reconnects and also forgets the user and every subscriber
        registration.
        """
        self._reconnector.cancel()
        self._session.should_auto_reconnect = not permanent

        had_transport = self._transport is not None
        self._generation += 1
        await self._dispose_transport()

        if permanent:
            self._session.user_id = None
            self._dispatcher.clear()
            self._state.set(ConnectionState.DISCONNECTED)
        elif had_transport:
            if self.state is not ConnectionState.ERROR:
                self._state.set(ConnectionState.DISCONNECTED)
            self._handle_reconnection()

        logger.info(
            "Realtime client disconnected",
            extra={"permanent": permanent, "state": self.state.value},
        )

    async def reconnect(self) -> None:
        """Tear down and reconnect the current user after a short grace period.

        Raises:
            NoActiveSessionError: If connect() was never called (or the last
                disconnect was permanent).
        """
        if not self._session.user_id:
            raise NoActiveSessionError()

        await self.disconnect(permanent=False)
        # The handshake below replaces the retry scheduled by disconnect()
        self._reconnector.cancel()
        await self._sleep(self.settings.reconnect_grace_period)
        self._reconnector.reset()
        await self._handshake()

    async def close(self) -> None:
        """Release everything: timers, transport, handlers and state subscriptions."""
        self._reconnector.cancel()
        self._session.should_auto_reconnect = False
        self._generation += 1
        await self._dispose_transport()
        self._dispatcher.clear()
        self._state.close()

    # ------------------------------------------------------------------
    # Handshake
    # ------------------------------------------------------------------

    async def _handshake(self) -> None:
        user_id = self._session.user_id
        if not user_id:
            return

        self._generation += 1
        generation = self._generation
        self._initialized = True

        await self._dispose_transport()
        self._state.set(ConnectionState.CONNECTING)

        transport = self._transport_factory()
        self._transport = transport
        self._bind_lifecycle(transport, generation)
        self._dispatcher.bind(transport)

        logger.info(
            "Opening realtime connection",
            extra={
                "url": self.settings.base_url,
                "user_id": user_id,
                "attempt": self._reconnector.attempts,
            },
        )
        try:
            await transport.connect(
                self.settings.base_url,
                headers={"userId": user_id},
                transports=list(self.settings.transports),
                socketio_path=self.settings.socketio_path,
                wait_timeout=self.settings.connect_timeout,
            )
        except Exception as e:
            if generation != self._generation:
                return
            error = e if isinstance(e, TransportError) else TransportError(str(e))
            logger.warning(
                "Realtime handshake failed",
                extra={"user_id": user_id, "error": error.message},
            )
            self._state.set(ConnectionState.ERROR)
            self._report_failure(generation)
            return

        if generation != self._generation:
            # Superseded while connecting (disconnect/close ran meanwhile).
            await self._safe_disconnect(transport)

    def _report_failure(self, generation: int) -> None:
        """Run the reconnection policy once per failed handshake."""
        if self._failed_generation == generation:
            return
        self._failed_generation = generation
        self._handle_reconnection()

    def _handle_reconnection(self) -> None:
        if not self._session.should_auto_reconnect or not self._session.user_id:
            return
        try:
            self._reconnector.schedule(self._handshake)
        except MaxReconnectExceededError as e:
            logger.error(
                "Realtime reconnection gave up",
                extra={"user_id": self._session.user_id, "attempts": e.attempts},
            )
            self._state.set(ConnectionState.ERROR)

    async def _dispose_transport(self) -> None:
        transport, self._transport = self._transport, None
        self._dispatcher.unbind()
        if transport is not None:
            await self._safe_disconnect(transport)

    async def _safe_disconnect(self, transport: RealtimeTransport) -> None:
        try:
            await transport.disconnect()
        except Exception:
            logger.warning("Error while closing realtime transport", exc_info=True)

    # ------------------------------------------------------------------
    # Transport lifecycle events
    # ------------------------------------------------------------------

    def _bind_lifecycle(self, transport: RealtimeTransport, generation: int) -> None:
        def current() -> bool:
            return generation == self._generation

        async def on_connect(*_: Any) -> None:
            if not current():
                return
            self._reconnector.reset()
            self._state.set(ConnectionState.CONNECTED)
            logger.info("Realtime connected", extra={"user_id": self._session.user_id})
            try:
                await transport.emit(REGISTER_EVENT, self._session.user_id)
            except Exception:
                logger.warning("Failed to send register event", exc_info=True)
            await self._dispatcher.dispatch("connect", None)

        async def on_disconnect(*args: Any) -> None:
            if not current():
                return
            reason = args[0] if args else None
            logger.warning("Realtime connection lost", extra={"reason": reason})
            self._state.set(ConnectionState.DISCONNECTED)
            await self._dispatcher.dispatch("disconnect", reason)
            self._handle_reconnection()

        async def on_connect_error(data: Any = None, *_: Any) -> None:
            if not current():
                return
            logger.warning("Realtime connect error", extra={"error": str(data)})
            self._state.set(ConnectionState.ERROR)
            await self._dispatcher.dispatch("connect_error", data)
            self._report_failure(generation)

        async def on_error(data: Any = None, *_: Any) -> None:
            if not current():
                return
            logger.error("Realtime transport error", extra={"error": str(data)})
            self._state.set(ConnectionState.ERROR)
            await self._dispatcher.dispatch("error", data)

        async def on_reconnect(*args: Any) -> None:
            if not current():
                return
            self._reconnector.reset()
            self._state.set(ConnectionState.CONNECTED)
            await self._dispatcher.dispatch("reconnect", args[0] if args else None)

        async def on_reconnect_attempt(*args: Any) -> None:
            if not current():
                return
            self._state.set(ConnectionState.RECONNECTING)
            await self._dispatcher.dispatch("reconnect_attempt", args[0] if args else None)

        async def on_reconnect_error(data: Any = None, *_: Any) -> None:
            if not current():
                return
            logger.warning("Realtime reconnect error", extra={"error": str(data)})
            await self._dispatcher.dispatch("reconnect_error", data)

        async def on_reconnect_failed(*_: Any) -> None:
            if not current():
                return
            logger.error("Realtime reconnection failed")
            self._state.set(ConnectionState.ERROR)
            await self._dispatcher.dispatch("reconnect_failed", None)

        transport.on("connect", on_connect)
        transport.on("disconnect", on_disconnect)
        transport.on("connect_error", on_connect_error)
        transport.on("error", on_error)
        transport.on("reconnect", on_reconnect)
        transport.on("reconnect_attempt", on_reconnect_attempt)
        transport.on("reconnect_error", on_reconnect_error)
        transport.on("reconnect_failed", on_reconnect_failed)

    async def dispatch_new_message(self, payload: Any) -> list[DispatchResult]:
        """Deliver a ``new_message`` payload as if it arrived on the transport."""
        return await self._dispatcher.dispatch_new_message(payload)
