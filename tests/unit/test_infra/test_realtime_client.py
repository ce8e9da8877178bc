"""Unit tests for RealtimeClient against a scripted in-memory transport."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from elearning_service.core.exceptions import NoActiveSessionError, TransportError
from elearning_service.core.settings.realtime import RealtimeSettings
from elearning_service.infra.realtime import (
    NEW_MESSAGE_EVENT,
    REGISTER_EVENT,
    ConnectionState,
    RealtimeClient,
)


class FakeTransport:
    """Socket.IO stand-in: fires ``connect`` on success, raises on failure."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.connected = False
        self.handlers: dict[str, Any] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.connect_kwargs: dict[str, Any] = {}
        self.disconnect_calls = 0

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_kwargs = {"url": url, **kwargs}
        if not self.succeed:
            raise TransportError("connection refused")
        self.connected = True
        await self.fire("connect")

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def emit(self, event: str, data: Any = None, callback: Any = None) -> None:
        self.emitted.append((event, data))

    async def fire(self, event: str, *args: Any) -> None:
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(*args)


class TransportFactory:
    """Hands out FakeTransports following a success/failure script.

    Once the script runs out every further handshake uses ``default``.
    """

    def __init__(self, *script: bool, default: bool = True) -> None:
        self.script = list(script)
        self.default = default
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        succeed = self.script.pop(0) if self.script else self.default
        transport = FakeTransport(succeed)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def _blocked_sleep(_delay: float) -> None:
    await asyncio.Event().wait()


async def settle(client: RealtimeClient, max_steps: int = 200) -> None:
    """Let pending reconnect timers run until none is left."""
    for _ in range(max_steps):
        await asyncio.sleep(0)
        if not client.reconnect_pending:
            return


def make_client(
    factory: TransportFactory, sleep: Any = None, **settings: Any
) -> RealtimeClient:
    return RealtimeClient(
        RealtimeSettings(**settings),
        transport_factory=factory,
        sleep=sleep or RecordingSleep(),
    )


@pytest.mark.unit
class TestConnect:
    """Tests for the initial handshake."""

    @pytest.mark.asyncio
    async def test_connect_registers_user(self):
        factory = TransportFactory()
        client = make_client(factory, base_url="http://chat.test")
        stream = client.subscribe()

        await client.connect("user-42")

        assert client.state is ConnectionState.CONNECTED
        assert client.is_connected
        assert stream.drain() == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]
        assert factory.last.emitted == [(REGISTER_EVENT, "user-42")]
        assert factory.last.connect_kwargs["url"] == "http://chat.test"
        assert factory.last.connect_kwargs["headers"] == {"userId": "user-42"}
        assert factory.last.connect_kwargs["transports"] == ["websocket"]

    @pytest.mark.asyncio
    async def test_connect_while_connected_is_noop(self):
        factory = TransportFactory()
        client = make_client(factory)
        await client.connect("user-42")

        await client.connect("user-99")

        assert len(factory.created) == 1
        assert client.user_id == "user-42"

    @pytest.mark.asyncio
    async def test_describe_status(self):
        client = make_client(TransportFactory())
        assert client.describe_status() == "not initialized"

        await client.connect("42")
        assert client.describe_status() == "Connected (user: 42)"

        await client.disconnect(permanent=True)
        assert client.describe_status() == "Disconnected (user: none)"


@pytest.mark.unit
class TestAutoReconnect:
    """Tests for the reconnection policy driven by the client."""

    @pytest.mark.asyncio
    async def test_gives_up_after_five_failed_retries(self):
        factory = TransportFactory(default=False)
        sleep = RecordingSleep()
        client = make_client(factory, sleep=sleep)
        stream = client.subscribe()

        await client.connect("user-1")
        await settle(client)

        # initial handshake + five retries
        assert len(factory.created) == 6
        assert sleep.delays == [2.0, 4.0, 6.0, 8.0, 10.0]
        assert client.state is ConnectionState.ERROR
        assert client.reconnect_attempts == 5
        assert not client.reconnect_pending

        states = stream.drain()
        assert states == [ConnectionState.CONNECTING, ConnectionState.ERROR] * 6
        assert all(a != b for a, b in zip(states, states[1:], strict=False))

    @pytest.mark.asyncio
    async def test_success_resets_attempts(self):
        factory = TransportFactory(False, False, True)
        sleep = RecordingSleep()
        client = make_client(factory, sleep=sleep)

        await client.connect("user-1")
        await settle(client)

        assert client.state is ConnectionState.CONNECTED
        assert client.reconnect_attempts == 0
        assert sleep.delays == [2.0, 4.0]
        assert factory.last.emitted == [(REGISTER_EVENT, "user-1")]

    @pytest.mark.asyncio
    async def test_unexpected_disconnect_reconnects(self):
        factory = TransportFactory()
        sleep = RecordingSleep()
        client = make_client(factory, sleep=sleep)
        await client.connect("user-1")

        await factory.last.fire("disconnect", "transport close")
        assert client.state is ConnectionState.DISCONNECTED
        assert client.reconnect_pending

        await settle(client)

        assert len(factory.created) == 2
        assert sleep.delays == [2.0]
        assert client.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_auto_reconnect_disabled(self):
        factory = TransportFactory(default=False)
        client = make_client(factory)

        await client.connect("user-1", auto_reconnect=False)
        await settle(client)

        assert len(factory.created) == 1
        assert client.state is ConnectionState.ERROR
        assert not client.reconnect_pending

    @pytest.mark.asyncio
    async def test_connect_error_event_and_exception_schedule_once(self):
        """socket.io fires connect_error and then raises; only one retry is scheduled."""
        factory = TransportFactory(default=False)
        client = make_client(factory, sleep=_blocked_sleep)

        original_connect = FakeTransport.connect

        async def connect_with_event(self: FakeTransport, url: str, **kwargs: Any) -> None:
            await self.fire("connect_error", "refused")
            await original_connect(self, url, **kwargs)

        FakeTransport.connect = connect_with_event  # type: ignore[method-assign]
        try:
            await client.connect("user-1")
        finally:
            FakeTransport.connect = original_connect  # type: ignore[method-assign]

        assert client.reconnect_attempts == 1
        assert client.reconnect_pending
        await client.close()


@pytest.mark.unit
class TestDisconnect:
    """Tests for user-initiated disconnects."""

    @pytest.mark.asyncio
    async def test_disconnect_schedules_reconnect(self):
        factory = TransportFactory()
        sleep = RecordingSleep()
        client = make_client(factory, sleep=sleep)
        await client.connect("user-1")
        transport = factory.last

        await client.disconnect()

        assert client.state is ConnectionState.DISCONNECTED
        assert client.should_auto_reconnect
        assert client.reconnect_pending
        assert client.reconnect_attempts == 1

        # late event from the closed transport is ignored
        await transport.fire("disconnect", "io client disconnect")
        await settle(client)

        assert transport.disconnect_calls == 1
        assert sleep.delays == [2.0]
        assert len(factory.created) == 2
        assert client.state is ConnectionState.CONNECTED
        assert client.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_disconnect_overrides_disabled_auto_reconnect(self):
        factory = TransportFactory()
        client = make_client(factory, sleep=_blocked_sleep)
        await client.connect("user-1", auto_reconnect=False)

        await client.disconnect()

        assert client.should_auto_reconnect
        assert client.reconnect_pending
        await client.close()
        assert not client.reconnect_pending

    @pytest.mark.asyncio
    async def test_permanent_disconnect_cancels_pending_retry(self):
        factory = TransportFactory(default=False)
        client = make_client(factory, sleep=_blocked_sleep)
        client.on_new_message(lambda _payload: None)

        await client.connect("user-1")
        assert client.reconnect_pending

        await client.disconnect(permanent=True)
        for _ in range(5):
            await asyncio.sleep(0)

        assert not client.reconnect_pending
        assert len(factory.created) == 1
        assert client.state is ConnectionState.DISCONNECTED
        assert client.user_id is None
        assert client.message_listener_count == 0

    @pytest.mark.asyncio
    async def test_emit_requires_connection(self):
        factory = TransportFactory()
        client = make_client(factory)

        assert await client.emit("typing", {"room": "a"}) is False

        await client.connect("user-1")
        assert await client.emit("typing", {"room": "a"}) is True
        assert factory.last.emitted[-1] == ("typing", {"room": "a"})

    @pytest.mark.asyncio
    async def test_emit_transport_failure_returns_false(self):
        factory = TransportFactory()
        client = make_client(factory)
        await client.connect("user-1")

        async def dropped(*_args: Any, **_kwargs: Any) -> None:
            raise TransportError("Cannot emit 'typing': not connected")

        factory.last.emit = dropped  # type: ignore[method-assign]

        assert await client.emit("typing", {"room": "a"}) is False
        assert client.state is ConnectionState.CONNECTED


@pytest.mark.unit
class TestManualReconnect:
    """Tests for reconnect()."""

    @pytest.mark.asyncio
    async def test_reconnect_without_session_raises(self):
        client = make_client(TransportFactory())

        with pytest.raises(NoActiveSessionError):
            await client.reconnect()

    @pytest.mark.asyncio
    async def test_reconnect_after_giving_up(self):
        factory = TransportFactory(False, False, False, False, False, False)
        sleep = RecordingSleep()
        client = make_client(factory, sleep=sleep)
        await client.connect("user-1")
        await settle(client)
        assert client.state is ConnectionState.ERROR

        await client.reconnect()

        assert client.state is ConnectionState.CONNECTED
        assert client.reconnect_attempts == 0
        assert sleep.delays[-1] == 0.5
        assert len(factory.created) == 7

    @pytest.mark.asyncio
    async def test_reconnect_replaces_disconnect_retry(self):
        factory = TransportFactory()
        sleep = RecordingSleep()
        client = make_client(factory, sleep=sleep)
        await client.connect("user-1")

        await client.reconnect()
        await settle(client)

        assert sleep.delays == [0.5]
        assert len(factory.created) == 2
        assert client.state is ConnectionState.CONNECTED
        assert client.reconnect_attempts == 0


@pytest.mark.unit
class TestMessages:
    """Tests for new_message delivery through the transport."""

    @pytest.mark.asyncio
    async def test_handlers_survive_reconnects(self):
        factory = TransportFactory()
        client = make_client(factory)
        received: list[Any] = []
        client.on_new_message(received.append)
        client.on_new_message(received.append)

        await client.connect("user-1")
        await factory.last.fire(NEW_MESSAGE_EVENT, {"text": "first"})

        await factory.last.fire("disconnect", "ping timeout")
        await settle(client)
        await factory.last.fire(NEW_MESSAGE_EVENT, {"text": "second"})

        assert received == [{"text": "first"}, {"text": "second"}]

    @pytest.mark.asyncio
    async def test_stale_transport_disconnect_is_ignored(self):
        factory = TransportFactory()
        client = make_client(factory)
        await client.connect("user-1")
        first = factory.last

        await client.reconnect()
        await first.fire("disconnect", "io client disconnect")

        assert client.state is ConnectionState.CONNECTED
        assert not client.reconnect_pending
        assert len(factory.created) == 2
