"""Unit tests for inbound event fan-out."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from elearning_service.core.exceptions import SubscriberCallbackError
from elearning_service.infra.realtime.dispatcher import (
    NEW_MESSAGE_EVENT,
    EventDispatcher,
)


class RecordingTransport:
    """Keeps whatever handlers the dispatcher binds."""

    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler


@pytest.mark.unit
class TestNewMessageFanOut:
    """Tests for broadcast new_message handlers."""

    @pytest.mark.asyncio
    async def test_every_handler_receives_the_payload(self):
        dispatcher = EventDispatcher()
        first, second = MagicMock(), MagicMock()
        dispatcher.on_new_message(first)
        dispatcher.on_new_message(second)

        await dispatcher.dispatch_new_message({"text": "hello"})

        first.assert_called_once_with({"text": "hello"})
        second.assert_called_once_with({"text": "hello"})

    @pytest.mark.asyncio
    async def test_duplicate_registration_delivers_once(self):
        dispatcher = EventDispatcher()
        handler = MagicMock()

        assert dispatcher.on_new_message(handler) is True
        assert dispatcher.on_new_message(handler) is False
        await dispatcher.dispatch_new_message("ping")

        handler.assert_called_once_with("ping")
        assert dispatcher.message_listener_count == 1

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self):
        dispatcher = EventDispatcher()
        delivered: list[Any] = []

        def broken(_payload: Any) -> None:
            raise ValueError("bad payload")

        dispatcher.on_new_message(broken)
        dispatcher.on_new_message(delivered.append)

        results = await dispatcher.dispatch_new_message("ping")

        assert delivered == ["ping"]
        assert [r.ok for r in results] == [False, True]
        assert isinstance(results[0].error, SubscriberCallbackError)
        assert isinstance(results[0].error.cause, ValueError)
        assert results[0].error.event == NEW_MESSAGE_EVENT

    @pytest.mark.asyncio
    async def test_async_handlers_are_awaited(self):
        dispatcher = EventDispatcher()
        delivered: list[Any] = []

        async def handler(payload: Any) -> str:
            delivered.append(payload)
            return "done"

        dispatcher.on_new_message(handler)
        results = await dispatcher.dispatch_new_message(42)

        assert delivered == [42]
        assert results[0].value == "done"

    @pytest.mark.asyncio
    async def test_registration_order_is_delivery_order(self):
        dispatcher = EventDispatcher()
        order: list[str] = []
        dispatcher.on_new_message(lambda _p: order.append("a"))
        dispatcher.on_new_message(lambda _p: order.append("b"))

        await dispatcher.dispatch_new_message(None)

        assert order == ["a", "b"]

    @pytest.mark.asyncio
    async def test_off_removes_one_or_all(self):
        dispatcher = EventDispatcher()
        first, second = MagicMock(), MagicMock()
        dispatcher.on_new_message(first)
        dispatcher.on_new_message(second)

        dispatcher.off_new_message(first)
        await dispatcher.dispatch_new_message("x")
        dispatcher.off_new_message()
        await dispatcher.dispatch_new_message("y")

        first.assert_not_called()
        second.assert_called_once_with("x")
        assert dispatcher.message_listener_count == 0


@pytest.mark.unit
class TestNamedHandlers:
    """Tests for per-event handlers and transport binding."""

    @pytest.mark.asyncio
    async def test_named_handlers_are_independent_of_broadcast(self):
        dispatcher = EventDispatcher()
        broadcast, named = MagicMock(), MagicMock()
        dispatcher.on_new_message(broadcast)
        dispatcher.on(NEW_MESSAGE_EVENT, named)

        dispatcher.off_new_message()
        await dispatcher.dispatch_new_message("hi")

        broadcast.assert_not_called()
        named.assert_called_once_with("hi")

    @pytest.mark.asyncio
    async def test_bind_routes_transport_events(self):
        dispatcher = EventDispatcher()
        handler = MagicMock()
        dispatcher.on("grade_posted", handler)
        dispatcher.on_new_message(handler)
        transport = RecordingTransport()

        dispatcher.bind(transport)
        await transport.handlers["grade_posted"]({"score": 9})
        await transport.handlers[NEW_MESSAGE_EVENT]("hello")

        assert handler.call_count == 2
        handler.assert_any_call({"score": 9})
        handler.assert_any_call("hello")

    def test_lifecycle_events_are_not_bound(self):
        dispatcher = EventDispatcher()
        dispatcher.on("disconnect", MagicMock())
        transport = RecordingTransport()

        dispatcher.bind(transport)

        assert "disconnect" not in transport.handlers
        assert NEW_MESSAGE_EVENT in transport.handlers

    def test_on_after_bind_binds_immediately(self):
        dispatcher = EventDispatcher()
        transport = RecordingTransport()
        dispatcher.bind(transport)

        dispatcher.on("announcement", MagicMock())

        assert "announcement" in transport.handlers

    def test_off_and_clear(self):
        dispatcher = EventDispatcher()
        first, second = MagicMock(), MagicMock()
        dispatcher.on("announcement", first)
        dispatcher.on("announcement", second)

        dispatcher.off("announcement", first)
        assert dispatcher.handlers_for("announcement") == [second]

        dispatcher.on_new_message(first)
        dispatcher.clear()
        assert dispatcher.handlers_for("announcement") == []
        assert dispatcher.message_listener_count == 0
