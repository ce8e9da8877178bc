"""Transport seam between the realtime client and python-socketio."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

import socketio
from socketio import exceptions as sio_exceptions

from elearning_service.core.exceptions import TransportError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RealtimeTransport(Protocol):
    """What the client needs from a Socket.IO connection.

    One instance per handshake: the client never reuses a transport after
    disconnecting it.
    """

    @property
    def connected(self) -> bool: ...

    def on(self, event: str, handler: Callable[..., Awaitable[Any]]) -> None: ...

    async def connect(
        self,
        url: str,
        *,
        headers: dict[str, str],
        transports: list[str],
        socketio_path: str,
        wait_timeout: float,
    ) -> None: ...

    async def disconnect(self) -> None: ...

    async def emit(
        self, event: str, data: Any = None, callback: Callable[..., Any] | None = None
    ) -> None: ...


class SocketIOTransport:
    """RealtimeTransport over ``socketio.AsyncClient``.

    Socket.IO's own reconnection is switched off: the client's
    ReconnectionController is the only thing that retries.
    """

    def __init__(self, client: socketio.AsyncClient | None = None) -> None:
        self._client = client or socketio.AsyncClient(
            reconnection=False,
            logger=False,
            engineio_logger=False,
        )

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    def on(self, event: str, handler: Callable[..., Awaitable[Any]]) -> None:
        self._client.on(event, handler)

    async def connect(
        self,
        url: str,
        *,
        headers: dict[str, str],
        transports: list[str],
        socketio_path: str,
        wait_timeout: float,
    ) -> None:
        try:
            await self._client.connect(
                url,
                headers=headers,
                transports=transports,
                socketio_path=socketio_path,
                wait_timeout=wait_timeout,
            )
        except (sio_exceptions.ConnectionError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"Could not connect to {url}: {e}", url=url) from e

    async def disconnect(self) -> None:
        await self._client.disconnect()

    async def emit(
        self, event: str, data: Any = None, callback: Callable[..., Any] | None = None
    ) -> None:
        try:
            await self._client.emit(event, data, callback=callback)
        except sio_exceptions.BadNamespaceError as e:
            raise TransportError(f"Cannot emit '{event}': not connected", event=event) from e


def socketio_transport_factory() -> SocketIOTransport:
    """Default transport factory: a fresh Socket.IO client per handshake."""
    return SocketIOTransport()
