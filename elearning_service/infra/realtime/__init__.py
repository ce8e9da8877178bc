"""Realtime client infrastructure.

This package provides the client side of the Socket.IO channel:
- ConnectionStateMachine: current state plus a multi-subscriber change stream
- ReconnectionController: linear-backoff retries with a cancellable timer
- EventDispatcher: isolated fan-out of inbound events to handlers
- RealtimeClient: ties the three together around a per-handshake transport
"""

from elearning_service.infra.realtime.client import REGISTER_EVENT, RealtimeClient
from elearning_service.infra.realtime.dispatcher import (
    LIFECYCLE_EVENTS,
    NEW_MESSAGE_EVENT,
    DispatchResult,
    EventDispatcher,
)
from elearning_service.infra.realtime.reconnect import ReconnectionController
from elearning_service.infra.realtime.state import (
    ConnectionSession,
    ConnectionState,
    ConnectionStateMachine,
    StateSubscription,
)
from elearning_service.infra.realtime.transport import (
    RealtimeTransport,
    SocketIOTransport,
    socketio_transport_factory,
)

__all__ = [
    "LIFECYCLE_EVENTS",
    "NEW_MESSAGE_EVENT",
    "REGISTER_EVENT",
    "ConnectionSession",
    "ConnectionState",
    "ConnectionStateMachine",
    "DispatchResult",
    "EventDispatcher",
    "RealtimeClient",
    "RealtimeTransport",
    "ReconnectionController",
    "SocketIOTransport",
    "StateSubscription",
    "socketio_transport_factory",
]
