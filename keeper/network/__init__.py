"""Session stack: transport, dispatcher, controller and retry policy."""

from keeper.network.controller import SessionController
from keeper.network.dispatcher import EventDispatcher
from keeper.network.retry import RetryScheduler
from keeper.network.session_state import SessionState, SessionTracker
from keeper.network.transport.base import SessionTransport, TransportError
from keeper.network.transport.dummy import DummyTransport
from keeper.network.transport.websocket import WebSocketTransport

__all__ = [
    "SessionController",
    "EventDispatcher",
    "RetryScheduler",
    "SessionState",
    "SessionTracker",
    "SessionTransport",
    "TransportError",
    "DummyTransport",
    "WebSocketTransport",
]
