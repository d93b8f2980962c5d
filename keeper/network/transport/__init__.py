"""Transport implementations bridging to the protocol SDK."""

from .base import SessionTransport, TransportError
from .dummy import DummyTransport
from .websocket import WebSocketTransport

__all__ = ["SessionTransport", "TransportError", "DummyTransport", "WebSocketTransport"]
