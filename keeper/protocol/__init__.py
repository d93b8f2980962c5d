"""Typed events, commands and result codes exchanged with the protocol SDK."""

from .commands import CredentialAck, LogOnDetails
from .events import (
    ConnectedEvent,
    CredentialRotationRequest,
    DisconnectedEvent,
    LoggedOffEvent,
    LoggedOnEvent,
    SessionEvent,
    parse_event,
)
from .results import ResultCode

__all__ = [
    "ResultCode",
    "ConnectedEvent",
    "DisconnectedEvent",
    "LoggedOnEvent",
    "LoggedOffEvent",
    "CredentialRotationRequest",
    "SessionEvent",
    "parse_event",
    "LogOnDetails",
    "CredentialAck",
]
