"""In-memory transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from keeper.protocol import (
    ConnectedEvent,
    CredentialAck,
    DisconnectedEvent,
    LoggedOffEvent,
    LoggedOnEvent,
    LogOnDetails,
    ResultCode,
    SessionEvent,
)

from .base import SessionTransport

LOGGER = logging.getLogger(__name__)


class DummyTransport(SessionTransport):
    """Answers every request with a successful event and records what was sent."""

    def __init__(self, settings: Any = None, *, auto_reply: bool = True) -> None:
        self._settings = settings
        self._auto_reply = auto_reply
        self._events: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self.sent: list[Any] = []

    def push(self, event: SessionEvent) -> None:
        """Inject an event as if the SDK had raised it."""

        self._events.put_nowait(event)

    async def connect(self) -> None:
        LOGGER.debug("Dummy transport connect()")
        self.sent.append("connect")
        if self._auto_reply:
            self.push(ConnectedEvent(result=ResultCode.OK))

    async def disconnect(self) -> None:
        LOGGER.debug("Dummy transport disconnect()")
        self.sent.append("disconnect")
        if self._auto_reply:
            self.push(DisconnectedEvent())

    async def log_on(self, details: LogOnDetails) -> None:
        LOGGER.debug("Dummy transport log_on(): %r", details)
        self.sent.append(details)
        if self._auto_reply:
            self.push(LoggedOnEvent(result=ResultCode.OK, server_time=datetime.now(timezone.utc)))

    async def log_off(self) -> None:
        LOGGER.debug("Dummy transport log_off()")
        self.sent.append("logOff")
        if self._auto_reply:
            self.push(LoggedOffEvent(result=ResultCode.OK))

    async def send_credential_ack(self, ack: CredentialAck) -> None:
        LOGGER.debug("Dummy transport send_credential_ack(): job=%s", ack.job_id)
        self.sent.append(ack)

    async def receive(self) -> SessionEvent:
        return await self._events.get()

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
