"""WebSocket bridge to an SDK process speaking JSON frames."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ValidationError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from keeper.config import KeeperSettings
from keeper.protocol import CredentialAck, DisconnectedEvent, LogOnDetails, SessionEvent, parse_event

from .base import SessionTransport, TransportError

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(SessionTransport):
    """Forwards requests to the bridge and turns its frames into events.

    Losing the bridge socket is reported as a ``disconnected`` event; the next
    ``connect`` request re-opens it.
    """

    def __init__(self, settings: KeeperSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None
        self._opened = asyncio.Event()

    async def open(self) -> None:
        if self._ws is not None:
            return
        LOGGER.info("Connecting to SDK bridge at %s", self._settings.gateway_ws_url)
        try:
            self._ws = await connect(str(self._settings.gateway_ws_url))
        except (OSError, WebSocketException) as exc:
            raise TransportError(f"SDK bridge unreachable: {exc}") from exc
        self._opened.set()

    async def connect(self) -> None:
        await self.open()
        await self._send({"type": "connect"})

    async def disconnect(self) -> None:
        await self._send({"type": "disconnect"})

    async def log_on(self, details: LogOnDetails) -> None:
        await self._send(details)

    async def log_off(self) -> None:
        await self._send({"type": "logOff"})

    async def send_credential_ack(self, ack: CredentialAck) -> None:
        await self._send(ack)

    async def receive(self) -> SessionEvent:
        while True:
            ws = self._ws
            if ws is None:
                await self._opened.wait()
                continue
            try:
                raw = await ws.recv()
            except ConnectionClosed as exc:
                LOGGER.warning("SDK bridge connection closed: %s", exc)
                self._drop()
                return DisconnectedEvent()
            LOGGER.debug("WebSocket receive: %s", raw)
            try:
                return parse_event(raw)
            except ValidationError as exc:
                LOGGER.warning("Dropping malformed bridge frame: %s", exc)

    async def close(self) -> None:
        ws = self._ws
        if ws:
            LOGGER.info("Closing SDK bridge connection")
            self._drop()
            await ws.close()

    async def _send(self, message: BaseModel | dict[str, Any]) -> None:
        if not self._ws:
            raise TransportError("SDK bridge not connected")
        if isinstance(message, BaseModel):
            kind = getattr(message, "type", type(message).__name__)
            payload = message.model_dump_json(by_alias=True)
        else:
            kind = message.get("type")
            payload = json.dumps(message)
        # Payload stays out of the log; logon frames carry the password.
        LOGGER.debug("WebSocket send: %s", kind)
        try:
            await self._ws.send(payload)
        except ConnectionClosed as exc:
            self._drop()
            raise TransportError("SDK bridge connection closed") from exc

    def _drop(self) -> None:
        self._ws = None
        self._opened.clear()
