"""Serial delivery of SDK events to registered handlers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, Dict, List, Optional

from keeper.network.transport.base import SessionTransport
from keeper.protocol import SessionEvent

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None]]


class EventDispatcher:
    """Reads events from the transport and awaits each handler in turn.

    Only one handler runs at a time, so handlers may share state without
    locking; a handler that blocks also holds up every later event. Work
    that originates elsewhere (the reconnect timer) enters the same serial
    context through :meth:`submit`.
    """

    def __init__(self, transport: SessionTransport, *, error_backoff: float = 1.0) -> None:
        self._transport = transport
        self._error_backoff = error_backoff
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._task: Optional[asyncio.Task[None]] = None
        self._serial = asyncio.Lock()

    def register_handler(self, event_type: str, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-dispatch")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def dispatch(self, event: SessionEvent) -> None:
        handlers = self._handlers.get(event.type)
        if not handlers:
            LOGGER.debug("No handler registered for event type %s", event.type)
            return
        async with self._serial:
            for handler in list(handlers):
                try:
                    await handler(event)
                except asyncio.CancelledError:
                    raise
                except Exception:  # noqa: BLE001
                    LOGGER.exception("Handler for %s failed", event.type)

    async def submit(self, func: Callable[[], Awaitable[None]]) -> None:
        """Run ``func`` once no handler is active, holding off later events."""

        async with self._serial:
            try:
                await func()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                LOGGER.exception("Submitted call %s failed", getattr(func, "__qualname__", func))

    async def _run(self) -> None:
        while True:
            try:
                event = await self._transport.receive()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                LOGGER.exception("Event receive failed; retrying in %.1fs", self._error_backoff)
                await asyncio.sleep(self._error_backoff)
                continue
            await self.dispatch(event)
