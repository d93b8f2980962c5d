"""Keeper bootstrap entrypoint for transport/controller wiring."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Type

from keeper.collaborators import (
    AuthCodePrompt,
    CatalogSync,
    ConsoleAuthCodePrompt,
    JobCoordinator,
    LoggingNotifier,
    LoggingStatusReporter,
    Notifier,
    NullCatalogSync,
    NullJobCoordinator,
    PeriodicTimer,
    StatusReporter,
)
from keeper.config import KeeperSettings, get_settings
from keeper.credentials import CredentialStore
from keeper.network.controller import SessionController
from keeper.network.dispatcher import EventDispatcher
from keeper.network.transport.base import SessionTransport
from keeper.network.transport.dummy import DummyTransport
from keeper.network.transport.websocket import WebSocketTransport

LOGGER = logging.getLogger(__name__)


async def _idle_tick() -> None:
    LOGGER.debug("Periodic tick")


@dataclass
class Keeper:
    """Running session stack: transport, dispatcher and controller."""

    transport: SessionTransport
    dispatcher: EventDispatcher
    controller: SessionController
    timer: PeriodicTimer = field(repr=False)

    async def start(self) -> None:
        self.dispatcher.start()
        await self.controller.start()

    async def stop(self) -> None:
        await self.controller.stop()
        await self.timer.aclose()
        await self.dispatcher.stop()
        await self.transport.close()


def build_keeper(
    settings: KeeperSettings,
    *,
    transport: Optional[SessionTransport] = None,
    notifier: Optional[Notifier] = None,
    status_reporter: Optional[StatusReporter] = None,
    jobs: Optional[JobCoordinator] = None,
    catalog: Optional[CatalogSync] = None,
    auth_prompt: Optional[AuthCodePrompt] = None,
    tick: Callable[[], Awaitable[None]] = _idle_tick,
) -> Keeper:
    """Construct and wire the session stack without starting it."""

    if transport is None:
        resolved_cls: Type[SessionTransport]
        resolved_cls = WebSocketTransport if settings.transport == "websocket" else DummyTransport
        LOGGER.debug("Initialising session transport via %s", resolved_cls.__name__)
        transport = resolved_cls(settings)

    timer = PeriodicTimer(settings.poll_interval_seconds, tick)
    controller = SessionController(
        settings,
        transport,
        credentials=CredentialStore(settings.sentry_file),
        notifier=notifier or LoggingNotifier(),
        status_reporter=status_reporter or LoggingStatusReporter(),
        jobs=jobs or NullJobCoordinator(),
        timer=timer,
        catalog=catalog or NullCatalogSync(),
        auth_prompt=auth_prompt or ConsoleAuthCodePrompt(),
    )
    dispatcher = EventDispatcher(transport)
    controller.attach(dispatcher)
    return Keeper(transport=transport, dispatcher=dispatcher, controller=controller, timer=timer)


async def serve_forever() -> None:
    """Start the session stack and keep the process alive."""

    keeper = build_keeper(get_settings())
    await keeper.start()
    try:
        await asyncio.Future()  # block until cancelled
    except asyncio.CancelledError:
        LOGGER.info("Keeper shutdown requested")
        raise
    finally:
        await keeper.stop()
