"""Narrow interfaces to the systems the session controller reports to.

Announcements, status reporting, job coordination and catalog sync live
outside the keeper. Each gets a small ABC plus a default implementation
that only logs, so the keeper can run on its own.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

LOGGER = logging.getLogger(__name__)


class Notifier(ABC):
    """Fire-and-forget chat announcements."""

    @abstractmethod
    async def announce_main(self, message: str) -> None:
        ...

    @abstractmethod
    async def announce_emote(self, message: str) -> None:
        ...


class StatusReporter(ABC):
    @abstractmethod
    async def update_status(self, channel_id: int, status: str) -> None:
        ...


class JobCoordinator(ABC):
    """Owns jobs whose replies are bound to chat requests."""

    @abstractmethod
    async def cancel_pending_jobs(self) -> None:
        ...

    @abstractmethod
    async def restart_pending_jobs(self) -> None:
        ...


class CatalogSync(ABC):
    """One-shot full catalog fetch used in full synchronization mode."""

    @abstractmethod
    def needs_initial_sync(self) -> bool:
        ...

    @abstractmethod
    async def start_initial_sync(self) -> None:
        ...


class AuthCodePrompt(ABC):
    @abstractmethod
    async def ask(self, email_domain: Optional[str]) -> str:
        """Return the one-time code the operator received by email."""


class LoggingNotifier(Notifier):
    async def announce_main(self, message: str) -> None:
        LOGGER.info("[main] %s", message)

    async def announce_emote(self, message: str) -> None:
        LOGGER.info("[emote] %s", message)


class LoggingStatusReporter(StatusReporter):
    async def update_status(self, channel_id: int, status: str) -> None:
        LOGGER.info("Status[%s] = %s", channel_id, status)


class NullJobCoordinator(JobCoordinator):
    async def cancel_pending_jobs(self) -> None:
        return None

    async def restart_pending_jobs(self) -> None:
        return None


class NullCatalogSync(CatalogSync):
    def needs_initial_sync(self) -> bool:
        return False

    async def start_initial_sync(self) -> None:
        return None


class ConsoleAuthCodePrompt(AuthCodePrompt):
    """Reads the code from stdin in a worker thread.

    The caller still awaits the answer, so event delivery pauses until the
    operator types the code.
    """

    async def ask(self, email_domain: Optional[str]) -> str:
        question = f"Two-factor code required. Enter the code sent to the email at {email_domain or 'your account'}: "
        answer = await asyncio.to_thread(input, question)
        return answer.strip()


class PeriodicTimer:
    """Restartable interval loop driving the unrelated polling work."""

    def __init__(
        self,
        interval: float,
        tick: Callable[[], Awaitable[None]],
        *,
        name: str = "periodic-timer",
    ) -> None:
        self._interval = float(interval)
        self._tick = tick
        self._name = name
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def enabled(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.enabled:
            return
        self._task = asyncio.create_task(self._loop(), name=self._name)

    def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Periodic tick failed: %s", exc)
