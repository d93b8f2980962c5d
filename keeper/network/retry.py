"""Fixed-delay reconnect timer that runs beside the event dispatcher."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RetryScheduler:
    """Owns at most one pending retry task.

    The wait happens in its own task so the dispatcher keeps delivering
    events while the delay runs. Once the delay elapses the task is no
    longer *pending*, but it stays cancellable until the callback returns.
    """

    def __init__(self, *, sleep: Sleep = asyncio.sleep) -> None:
        self._sleep = sleep
        self._task: Optional[asyncio.Task[None]] = None
        self._firing: Optional[asyncio.Task[None]] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def firing(self) -> bool:
        return self._firing is not None and not self._firing.done()

    def schedule(
        self,
        delay: float,
        on_fire: Callable[[], Awaitable[None]],
        should_cancel: Callable[[], bool],
    ) -> bool:
        """Start the countdown; returns ``False`` if a retry is already pending."""

        if self.pending:
            LOGGER.debug("Retry already pending; ignoring new request")
            return False
        self._task = asyncio.create_task(self._run(delay, on_fire, should_cancel), name="session-retry")
        return True

    async def cancel(self) -> None:
        """Cancel the countdown and any callback still in flight."""

        for task in self._detach():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def cancel_nowait(self) -> None:
        """Cancel from a context that must not await the task."""

        for task in self._detach():
            task.cancel()

    def _detach(self) -> list[asyncio.Task[None]]:
        current = asyncio.current_task()
        tasks = [task for task in (self._task, self._firing) if task is not None and not task.done()]
        self._task = None
        self._firing = None
        # A callback cancelling its own retry just lets itself finish.
        return [task for task in tasks if task is not current]

    async def _run(
        self,
        delay: float,
        on_fire: Callable[[], Awaitable[None]],
        should_cancel: Callable[[], bool],
    ) -> None:
        await self._sleep(delay)
        if should_cancel():
            LOGGER.info("Retry suppressed: shutdown requested")
            return
        current = asyncio.current_task()
        # Move out of the pending slot so the callback may schedule a fresh retry.
        if self._task is current:
            self._task = None
        self._firing = current
        try:
            await on_fire()
        except Exception:  # noqa: BLE001
            LOGGER.exception("Retry callback failed")
        finally:
            if self._firing is current:
                self._firing = None
