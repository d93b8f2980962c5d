import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import pytest

from keeper.collaborators import (
    AuthCodePrompt,
    CatalogSync,
    JobCoordinator,
    Notifier,
    PeriodicTimer,
    StatusReporter,
)
from keeper.config import KeeperSettings
from keeper.credentials import CredentialStore
from keeper.network.controller import SessionController
from keeper.network.retry import RetryScheduler
from keeper.network.transport.dummy import DummyTransport


class FakeClock:
    """Sleep replacement: records delays and waits until released."""

    def __init__(self, journal: Optional[list[str]] = None) -> None:
        self.delays: list[float] = []
        self._gate = asyncio.Event()
        self._journal = journal

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        if self._journal is not None:
            self._journal.append(f"sleep:{delay:g}")
        await self._gate.wait()

    def release(self) -> None:
        self._gate.set()


class RecordingSleep:
    """Sleep replacement that records delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.main: list[str] = []
        self.emotes: list[str] = []

    async def announce_main(self, message: str) -> None:
        self.main.append(message)

    async def announce_emote(self, message: str) -> None:
        self.emotes.append(message)


class RecordingStatusReporter(StatusReporter):
    def __init__(self) -> None:
        self.updates: list[tuple[int, str]] = []

    async def update_status(self, channel_id: int, status: str) -> None:
        self.updates.append((channel_id, status))


class RecordingJobs(JobCoordinator):
    def __init__(self, journal: list[str]) -> None:
        self.cancelled = 0
        self.restarted = 0
        self._journal = journal

    async def cancel_pending_jobs(self) -> None:
        self.cancelled += 1
        self._journal.append("cancel-jobs")

    async def restart_pending_jobs(self) -> None:
        self.restarted += 1
        self._journal.append("restart-jobs")


class RecordingCatalog(CatalogSync):
    def __init__(self, needs_sync: bool = True) -> None:
        self.needs_sync = needs_sync
        self.started = 0

    def needs_initial_sync(self) -> bool:
        return self.needs_sync

    async def start_initial_sync(self) -> None:
        self.started += 1
        self.needs_sync = False


class ScriptedPrompt(AuthCodePrompt):
    def __init__(self, answer: str = "ABC12") -> None:
        self.answer = answer
        self.asked: list[Optional[str]] = []

    async def ask(self, email_domain: Optional[str]) -> str:
        self.asked.append(email_domain)
        return self.answer


async def _noop_tick() -> None:
    return None


@dataclass
class Harness:
    settings: KeeperSettings
    controller: SessionController
    transport: DummyTransport
    credentials: CredentialStore
    notifier: RecordingNotifier
    status: RecordingStatusReporter
    jobs: RecordingJobs
    catalog: RecordingCatalog
    prompt: ScriptedPrompt
    timer: PeriodicTimer
    clock: FakeClock
    retry: RetryScheduler
    cooldown: RecordingSleep
    journal: list[str] = field(default_factory=list)

    def logons(self) -> list[Any]:
        return [item for item in self.transport.sent if not isinstance(item, str) and item.type == "logOn"]

    def connects(self) -> int:
        return self.transport.sent.count("connect")

    async def close(self) -> None:
        self.clock.release()
        await self.retry.cancel()
        await self.timer.aclose()


@pytest.fixture
def make_harness(tmp_path: Path):
    def _make(*, transport: Optional[DummyTransport] = None, **overrides: Any) -> Harness:
        values: dict[str, Any] = {
            "username": "bot",
            "password": "hunter2",
            "retry_delay_seconds": 15,
            "sentry_file": tmp_path / "sentry.bin",
            "transport": "dummy",
        }
        values.update(overrides)
        settings = KeeperSettings(**values)
        journal: list[str] = []
        clock = FakeClock(journal)
        retry = RetryScheduler(sleep=clock.sleep)
        cooldown = RecordingSleep()
        transport = transport or DummyTransport(settings, auto_reply=False)
        credentials = CredentialStore(settings.sentry_file)
        notifier = RecordingNotifier()
        status = RecordingStatusReporter()
        jobs = RecordingJobs(journal)
        catalog = RecordingCatalog()
        prompt = ScriptedPrompt()
        timer = PeriodicTimer(3600, _noop_tick)
        controller = SessionController(
            settings,
            transport,
            credentials=credentials,
            notifier=notifier,
            status_reporter=status,
            jobs=jobs,
            timer=timer,
            catalog=catalog,
            auth_prompt=prompt,
            retry=retry,
            sleep=cooldown.sleep,
        )
        return Harness(
            settings=settings,
            controller=controller,
            transport=transport,
            credentials=credentials,
            notifier=notifier,
            status=status,
            jobs=jobs,
            catalog=catalog,
            prompt=prompt,
            timer=timer,
            clock=clock,
            retry=retry,
            cooldown=cooldown,
            journal=journal,
        )

    return _make

