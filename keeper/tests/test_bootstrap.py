import asyncio

import pytest

from keeper.bootstrap import build_keeper
from keeper.config import KeeperSettings
from keeper.network.session_state import SessionState
from keeper.network.transport.dummy import DummyTransport


async def _wait_for(predicate, *, timeout: float = 1.0, interval: float = 0.01) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.mark.asyncio
async def test_dummy_stack_reaches_logged_on_and_shuts_down(tmp_path):
    ticks = []

    async def tick() -> None:
        ticks.append(True)

    settings = KeeperSettings(
        transport="dummy",
        username="bot",
        password="pw",
        poll_interval_seconds=0.01,
        sentry_file=tmp_path / "sentry.bin",
    )
    keeper = build_keeper(settings, tick=tick)
    assert isinstance(keeper.transport, DummyTransport)

    await keeper.start()
    try:
        assert await _wait_for(lambda: keeper.controller.state is SessionState.LOGGED_ON)
        assert await _wait_for(lambda: len(ticks) >= 2)
        assert keeper.timer.enabled
    finally:
        await keeper.stop()

    assert not keeper.controller.running
    assert not keeper.timer.enabled
    assert not keeper.dispatcher.running
    assert keeper.transport.sent[-2:] == ["logOff", "disconnect"]
