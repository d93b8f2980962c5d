import asyncio
import logging

import pytest

from keeper.network.dispatcher import EventDispatcher
from keeper.network.transport.dummy import DummyTransport
from keeper.protocol import ConnectedEvent, DisconnectedEvent, LoggedOffEvent, ResultCode


async def _wait_for(predicate, *, timeout: float = 0.5, interval: float = 0.01) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.mark.asyncio
async def test_events_are_delivered_one_at_a_time():
    transport = DummyTransport(auto_reply=False)
    dispatcher = EventDispatcher(transport)
    active = {"count": 0, "max": 0}
    seen = []

    async def slow_handler(event) -> None:
        active["count"] += 1
        active["max"] = max(active["max"], active["count"])
        await asyncio.sleep(0.01)
        seen.append(event.type)
        active["count"] -= 1

    dispatcher.register_handler("connected", slow_handler)
    dispatcher.register_handler("disconnected", slow_handler)
    transport.push(ConnectedEvent(result=ResultCode.OK))
    transport.push(DisconnectedEvent())
    transport.push(ConnectedEvent(result=ResultCode.OK))

    dispatcher.start()
    try:
        assert await _wait_for(lambda: len(seen) == 3)
    finally:
        await dispatcher.stop()

    assert seen == ["connected", "disconnected", "connected"]
    assert active["max"] == 1


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_delivery(caplog):
    transport = DummyTransport(auto_reply=False)
    dispatcher = EventDispatcher(transport)
    seen = []

    async def broken(event) -> None:
        raise RuntimeError("handler bug")

    async def recorder(event) -> None:
        seen.append(event.type)

    dispatcher.register_handler("connected", broken)
    dispatcher.register_handler("connected", recorder)
    dispatcher.register_handler("disconnected", recorder)
    caplog.set_level(logging.ERROR)

    dispatcher.start()
    try:
        transport.push(ConnectedEvent(result=ResultCode.OK))
        transport.push(DisconnectedEvent())
        assert await _wait_for(lambda: seen == ["connected", "disconnected"])
    finally:
        await dispatcher.stop()

    assert any("Handler for connected failed" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_unhandled_event_type_is_ignored():
    transport = DummyTransport(auto_reply=False)
    dispatcher = EventDispatcher(transport)

    await dispatcher.dispatch(LoggedOffEvent(result=ResultCode.OK))

    assert not dispatcher.running


@pytest.mark.asyncio
async def test_submitted_call_waits_for_running_handler():
    transport = DummyTransport(auto_reply=False)
    dispatcher = EventDispatcher(transport)
    order = []
    resume = asyncio.Event()

    async def slow_handler(event) -> None:
        order.append("handler-start")
        await resume.wait()
        order.append("handler-end")

    async def submitted() -> None:
        order.append("submitted")

    dispatcher.register_handler("connected", slow_handler)
    delivery = asyncio.create_task(dispatcher.dispatch(ConnectedEvent(result=ResultCode.OK)))
    assert await _wait_for(lambda: order == ["handler-start"])

    pending = asyncio.create_task(dispatcher.submit(submitted))
    await asyncio.sleep(0.02)
    assert order == ["handler-start"]

    resume.set()
    await asyncio.gather(delivery, pending)

    assert order == ["handler-start", "handler-end", "submitted"]


@pytest.mark.asyncio
async def test_failing_submitted_call_is_contained(caplog):
    dispatcher = EventDispatcher(DummyTransport(auto_reply=False))

    async def broken() -> None:
        raise RuntimeError("reconnect bug")

    caplog.set_level(logging.ERROR)
    await dispatcher.submit(broken)

    assert any("Submitted call" in record.message for record in caplog.records)
