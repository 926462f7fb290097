import asyncio
import json

import pytest

from arena_relay.api.connections import ConnectionManager
from arena_relay.core.event_bus import Event, EventType


class FakeWebSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError('gone')
        self.sent.append(json.loads(text))


@pytest.mark.asyncio
async def test_broadcast_reaches_all_clients():
    manager = ConnectionManager()
    a, b = FakeWebSocket(), FakeWebSocket()
    await manager.connect('a', a)
    await manager.connect('b', b)
    assert a.accepted
    assert await manager.broadcast({'channel': 'prices'}) == 2
    assert b.sent == [{'channel': 'prices'}]


@pytest.mark.asyncio
async def test_failed_client_is_dropped():
    manager = ConnectionManager()
    await manager.connect('ok', FakeWebSocket())
    await manager.connect('bad', FakeWebSocket(fail=True))
    assert await manager.broadcast({'x': 1}) == 1
    assert len(manager) == 1


@pytest.mark.asyncio
async def test_market_update_handler():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    await manager.connect('a', ws)
    await manager.on_market_update(Event(event_type=EventType.MARKET_UPDATE, data={'channel': 'trades'}))
    assert ws.sent == [{'channel': 'trades'}]
    manager.disconnect('a')
    manager.disconnect('a')
    assert await manager.broadcast({'x': 1}) == 0


@pytest.mark.asyncio
async def test_broadcast_does_not_wait_on_slow_client():
    class SlowWebSocket(FakeWebSocket):
        def __init__(self):
            super().__init__()
            self.release = asyncio.Event()

        async def send_text(self, text):
            await self.release.wait()
            await super().send_text(text)

    manager = ConnectionManager()
    slow, fast = SlowWebSocket(), FakeWebSocket()
    await manager.connect('slow', slow)
    await manager.connect('fast', fast)

    task = asyncio.create_task(manager.broadcast({'x': 1}))
    while not fast.sent:
        await asyncio.sleep(0)
    assert slow.sent == []

    slow.release.set()
    assert await task == 2
    assert slow.sent == [{'x': 1}]
