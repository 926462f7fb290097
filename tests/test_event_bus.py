import pytest

from arena_relay.core.event_bus import Event, EventBus, EventPriority, EventType


@pytest.mark.asyncio
async def test_emit_calls_sync_and_async_handlers():
    bus = EventBus()
    seen = []

    async def async_handler(event):
        seen.append(('async', event.data))

    bus.subscribe(EventType.SIGNAL_DETECTED, lambda e: seen.append(('sync', e.data)))
    bus.subscribe(EventType.SIGNAL_DETECTED, async_handler)
    await bus.emit(EventType.SIGNAL_DETECTED, {'ticker': 'A'})
    assert sorted(seen) == [('async', {'ticker': 'A'}), ('sync', {'ticker': 'A'})]


@pytest.mark.asyncio
async def test_priority_order():
    bus = EventBus()
    order = []
    bus.subscribe(EventType.TRIGGER_STARTED, lambda e: order.append('low'), priority=EventPriority.LOW)
    bus.subscribe(EventType.TRIGGER_STARTED, lambda e: order.append('high'), priority=EventPriority.HIGH)
    await bus.emit(EventType.TRIGGER_STARTED)
    assert order == ['high', 'low']


@pytest.mark.asyncio
async def test_failing_handler_is_isolated():
    bus = EventBus()
    seen = []

    def bad(event):
        raise RuntimeError('boom')

    bus.subscribe(EventType.MARKET_UPDATE, bad)
    bus.subscribe(EventType.MARKET_UPDATE, lambda e: seen.append(e))
    await bus.emit(EventType.MARKET_UPDATE, {})
    assert len(seen) == 1
    assert bus.get_stats()['handler_errors'] == 1


@pytest.mark.asyncio
async def test_once_and_unsubscribe():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.FEED_CONNECTED, lambda e: seen.append(1), once=True)
    sub_id = bus.subscribe(EventType.FEED_CONNECTED, lambda e: seen.append(2))
    await bus.emit(EventType.FEED_CONNECTED)
    await bus.emit(EventType.FEED_CONNECTED)
    assert seen == [1, 2, 2]
    assert bus.unsubscribe(sub_id)
    assert not bus.unsubscribe(sub_id)
    assert bus.subscriber_count(EventType.FEED_CONNECTED) == 0


@pytest.mark.asyncio
async def test_filter_and_history():
    bus = EventBus(history_limit=2)
    seen = []
    bus.subscribe(EventType.MARKET_UPDATE, lambda e: seen.append(e.data), filter_func=lambda e: e.data.get('keep'))
    for i in range(3):
        await bus.emit(EventType.MARKET_UPDATE, {'i': i, 'keep': i == 1})
    assert seen == [{'i': 1, 'keep': True}]
    assert [e.data['i'] for e in bus.get_history()] == [1, 2]


def test_event_to_dict():
    event = Event(event_type=EventType.TRIGGER_FAILED, data={'recipientId': 'a'}, source='dispatcher')
    data = event.to_dict()
    assert data['event_type'] == 'TRIGGER_FAILED'
    assert data['data'] == {'recipientId': 'a'}
    assert data['source'] == 'dispatcher'
    assert data['priority'] == 'NORMAL'
    assert data['event_id'] == event.event_id
    assert data['timestamp'] == event.timestamp.isoformat()
