import asyncio
import json

import pytest

from arena_relay.core.event_bus import EventType
from arena_relay.core.models import PollStatus, SignalKind


def price(ticker, bid, ask):
    return json.dumps({'channel': 'prices', 'market_ticker': ticker, 'yes_bid': bid, 'yes_ask': ask})


@pytest.mark.asyncio
async def test_swing_triggers_holders(relay, arena):
    arena.holders['KXBTC-25'] = ['gpt-5', 'claude']
    assert await relay.handle_message(price('KXBTC-25', 0.39, 0.41)) is None

    result = await relay.handle_message(price('KXBTC-25', 0.45, 0.47))
    assert result.signal.kind == SignalKind.PRICE_SWING
    assert result.started == 2
    assert sorted(s['recipientId'] for s in arena.starts) == ['claude', 'gpt-5']
    assert arena.starts[0]['signal']['ticker'] == 'KXBTC-25'
    assert len(relay.registry) == 2


@pytest.mark.asyncio
async def test_active_trigger_suppresses_until_resolved(relay, arena, clock):
    arena.holders['A'] = ['gpt-5']
    await relay.handle_message(price('A', 0.39, 0.41))
    await relay.handle_message(price('A', 0.45, 0.47))

    again = await relay.handle_message(price('A', 0.59, 0.61))
    assert again.already_running == 1
    assert len(arena.starts) == 1

    arena.results['gpt-5'] = [{'id': 'decision-1'}]
    results = await relay.poller.poll_all()
    assert results[0].status == PollStatus.COMPLETED
    arena.results.clear()

    third = await relay.handle_message(price('A', 0.79, 0.81))
    assert third.started == 1
    assert len(arena.starts) == 2


@pytest.mark.asyncio
async def test_timed_out_trigger_frees_recipient(relay, arena, clock):
    arena.holders['A'] = ['gpt-5']
    await relay.handle_message(price('A', 0.39, 0.41))
    await relay.handle_message(price('A', 0.45, 0.47))

    clock.advance(minutes=11)
    results = await relay.poller.poll_all()
    assert results[0].status == PollStatus.FAILED
    assert results[0].reason == 'timed out after 10 min'
    assert len(relay.registry) == 0


@pytest.mark.asyncio
async def test_directory_failure_drops_signal(relay, arena):
    arena.fail_paths.add('/api/agents/holders')
    await relay.handle_message(price('A', 0.39, 0.41))
    assert await relay.handle_message(price('A', 0.45, 0.47)) is None
    assert arena.starts == []
    assert relay.get_status()['relay']['dropped_signals'] == 1


@pytest.mark.asyncio
async def test_no_holders_dispatches_nothing(relay, arena):
    await relay.handle_message(price('A', 0.39, 0.41))
    result = await relay.handle_message(price('A', 0.45, 0.47))
    assert result.results == []
    assert arena.starts == []


@pytest.mark.asyncio
async def test_messages_are_rebroadcast(relay):
    seen = []
    relay.event_bus.subscribe(EventType.MARKET_UPDATE, lambda e: seen.append(e.data))
    await relay.handle_message(json.dumps({'type': 'heartbeat'}))
    await relay.handle_message('not json')
    assert seen == [{'type': 'heartbeat'}]


@pytest.mark.asyncio
async def test_rebroadcast_follows_dispatch(relay, arena):
    arena.holders['A'] = ['gpt-5']
    starts_seen = []

    async def slow_observer(event):
        starts_seen.append(len(arena.starts))
        await asyncio.sleep(0.01)

    relay.event_bus.subscribe(EventType.MARKET_UPDATE, slow_observer)
    await relay.handle_message(price('A', 0.39, 0.41))
    result = await relay.handle_message(price('A', 0.45, 0.47))
    assert result.started == 1
    assert starts_seen == [0, 1]


@pytest.mark.asyncio
async def test_refresh_agent_markets(relay, arena):
    arena.markets = ['A', 'B']
    assert sorted(await relay.refresh_agent_markets()) == ['A', 'B']
    assert relay.feed.tickers == {'A', 'B'}

    arena.markets = ['B', 'C']
    assert await relay.refresh_agent_markets() == ['C']
    assert relay.subscriptions.agent_markets == {'B', 'C'}


@pytest.mark.asyncio
async def test_refresh_failure_keeps_markets(relay, arena):
    arena.markets = ['A']
    await relay.refresh_agent_markets()
    arena.fail_paths.add('/api/agents/markets')
    assert await relay.refresh_agent_markets() == []
    assert relay.subscriptions.agent_markets == {'A'}


@pytest.mark.asyncio
async def test_client_subscriptions_feed_the_feed(relay):
    assert await relay.client_subscribe('c1', ['A']) == ['A']
    assert await relay.subscribe_markets(['A', 'B']) == ['B']
    assert relay.feed.tickers == {'A', 'B'}
    relay.client_disconnect('c1')
    assert relay.subscriptions.client_count == 0


@pytest.mark.asyncio
async def test_start_and_stop(relay, arena):
    arena.markets = ['A']
    await relay.start()
    assert relay.is_running
    await asyncio.sleep(0.05)
    await relay.stop()
    assert not relay.is_running
    assert relay.feed.tickers == {'A'}
    assert not relay.poller.is_running
