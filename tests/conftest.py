import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from arena_relay.config.settings import Settings
from arena_relay.core.event_bus import EventBus
from arena_relay.core.models import Signal, SignalKind
from arena_relay.core.relay import build_relay


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=0, minutes=0):
        self.now += timedelta(seconds=seconds, minutes=minutes)
        return self.now


class FakeWorkflowClient:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []

    async def start(self, recipient_id, token, signal):
        self.calls.append((recipient_id, token, signal))
        if recipient_id in self.fail_for:
            raise RuntimeError(f'boom {recipient_id}')
        return f'run-{recipient_id}'


class FakeResultStore:
    def __init__(self):
        self.results = {}
        self.fail = False
        self.calls = []

    async def fetch(self, recipient_id, since):
        self.calls.append((recipient_id, since))
        if self.fail:
            raise RuntimeError('store down')
        return [r for r in self.results.get(recipient_id, []) if r['created_at'] >= since]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        webhook_secret='s3cret',
        dispatch={'api_base_url': 'http://arena.test'},
        feed={'url': 'ws://feed.test', 'api_key': 'feed-key'},
    )


@pytest.fixture
def swing_signal(clock):
    return Signal(
        kind=SignalKind.PRICE_SWING,
        ticker='KXBTC-25',
        data={'previousPrice': 0.4, 'currentPrice': 0.46, 'changePercent': 0.15, 'direction': 'up'},
        detected_at=clock(),
    )


class FakeArena:
    """In-process stand-in for the arena API behind an httpx.MockTransport."""

    def __init__(self):
        self.holders = {}
        self.markets = []
        self.results = {}
        self.fail_paths = set()
        self.starts = []

    def __call__(self, request):
        path = request.url.path
        if path in self.fail_paths:
            return httpx.Response(503, json={'error': 'unavailable'})
        if path == '/api/signals/start':
            body = json.loads(request.content)
            self.starts.append(body)
            return httpx.Response(200, json={'runId': f"run-{body['recipientId']}"})
        if path == '/api/agents/holders':
            ticker = request.url.params.get('ticker')
            return httpx.Response(200, json={'holders': [{'recipientId': r} for r in self.holders.get(ticker, [])]})
        if path == '/api/agents/markets':
            return httpx.Response(200, json={'markets': [{'ticker': t} for t in self.markets]})
        if path == '/api/agents/results':
            recipient_id = request.url.params.get('recipientId')
            return httpx.Response(200, json={'results': self.results.get(recipient_id, [])})
        return httpx.Response(404)

    @property
    def transport(self):
        return httpx.MockTransport(self)


@pytest.fixture
def arena():
    return FakeArena()


@pytest.fixture
def relay(settings, arena, clock):
    async def no_feed(url, headers):
        raise OSError('feed disabled in tests')

    return build_relay(settings, transport=arena.transport, connector=no_feed, clock=clock, event_bus=EventBus())
