import pytest
from fastapi.testclient import TestClient

from arena_relay.api.app import create_app
from arena_relay.api.auth import is_authorized

AUTH = {'Authorization': 'Bearer s3cret'}

SIGNAL = {
    'type': 'volume_spike',
    'ticker': 'KXBTC-25',
    'platform': 'dflow',
    'data': {'multiplier': 15.0},
    'timestamp': 1735732800000,
}


@pytest.fixture
def client(relay, settings):
    with TestClient(create_app(relay, settings=settings)) as test_client:
        yield test_client


def test_is_authorized():
    assert is_authorized('Bearer s3cret', 's3cret')
    assert not is_authorized('Bearer nope', 's3cret')
    assert not is_authorized('s3cret', 's3cret')
    assert not is_authorized(None, 's3cret')
    assert not is_authorized('Bearer ', '')


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json()['active_triggers'] == 0


@pytest.mark.parametrize('method,path', [
    ('post', '/subscriptions'),
    ('post', '/signals'),
    ('get', '/triggers'),
    ('get', '/triggers/status?tokens=signals:a'),
    ('post', '/triggers/status'),
    ('get', '/events'),
])
def test_requires_bearer(client, method, path):
    response = getattr(client, method)(path, headers={'Authorization': 'Bearer wrong'})
    assert response.status_code == 401
    assert response.json()['error'] == 'Unauthorized'
    assert getattr(client, method)(path).status_code == 401


def test_subscribe_markets(client, relay):
    response = client.post(
        '/subscriptions',
        json={'type': 'subscribe_markets', 'markets': ['A', 'B', 'A']},
        headers=AUTH,
    )
    assert response.json() == {'success': True, 'subscribed': 2}
    again = client.post('/subscriptions', json={'type': 'subscribe_markets', 'markets': ['B']}, headers=AUTH)
    assert again.json()['subscribed'] == 0
    assert relay.feed.tickers == {'A', 'B'}


@pytest.mark.parametrize('body', [
    {'type': 'other', 'markets': ['A']},
    {'type': 'subscribe_markets', 'markets': 'A'},
    {'type': 'subscribe_markets', 'markets': [1]},
    ['A'],
])
def test_subscribe_markets_invalid(client, body):
    response = client.post('/subscriptions', json=body, headers=AUTH)
    assert response.status_code == 400


def test_inject_signal_with_recipients(client, arena):
    response = client.post('/signals', json={'signal': SIGNAL, 'recipients': ['gpt-5', 'claude']}, headers=AUTH)
    body = response.json()
    assert response.status_code == 200
    assert body['success'] is True
    assert body['started'] == 2
    assert body['signal']['type'] == 'volume_spike'
    assert arena.starts[0]['signal'] == SIGNAL

    again = client.post('/signals', json={'signal': SIGNAL, 'recipients': ['gpt-5']}, headers=AUTH).json()
    assert again['alreadyRunning'] == 1
    assert again['started'] == 0


def test_recent_events(client):
    client.post('/signals', json={'signal': SIGNAL, 'recipients': ['gpt-5', 'claude']}, headers=AUTH)
    body = client.get('/events?type=trigger_started', headers=AUTH).json()
    assert body['count'] == 2
    assert {e['data']['recipientId'] for e in body['events']} == {'gpt-5', 'claude'}
    assert body['events'][0]['event_type'] == 'TRIGGER_STARTED'
    assert body['events'][0]['source'] == 'dispatcher'

    assert client.get('/events?limit=1', headers=AUTH).json()['count'] == 1
    assert client.get('/health').json()['events']['events_published'] == 2
    assert client.get('/events?type=nope', headers=AUTH).status_code == 400


def test_inject_signal_uses_directory(client, arena):
    arena.holders['KXBTC-25'] = ['grok']
    body = client.post('/signals', json={'signal': SIGNAL}, headers=AUTH).json()
    assert body['results'][0]['recipientId'] == 'grok'


def test_inject_signal_directory_down(client, arena):
    arena.fail_paths.add('/api/agents/holders')
    response = client.post('/signals', json={'signal': SIGNAL}, headers=AUTH)
    assert response.status_code == 502


def test_inject_signal_partial_failure(client, arena):
    arena.fail_paths.add('/api/signals/start')
    body = client.post('/signals', json={'signal': SIGNAL, 'recipients': ['a']}, headers=AUTH).json()
    assert body['failed'] == 1
    assert body['errors'][0]['recipientId'] == 'a'


@pytest.mark.parametrize('signal', [
    None,
    {'type': 'moon', 'ticker': 'A'},
    {'type': 'price_swing'},
    {'type': 'price_swing', 'ticker': 'A', 'timestamp': 'soon'},
])
def test_inject_invalid_signal(client, signal):
    response = client.post('/signals', json={'signal': signal}, headers=AUTH)
    assert response.status_code == 400


def test_trigger_status_flow(client, arena):
    client.post('/signals', json={'signal': SIGNAL, 'recipients': ['a', 'b']}, headers=AUTH)

    listing = client.get('/triggers', headers=AUTH).json()
    assert listing['count'] == 2

    arena.results['a'] = [{'id': 'd1'}]
    body = client.get('/triggers/status', params={'tokens': 'signals:a,signals:b,signals:x'}, headers=AUTH).json()
    assert [r['status'] for r in body['results']] == ['completed', 'running', 'not_found']
    assert body['results'][0]['result'] == {'id': 'd1'}
    assert body['summary'] == {'total': 3, 'running': 1, 'completed': 1, 'failed': 0, 'notFound': 1}

    batch = client.post('/triggers/status', json={'tokens': ['signals:a']}, headers=AUTH).json()
    assert batch['results'][0]['status'] == 'not_found'


def test_trigger_status_timeout(client, clock):
    client.post('/signals', json={'signal': SIGNAL, 'recipients': ['a']}, headers=AUTH)
    clock.advance(minutes=11)
    body = client.post('/triggers/status', json={'tokens': ['signals:a']}, headers=AUTH).json()
    assert body['results'][0]['status'] == 'failed'
    assert body['results'][0]['error'] == 'timed out after 10 min'


def test_trigger_status_requires_tokens(client):
    assert client.get('/triggers/status', headers=AUTH).status_code == 400
    assert client.post('/triggers/status', json={'tokens': []}, headers=AUTH).status_code == 400


def test_websocket_subscribe(client, relay):
    with client.websocket_connect('/ws') as ws:
        ws.send_text('garbage')
        ws.send_json({'type': 'subscribe', 'tickers': ['A', 'B']})
        assert ws.receive_json() == {'type': 'subscribed', 'tickers': ['A', 'B']}
        assert relay.subscriptions.client_count == 1
        ws.send_json({'type': 'unsubscribe', 'tickers': ['A']})
        assert ws.receive_json() == {'type': 'unsubscribed', 'tickers': ['A']}
    assert relay.feed.tickers == {'A', 'B'}
