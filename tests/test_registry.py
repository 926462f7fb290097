from arena_relay.core.models import SignalKind
from arena_relay.dispatch.registry import TriggerRegistry


def test_token_for():
    assert TriggerRegistry().token_for('gpt-5') == 'signals:gpt-5'
    assert TriggerRegistry(token_prefix='x:').token_for('a') == 'x:a'


def test_reserve_once(clock):
    reg = TriggerRegistry(clock=clock)
    rec = reg.reserve('a', ticker='T', signal_kind=SignalKind.PRICE_SWING)
    assert rec.token == 'signals:a'
    assert rec.started_at == clock.now
    assert reg.reserve('a') is None
    assert reg.is_active('signals:a')
    assert 'signals:a' in reg
    assert len(reg) == 1


def test_remove_returns_record_once():
    reg = TriggerRegistry()
    rec = reg.reserve('a')
    assert reg.remove('signals:a') is rec
    assert reg.remove('signals:a') is None
    assert reg.get('signals:a') is None


def test_records_oldest_first(clock):
    reg = TriggerRegistry(clock=clock)
    reg.reserve('b')
    clock.advance(seconds=5)
    reg.reserve('a')
    assert [r.recipient_id for r in reg.records()] == ['b', 'a']


def test_record_to_dict(clock):
    reg = TriggerRegistry(clock=clock)
    data = reg.reserve('a', ticker='T', signal_kind=SignalKind.VOLUME_SPIKE).to_dict()
    assert data['token'] == 'signals:a'
    assert data['recipientId'] == 'a'
    assert data['signalType'] == 'volume_spike'
