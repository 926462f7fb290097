from datetime import datetime, timezone

import pytest

from arena_relay.core.models import (
    MarketUpdate,
    PollResult,
    PollStatus,
    Signal,
    SignalKind,
    TickerState,
    UpdateKind,
)
from arena_relay.utils.exceptions import ValidationError


def test_signal_payload_round_trip(swing_signal):
    payload = swing_signal.to_payload()
    assert payload['type'] == 'price_swing'
    assert payload['timestamp'] == 1735732800000
    assert Signal.from_payload(payload) == swing_signal


def test_signal_from_payload_accepts_iso_and_default_platform():
    sig = Signal.from_payload({'type': 'position_flip', 'ticker': 'A', 'timestamp': '2025-01-01T12:00:00Z'})
    assert sig.platform == 'dflow'
    assert sig.detected_at == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert sig.data == {}


@pytest.mark.parametrize('payload', [
    'text',
    {'type': 'price_swing', 'ticker': 'A', 'data': [1]},
    {'type': 'unknown', 'ticker': 'A'},
    {'type': 'price_swing', 'ticker': ''},
])
def test_signal_from_payload_rejects(payload):
    with pytest.raises(ValidationError):
        Signal.from_payload(payload)


def test_signal_is_frozen(swing_signal):
    with pytest.raises(Exception):
        swing_signal.ticker = 'other'


def test_market_update_mid():
    update = MarketUpdate(kind=UpdateKind.PRICES, ticker=' A ', yes_bid=0.3, yes_ask=0.5)
    assert update.ticker == 'A'
    assert update.mid_price == pytest.approx(0.4)


def test_ticker_state_window_is_bounded():
    state = TickerState(ticker='A', window_size=3)
    state.trade_sizes.extend([1, 2, 3, 4])
    assert list(state.trade_sizes) == [2, 3, 4]
    assert state.to_dict()['window'] == 3


def test_poll_result_to_dict():
    assert PollResult(token='t', status=PollStatus.NOT_FOUND).to_dict() == {'token': 't', 'status': 'not_found'}
    failed = PollResult(token='t', status=PollStatus.FAILED, recipient_id='a', reason='timed out after 10 min')
    assert failed.is_terminal
    assert failed.to_dict()['error'] == 'timed out after 10 min'


def test_signal_summary():
    sig = Signal(kind=SignalKind.ORDERBOOK_IMBALANCE, ticker='A', platform='kalshi')
    assert sig.summary() == {'type': 'orderbook_imbalance', 'ticker': 'A', 'platform': 'kalshi'}
