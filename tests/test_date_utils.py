from datetime import datetime, timezone

import pytest

from arena_relay.utils.date_utils import parse_datetime, to_epoch_ms

NOON = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize('value', [
    1735732800,
    1735732800.0,
    '1735732800',
    1735732800000,
    '1735732800000',
    '2025-01-01T12:00:00Z',
    '2025-01-01T12:00:00+00:00',
    datetime(2025, 1, 1, 12, 0),
])
def test_parse_datetime(value):
    assert parse_datetime(value) == NOON


def test_seconds_and_milliseconds_agree_on_round_trip():
    assert parse_datetime(to_epoch_ms(NOON)) == parse_datetime(NOON.timestamp())


def test_none_is_now():
    assert parse_datetime(None).tzinfo is not None
