import json

import pytest
from pydantic import ValidationError

from arena_relay.config.settings import Settings, SignalSettings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.server.port == 1999
    assert settings.signals.swing_threshold == 0.10
    assert settings.signals.spike_multiplier == 10.0
    assert settings.signals.window_size == 100
    assert settings.poller.timeout_seconds == 600
    assert settings.dispatch.token_prefix == 'signals:'
    assert not settings.has_webhook_secret


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('ARENA_RELAY_WEBHOOK_SECRET', 'abc')
    monkeypatch.setenv('ARENA_RELAY_SIGNALS__SWING_THRESHOLD', '0.2')
    monkeypatch.setenv('ARENA_RELAY_FEED__API_KEY', 'feed')
    settings = Settings(_env_file=None)
    assert settings.webhook_secret.get_secret_value() == 'abc'
    assert settings.signals.swing_threshold == 0.2
    assert settings.feed.is_configured


def test_to_dict_masks_secrets(settings):
    data = settings.to_dict()
    assert data['webhook_secret'] == '***MASKED***'
    assert data['feed']['api_key'] == '***MASKED***'
    assert data['feed']['url'] == 'ws://feed.test'
    raw = settings.to_dict(exclude_secrets=False)
    assert raw['webhook_secret'] == 's3cret'


def test_flip_band_must_be_ordered():
    with pytest.raises(ValidationError):
        SignalSettings(flip_lower_threshold=0.6, flip_upper_threshold=0.4)


def test_history_smaller_than_window():
    with pytest.raises(ValidationError):
        SignalSettings(window_size=10, min_trade_history=10)


def test_load_from_file(tmp_path):
    path = tmp_path / 'relay.json'
    path.write_text(json.dumps({'server': {'port': 8080}, 'signals': {'imbalance_enabled': True}}))
    settings = Settings.load_from_file(path)
    assert settings.server.port == 8080
    assert settings.signals.imbalance_enabled


def test_load_from_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Settings.load_from_file(tmp_path / 'missing.json')
