import json
import logging

from arena_relay.config.logging_config import (
    SIGNAL_LOGGER_NAME,
    JSONFormatter,
    SignalLogger,
    get_signal_logger,
)


def test_signal_logger_levels(caplog):
    caplog.set_level(logging.INFO, logger=SIGNAL_LOGGER_NAME)
    log = SignalLogger()
    log.log_trigger_resolved('a', 'signals:a', 'completed')
    log.log_trigger_resolved('b', 'signals:b', 'failed', 'timed out after 10 min')

    completed, failed = caplog.records[-2:]
    assert completed.levelno == logging.INFO
    assert failed.levelno == logging.WARNING
    assert 'timed out after 10 min' in failed.getMessage()


def test_signal_logger_attaches_extra_data(caplog):
    caplog.set_level(logging.INFO, logger=SIGNAL_LOGGER_NAME)
    SignalLogger().log_signal_detected('price_swing', 'A', 'dflow', {'direction': 'up'})
    record = caplog.records[-1]
    assert record.extra_data['event'] == 'signal_detected'
    assert record.extra_data['data'] == {'direction': 'up'}


def test_json_formatter_includes_extra():
    record = logging.LogRecord('arena_relay.test', logging.INFO, __file__, 1, 'hello %s', ('world',), None)
    record.extra_data = {'ticker': 'A'}
    entry = json.loads(JSONFormatter(extra_fields={'service': 'relay'}).format(record))
    assert entry['message'] == 'hello world'
    assert entry['extra'] == {'ticker': 'A'}
    assert entry['service'] == 'relay'


def test_get_signal_logger_is_shared():
    log = get_signal_logger()
    assert isinstance(log, SignalLogger)
    assert log.logger.name == SIGNAL_LOGGER_NAME
    assert get_signal_logger() is log
