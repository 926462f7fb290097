from arena_relay.core.models import SignalKind
from arena_relay.signals.flip_detector import MarketPosition, PositionFlipDetector


def test_classify_band():
    det = PositionFlipDetector()
    assert det.classify(0.53) == MarketPosition.YES_FAVORED
    assert det.classify(0.47) == MarketPosition.NO_FAVORED
    assert det.classify(0.50) == MarketPosition.NEUTRAL
    assert det.classify(0.52) == MarketPosition.NEUTRAL


def test_first_observation_never_flips(clock):
    det = PositionFlipDetector(clock=clock)
    assert det.update('A', None, 0.7) is None


def test_no_to_yes_flip(clock):
    det = PositionFlipDetector(clock=clock)
    det.update('A', None, 0.45)
    sig = det.update('A', 0.45, 0.55)
    assert sig.kind == SignalKind.POSITION_FLIP
    assert sig.data == {
        'previousPosition': 'no_favored',
        'newPosition': 'yes_favored',
        'previousPrice': 0.45,
        'currentPrice': 0.55,
        'flipDirection': 'no_to_yes',
    }


def test_passing_through_neutral_is_not_a_flip(clock):
    det = PositionFlipDetector(clock=clock)
    det.update('A', None, 0.55)
    assert det.update('A', 0.55, 0.50) is None
    assert det.update('A', 0.50, 0.45) is None


def test_cooldown(clock):
    det = PositionFlipDetector(clock=clock)
    det.update('A', None, 0.55)
    assert det.update('A', 0.55, 0.45) is not None
    clock.advance(minutes=30)
    assert det.update('A', 0.45, 0.55) is None
    clock.advance(minutes=31)
    assert det.update('A', 0.55, 0.45) is not None


def test_cooldown_is_per_ticker(clock):
    det = PositionFlipDetector(clock=clock)
    det.update('A', None, 0.55)
    det.update('B', None, 0.55)
    assert det.update('A', 0.55, 0.45) is not None
    assert det.update('B', 0.55, 0.45) is not None
