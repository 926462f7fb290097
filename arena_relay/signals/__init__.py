"""
Signals Package for Arena Relay.

Rolling statistics, threshold classification and flip detection.
"""

from arena_relay.signals.tracker import RollingStatsTracker
from arena_relay.signals.classifier import SignalClassifier
from arena_relay.signals.flip_detector import MarketPosition, PositionFlipDetector

__all__ = [
    "RollingStatsTracker",
    "SignalClassifier",
    "MarketPosition",
    "PositionFlipDetector",
]
