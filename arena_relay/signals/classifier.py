"""
Signal Classifier Module for Arena Relay.

Applies fixed thresholds to tracker observations and decides whether a
price swing, volume spike, orderbook imbalance or position flip occurred.
At most one signal is produced per market update.
"""

import logging
import math
from datetime import datetime
from typing import Callable, Optional, Sequence

from arena_relay.config.settings import SignalSettings
from arena_relay.core.models import Observation, Signal, SignalKind, UpdateKind
from arena_relay.config.constants import DEFAULT_PLATFORM
from arena_relay.signals.flip_detector import PositionFlipDetector
from arena_relay.utils.date_utils import now_utc


logger = logging.getLogger(__name__)


def _at_least(value: float, threshold: float) -> bool:
    """``value >= threshold``, treating float noise at the boundary as equal."""
    return value >= threshold or math.isclose(value, threshold, rel_tol=1e-9, abs_tol=1e-12)


def _at_most(value: float, threshold: float) -> bool:
    return value <= threshold or math.isclose(value, threshold, rel_tol=1e-9, abs_tol=1e-12)


class SignalClassifier:
    """
    Threshold-based signal classifier.

    Price observations can yield a swing, or a position flip when no swing
    fired. Trade observations can only yield a volume spike. Orderbook
    observations can only yield an imbalance, and only when enabled.
    """

    def __init__(
        self,
        settings: Optional[SignalSettings] = None,
        flip_detector: Optional[PositionFlipDetector] = None,
        clock: Callable[[], datetime] = now_utc
    ) -> None:
        """
        Initialize the classifier.

        Args:
            settings: Thresholds and feature toggles
            flip_detector: Detector to use for flips; built from settings
                when flips are enabled and none is given
            clock: Time source for detection timestamps
        """
        self.settings = settings or SignalSettings()
        self._clock = clock
        if flip_detector is None and self.settings.flip_enabled:
            flip_detector = PositionFlipDetector(
                upper=self.settings.flip_upper_threshold,
                lower=self.settings.flip_lower_threshold,
                cooldown_seconds=self.settings.flip_cooldown_seconds,
                clock=clock,
            )
        self.flip_detector = flip_detector if self.settings.flip_enabled else None

    def classify(self, observation: Observation) -> Optional[Signal]:
        """
        Classify one observation.

        Args:
            observation: Tracker output for a single update

        Returns:
            The detected signal, or None
        """
        if observation.kind == UpdateKind.PRICES:
            return self._classify_price(observation)
        if observation.kind == UpdateKind.TRADES:
            return self.classify_spike(
                observation.ticker, observation.window, observation.platform
            )
        if observation.kind == UpdateKind.ORDERBOOK:
            if not self.settings.imbalance_enabled:
                return None
            if observation.yes_depth is None or observation.no_depth is None:
                return None
            return self.classify_imbalance(
                observation.ticker,
                observation.yes_depth,
                observation.no_depth,
                observation.platform,
            )
        return None

    def _classify_price(self, observation: Observation) -> Optional[Signal]:
        if observation.current is None:
            return None

        signal = self.classify_swing(
            observation.ticker,
            observation.previous,
            observation.current,
            observation.platform,
        )

        # The flip detector keeps its own per-ticker state, so it is always
        # updated even when the swing wins this update.
        flip = None
        if self.flip_detector is not None:
            flip = self.flip_detector.update(
                observation.ticker,
                observation.previous,
                observation.current,
                platform=observation.platform,
            )
        return signal or flip

    def classify_swing(
        self,
        ticker: str,
        previous: Optional[float],
        current: float,
        platform: str = DEFAULT_PLATFORM
    ) -> Optional[Signal]:
        """
        Detect a price swing.

        The change is measured against the previous price.

        Args:
            ticker: Market ticker
            previous: Previous mid price, None on the first observation
            current: Current mid price
            platform: Platform label

        Returns:
            A price_swing signal if the relative move reaches the threshold
        """
        if previous is None or previous <= 0:
            return None

        change = (current - previous) / previous
        if not _at_least(abs(change), self.settings.swing_threshold):
            return None

        return Signal(
            kind=SignalKind.PRICE_SWING,
            ticker=ticker,
            platform=platform,
            data={
                "previousPrice": previous,
                "currentPrice": current,
                "changePercent": change,
                "direction": "up" if change > 0 else "down",
            },
            detected_at=self._clock(),
        )

    def classify_spike(
        self,
        ticker: str,
        window: Sequence[float],
        platform: str = DEFAULT_PLATFORM
    ) -> Optional[Signal]:
        """
        Detect a volume spike.

        The newest trade (last element) is compared with the mean of every
        other entry in the window.

        Args:
            ticker: Market ticker
            window: Trade sizes, oldest first
            platform: Platform label

        Returns:
            A volume_spike signal if the newest trade is large enough
        """
        if len(window) - 1 < self.settings.min_trade_history:
            return None

        newest = window[-1]
        others = window[:-1]
        average = sum(others) / len(others)
        if average <= 0:
            return None

        multiplier = newest / average
        if not _at_least(multiplier, self.settings.spike_multiplier):
            return None

        return Signal(
            kind=SignalKind.VOLUME_SPIKE,
            ticker=ticker,
            platform=platform,
            data={
                "volume": newest,
                "averageVolume": average,
                "multiplier": multiplier,
                "sampleSize": len(others),
            },
            detected_at=self._clock(),
        )

    def classify_imbalance(
        self,
        ticker: str,
        yes_depth: float,
        no_depth: float,
        platform: str = DEFAULT_PLATFORM
    ) -> Optional[Signal]:
        """
        Detect an orderbook imbalance.

        Args:
            ticker: Market ticker
            yes_depth: Total resting size on the YES side
            no_depth: Total resting size on the NO side
            platform: Platform label

        Returns:
            An orderbook_imbalance signal if one side dominates
        """
        if yes_depth <= 0 or no_depth <= 0:
            return None

        ratio = yes_depth / no_depth
        threshold = self.settings.imbalance_ratio
        if _at_least(ratio, threshold):
            direction = "yes"
        elif _at_most(ratio, 1 / threshold):
            direction = "no"
        else:
            return None

        return Signal(
            kind=SignalKind.ORDERBOOK_IMBALANCE,
            ticker=ticker,
            platform=platform,
            data={
                "yesDepth": yes_depth,
                "noDepth": no_depth,
                "ratio": ratio,
                "direction": direction,
            },
            detected_at=self._clock(),
        )
