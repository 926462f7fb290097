"""
Position Flip Detector Module for Arena Relay.

Watches which side of a market the crowd favors and reports when it crosses
from one side to the other. A neutral band around 50% gives hysteresis, so
small oscillations around the midpoint do not count as flips.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Optional

from arena_relay.config import constants
from arena_relay.core.models import Signal, SignalKind
from arena_relay.utils.date_utils import now_utc


logger = logging.getLogger(__name__)


class MarketPosition(str, Enum):
    """Side of the market currently favored."""
    YES_FAVORED = "yes_favored"
    NO_FAVORED = "no_favored"
    NEUTRAL = "neutral"


class PositionFlipDetector:
    """Detects YES/NO flips with a per-ticker cooldown."""

    def __init__(
        self,
        upper: float = constants.FLIP_UPPER_THRESHOLD,
        lower: float = constants.FLIP_LOWER_THRESHOLD,
        cooldown_seconds: float = constants.FLIP_COOLDOWN_SECONDS,
        platform: str = constants.DEFAULT_PLATFORM,
        clock: Callable[[], datetime] = now_utc
    ) -> None:
        if lower >= upper:
            raise ValueError("lower threshold must be below upper threshold")
        self.upper = upper
        self.lower = lower
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.platform = platform
        self._clock = clock
        self._positions: Dict[str, MarketPosition] = {}
        self._last_flip: Dict[str, datetime] = {}

    def classify(self, price: float) -> MarketPosition:
        """Map a YES mid price to the favored side."""
        if price > self.upper:
            return MarketPosition.YES_FAVORED
        if price < self.lower:
            return MarketPosition.NO_FAVORED
        return MarketPosition.NEUTRAL

    def position(self, ticker: str) -> Optional[MarketPosition]:
        return self._positions.get(ticker)

    def update(
        self,
        ticker: str,
        previous_price: Optional[float],
        current_price: float,
        platform: Optional[str] = None
    ) -> Optional[Signal]:
        """
        Record the latest price for a ticker.

        Args:
            ticker: Market ticker
            previous_price: Previous mid price, reported in the payload
            current_price: Current mid price
            platform: Platform label for the signal

        Returns:
            A position_flip signal when the favored side changed and the
            ticker is out of cooldown, else None
        """
        new_position = self.classify(current_price)
        old_position = self._positions.get(ticker)
        self._positions[ticker] = new_position

        if old_position is None or new_position == old_position:
            return None
        if MarketPosition.NEUTRAL in (old_position, new_position):
            return None

        now = self._clock()
        last = self._last_flip.get(ticker)
        if last is not None and now - last < self.cooldown:
            logger.debug(f"Flip on {ticker} suppressed by cooldown")
            return None
        self._last_flip[ticker] = now

        flip_direction = (
            "yes_to_no" if old_position == MarketPosition.YES_FAVORED else "no_to_yes"
        )
        return Signal(
            kind=SignalKind.POSITION_FLIP,
            ticker=ticker,
            platform=platform or self.platform,
            data={
                "previousPosition": old_position.value,
                "newPosition": new_position.value,
                "previousPrice": previous_price,
                "currentPrice": current_price,
                "flipDirection": flip_direction,
            },
            detected_at=now,
        )
