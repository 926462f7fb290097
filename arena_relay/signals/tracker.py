"""
Rolling Statistics Tracker Module for Arena Relay.

Keeps the last mid price and a bounded window of recent trade sizes per
ticker, and turns each accepted market update into an ``Observation`` for
the classifier.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from arena_relay.config.constants import TRADE_WINDOW_SIZE
from arena_relay.core.models import MarketUpdate, Observation, TickerState, UpdateKind
from arena_relay.utils.date_utils import now_utc


logger = logging.getLogger(__name__)


class RollingStatsTracker:
    """
    Per-ticker rolling state.

    State is created lazily on the first accepted observation for a ticker
    and kept for the lifetime of the process.
    """

    def __init__(
        self,
        window_size: int = TRADE_WINDOW_SIZE,
        clock: Callable[[], datetime] = now_utc
    ) -> None:
        """
        Initialize the tracker.

        Args:
            window_size: Capacity of the per-ticker trade window
            clock: Time source for observation timestamps
        """
        if window_size < 2:
            raise ValueError("window_size must be at least 2")
        self.window_size = window_size
        self._clock = clock
        self._states: Dict[str, TickerState] = {}

    def _state_for(self, ticker: str) -> TickerState:
        state = self._states.get(ticker)
        if state is None:
            state = TickerState(ticker=ticker, window_size=self.window_size)
            self._states[ticker] = state
        return state

    def observe(self, update: MarketUpdate) -> Optional[Observation]:
        """
        Record a market update.

        Args:
            update: Normalized feed update

        Returns:
            Observation for the classifier, or None if the update carried
            nothing usable (no state is touched in that case)
        """
        if update.kind == UpdateKind.PRICES:
            return self._observe_price(update)
        if update.kind == UpdateKind.TRADES:
            return self._observe_trade(update)
        if update.kind == UpdateKind.ORDERBOOK:
            return self._observe_orderbook(update)
        return None

    def _observe_price(self, update: MarketUpdate) -> Optional[Observation]:
        current = update.mid_price
        if current is None:
            logger.debug(f"Skipping price update for {update.ticker}: missing bid or ask")
            return None

        state = self._state_for(update.ticker)
        previous = state.last_mid
        observed_at = self._clock()

        state.last_mid = current
        state.price_observations += 1
        state.updated_at = observed_at

        return Observation(
            kind=UpdateKind.PRICES,
            ticker=update.ticker,
            platform=update.platform,
            previous=previous,
            current=current,
            observed_at=observed_at,
        )

    def _observe_trade(self, update: MarketUpdate) -> Optional[Observation]:
        size = update.trade_size
        if size is None or size <= 0:
            logger.debug(f"Skipping trade for {update.ticker}: size {size!r}")
            return None

        state = self._state_for(update.ticker)
        observed_at = self._clock()

        state.trade_sizes.append(size)
        state.trade_observations += 1
        state.updated_at = observed_at

        return Observation(
            kind=UpdateKind.TRADES,
            ticker=update.ticker,
            platform=update.platform,
            window=tuple(state.trade_sizes),
            observed_at=observed_at,
        )

    def _observe_orderbook(self, update: MarketUpdate) -> Optional[Observation]:
        if update.yes_depth is None or update.no_depth is None:
            return None
        return Observation(
            kind=UpdateKind.ORDERBOOK,
            ticker=update.ticker,
            platform=update.platform,
            yes_depth=update.yes_depth,
            no_depth=update.no_depth,
            observed_at=self._clock(),
        )

    def state(self, ticker: str) -> Optional[TickerState]:
        """Get the state for a ticker, if any observation was accepted."""
        return self._states.get(ticker)

    def tickers(self) -> List[str]:
        """Tickers with state, in first-seen order."""
        return list(self._states)

    def __len__(self) -> int:
        return len(self._states)
