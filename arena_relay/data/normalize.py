"""
Feed Normalization Module for Arena Relay.

Maps raw dflow WebSocket messages onto ``MarketUpdate``. Anything that
cannot be mapped (unknown channel, missing ticker, unparsable numbers) is
dropped by returning None; malformed feed input is never an error.
"""

import logging
from typing import Any, Dict, Optional, Union

from arena_relay.config.constants import DEFAULT_PLATFORM
from arena_relay.core.models import MarketUpdate, UpdateKind
from arena_relay.utils.date_utils import parse_datetime
from arena_relay.utils.helpers import safe_json_loads, to_float


logger = logging.getLogger(__name__)

TICKER_FIELDS = ("market_ticker", "ticker", "market")
TRADE_SIZE_FIELDS = ("count", "size", "quantity", "amount")
TRADE_PRICE_FIELDS = ("yes_price", "price")
TIMESTAMP_FIELDS = ("ts", "timestamp", "created_time")


def _first(message: Dict[str, Any], fields: tuple) -> Any:
    for name in fields:
        value = message.get(name)
        if value is not None and value != "":
            return value
    return None


def _book_depth(levels: Any) -> Optional[float]:
    """
    Total resting size on one side of the book.

    Accepts ``{price: size}`` maps, ``[[price, size], ...]`` pairs or a bare
    number that is already the total.
    """
    if levels is None:
        return None
    if isinstance(levels, dict):
        sizes = [to_float(size) for size in levels.values()]
    elif isinstance(levels, list):
        sizes = []
        for level in levels:
            if isinstance(level, (list, tuple)) and len(level) >= 2:
                sizes.append(to_float(level[1]))
            elif isinstance(level, dict):
                sizes.append(to_float(level.get("size", level.get("quantity"))))
            else:
                sizes.append(None)
    else:
        return to_float(levels)

    if any(size is None for size in sizes):
        return None
    return float(sum(sizes))


def parse_feed_message(
    raw: Union[str, bytes, Dict[str, Any]],
    platform: str = DEFAULT_PLATFORM
) -> Optional[MarketUpdate]:
    """
    Normalize one feed message.

    Args:
        raw: JSON text or an already decoded object
        platform: Platform label for the update

    Returns:
        MarketUpdate, or None when the message is not a usable market update
    """
    if isinstance(raw, (str, bytes)):
        message = safe_json_loads(raw)
    else:
        message = raw

    if not isinstance(message, dict):
        logger.debug("Dropping non-object feed message")
        return None

    channel = message.get("channel")
    try:
        kind = UpdateKind(channel)
    except ValueError:
        logger.debug(f"Dropping message on unknown channel {channel!r}")
        return None

    ticker = _first(message, TICKER_FIELDS)
    if not isinstance(ticker, str) or not ticker.strip():
        logger.debug(f"Dropping {kind.value} message without ticker")
        return None

    try:
        received_at = parse_datetime(_first(message, TIMESTAMP_FIELDS))
    except (AttributeError, TypeError, ValueError, OverflowError):
        received_at = parse_datetime(None)

    fields: Dict[str, Any] = {
        "kind": kind,
        "ticker": ticker,
        "platform": platform,
        "received_at": received_at,
    }

    if kind == UpdateKind.PRICES:
        fields.update(
            yes_bid=to_float(message.get("yes_bid")),
            yes_ask=to_float(message.get("yes_ask")),
            no_bid=to_float(message.get("no_bid")),
            no_ask=to_float(message.get("no_ask")),
        )
    elif kind == UpdateKind.TRADES:
        size = to_float(_first(message, TRADE_SIZE_FIELDS))
        if size is None:
            logger.debug(f"Dropping trade on {ticker}: no size")
            return None
        fields.update(
            trade_size=size,
            trade_price=to_float(_first(message, TRADE_PRICE_FIELDS)),
        )
    else:
        yes_depth = _book_depth(message.get("yes_bids", message.get("yes")))
        no_depth = _book_depth(message.get("no_bids", message.get("no")))
        if yes_depth is None or no_depth is None:
            logger.debug(f"Dropping orderbook on {ticker}: unreadable depth")
            return None
        fields.update(yes_depth=yes_depth, no_depth=no_depth)

    return MarketUpdate(**fields)
