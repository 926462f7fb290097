"""
Data Package for Arena Relay.

Market feed connection, message normalization and subscription tracking.
"""

from arena_relay.data.normalize import parse_feed_message
from arena_relay.data.subscriptions import SubscriptionManager
from arena_relay.data.websocket_client import (
    FeedConfig,
    MarketFeedClient,
    WebSocketState,
)

__all__ = [
    "parse_feed_message",
    "SubscriptionManager",
    "FeedConfig",
    "MarketFeedClient",
    "WebSocketState",
]
