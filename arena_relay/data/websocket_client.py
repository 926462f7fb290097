"""
Market Feed WebSocket Client Module for Arena Relay.

This module keeps one connection to the dflow market feed: it authenticates
with the ``x-api-key`` header, subscribes to the tracked tickers on every
configured channel, hands each decoded message to the registered callbacks
and reconnects after a fixed delay whenever the connection drops.
"""

import asyncio
import inspect
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from arena_relay.config import constants
from arena_relay.config.settings import FeedSettings
from arena_relay.utils.date_utils import now_utc
from arena_relay.utils.exceptions import FeedSendError


logger = logging.getLogger(__name__)


class WebSocketState(str, Enum):
    """WebSocket connection state enumeration."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


class FeedConfig(BaseModel):
    """Configuration for the market feed client."""

    url: str = Field(default=constants.DEFAULT_FEED_URL)
    api_key: Optional[str] = None
    channels: List[str] = Field(default_factory=lambda: list(constants.DEFAULT_FEED_CHANNELS))

    auto_reconnect: bool = Field(default=True)
    reconnect_delay_seconds: float = Field(default=constants.RECONNECT_DELAY_SECONDS, ge=0.0, le=300.0)

    ping_interval_seconds: float = Field(default=30.0, ge=5.0, le=120.0)
    ping_timeout_seconds: float = Field(default=10.0, ge=1.0, le=60.0)

    @classmethod
    def from_settings(cls, settings: FeedSettings) -> 'FeedConfig':
        return cls(
            url=settings.url,
            api_key=settings.api_key.get_secret_value() or None,
            channels=settings.channels,
            reconnect_delay_seconds=settings.reconnect_delay_seconds,
        )


MessageCallback = Callable[[Dict[str, Any]], Any]
StateCallback = Callable[[WebSocketState], Any]
Connector = Callable[[str, Dict[str, str]], Awaitable[Any]]


async def _call(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class MarketFeedClient:
    """
    WebSocket client for the prediction market feed.

    Messages are processed one at a time: each callback is awaited before
    the next message is read from the socket.
    """

    def __init__(
        self,
        config: FeedConfig,
        connector: Optional[Connector] = None
    ) -> None:
        """
        Initialize MarketFeedClient.

        Args:
            config: Feed configuration
            connector: Coroutine opening a connection for ``(url, headers)``;
                defaults to ``websockets.asyncio.client.connect``
        """
        self._config = config
        self._connector = connector or self._default_connector
        self._state = WebSocketState.DISCONNECTED

        self._ws: Any = None
        self._tickers: Set[str] = set()

        self._message_callbacks: List[MessageCallback] = []
        self._state_callbacks: List[StateCallback] = []

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None

        self._connections = 0
        self._reconnect_attempts = 0
        self._messages_received = 0
        self._messages_processed = 0
        self._invalid_messages = 0
        self._last_message_time: Optional[datetime] = None

    @property
    def state(self) -> WebSocketState:
        """Get current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == WebSocketState.CONNECTED

    @property
    def tickers(self) -> Set[str]:
        """Tickers the feed is (or will be, on connect) subscribed to."""
        return set(self._tickers)

    def on_message(self, callback: MessageCallback) -> None:
        """Register callback for decoded feed messages."""
        self._message_callbacks.append(callback)

    def on_state_change(self, callback: StateCallback) -> None:
        """Register callback for state changes."""
        self._state_callbacks.append(callback)

    async def _default_connector(self, url: str, headers: Dict[str, str]) -> Any:
        return await connect(
            url,
            additional_headers=headers,
            ping_interval=self._config.ping_interval_seconds,
            ping_timeout=self._config.ping_timeout_seconds,
        )

    @property
    def _headers(self) -> Dict[str, str]:
        if self._config.api_key:
            return {"x-api-key": self._config.api_key}
        return {}

    async def run(self) -> None:
        """
        Connect and process messages until ``stop`` is called.

        The connection is re-established after a fixed delay whenever it
        closes or fails; tickers are resubscribed on every connect.
        """
        self._running = True
        self._stop_event = asyncio.Event()

        try:
            while self._running:
                await self._connect_and_receive()

                if not self._running or not self._config.auto_reconnect:
                    break

                self._reconnect_attempts += 1
                await self._set_state(WebSocketState.RECONNECTING)
                logger.info(
                    f"Reconnecting to feed in {self._config.reconnect_delay_seconds:.1f}s "
                    f"(attempt {self._reconnect_attempts})"
                )
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=self._config.reconnect_delay_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            await self._close_socket()
            await self._set_state(WebSocketState.DISCONNECTED)

    async def _connect_and_receive(self) -> None:
        await self._set_state(WebSocketState.CONNECTING)
        try:
            self._ws = await self._connector(self._config.url, self._headers)
        except Exception as e:
            await self._set_state(WebSocketState.ERROR)
            logger.error(f"Feed connection error: {e}")
            return

        self._connections += 1
        await self._set_state(WebSocketState.CONNECTED)
        logger.info(f"Connected to market feed {self._config.url}")

        try:
            if self._tickers:
                await self._send_subscriptions(sorted(self._tickers))
            await self._receive_loop()
        except ConnectionClosed as e:
            logger.warning(f"Feed connection closed: {e}")
        except FeedSendError as e:
            logger.error(f"Feed subscription failed: {e}")
        except Exception as e:
            await self._set_state(WebSocketState.ERROR)
            logger.error(f"Feed receive error: {e}", exc_info=True)
        finally:
            await self._close_socket()

    async def _receive_loop(self) -> None:
        """Read messages until the connection closes or the client stops."""
        while self._running and self._ws is not None:
            message = await self._ws.recv()
            self._messages_received += 1
            self._last_message_time = now_utc()

            try:
                data = json.loads(message)
            except (TypeError, ValueError):
                self._invalid_messages += 1
                logger.debug(f"Invalid JSON from feed: {str(message)[:100]}")
                continue
            if not isinstance(data, dict):
                self._invalid_messages += 1
                continue

            await self._handle_message(data)
            self._messages_processed += 1

    async def _handle_message(self, data: Dict[str, Any]) -> None:
        for callback in self._message_callbacks:
            try:
                await _call(callback, data)
            except Exception as e:
                logger.error(f"Error in message callback: {e}", exc_info=True)

        if data.get("type") == "error":
            logger.error(f"Feed error message: {data}")

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Error closing feed socket: {e}")

    async def stop(self) -> None:
        """Stop the run loop and close the connection."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        await self._close_socket()

    async def _send(self, data: Dict[str, Any]) -> None:
        """Send message to the feed."""
        if self._ws is None:
            raise FeedSendError("Not connected")
        try:
            await self._ws.send(json.dumps(data))
        except ConnectionClosed:
            raise
        except Exception as e:
            raise FeedSendError(f"Send error: {e}", cause=e)

    async def _send_subscriptions(self, tickers: List[str]) -> None:
        for channel in self._config.channels:
            await self._send({
                "type": "subscribe",
                "channel": channel,
                "tickers": tickers,
            })
        logger.info(f"Subscribed feed to {len(tickers)} market(s)")

    async def subscribe(self, tickers: Iterable[str]) -> List[str]:
        """
        Add tickers to the feed subscription.

        Only tickers not already tracked are sent. While disconnected they
        are remembered and sent on the next connect.

        Args:
            tickers: Market tickers

        Returns:
            Tickers that were newly added
        """
        new = sorted({t for t in tickers if t} - self._tickers)
        if not new:
            return []

        self._tickers.update(new)
        if self.is_connected:
            try:
                await self._send_subscriptions(new)
            except (FeedSendError, ConnectionClosed) as e:
                # Resent from the full ticker set on reconnect.
                logger.warning(f"Deferred subscription of {len(new)} market(s): {e}")
        return new

    async def _set_state(self, state: WebSocketState) -> None:
        """Set connection state and notify callbacks."""
        if state == self._state:
            return

        old_state = self._state
        self._state = state
        logger.debug(f"Feed state: {old_state.value} -> {state.value}")

        for callback in self._state_callbacks:
            try:
                await _call(callback, state)
            except Exception as e:
                logger.error(f"Error in state callback: {e}")

    def get_statistics(self) -> Dict[str, Any]:
        """Get feed statistics."""
        return {
            "state": self._state.value,
            "is_connected": self.is_connected,
            "connections": self._connections,
            "reconnect_attempts": self._reconnect_attempts,
            "messages_received": self._messages_received,
            "messages_processed": self._messages_processed,
            "invalid_messages": self._invalid_messages,
            "subscribed_tickers": len(self._tickers),
            "last_message_time": (
                self._last_message_time.isoformat()
                if self._last_message_time else None
            ),
        }

    def __repr__(self) -> str:
        return f"MarketFeedClient(state={self._state.value}, tickers={len(self._tickers)})"
