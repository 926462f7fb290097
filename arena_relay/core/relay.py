"""
Market Relay Module for Arena Relay.

Wires the feed, the signal pipeline and the dispatch layer together. Each
feed message is normalized, observed, classified and, if it produced a
signal, fanned out to the agents holding the ticker before the next message
is read. The completion poller and the agent-market refresh run on their
own timers.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import httpx

from arena_relay.config.logging_config import SignalLogger, get_signal_logger
from arena_relay.config.settings import Settings
from arena_relay.core.event_bus import EventBus, EventType, get_event_bus
from arena_relay.core.models import DispatchResult, MarketUpdate, Signal
from arena_relay.data.normalize import parse_feed_message
from arena_relay.data.subscriptions import SubscriptionManager
from arena_relay.data.websocket_client import (
    Connector,
    FeedConfig,
    MarketFeedClient,
    WebSocketState,
)
from arena_relay.dispatch.dispatcher import TriggerDispatcher
from arena_relay.dispatch.poller import CompletionPoller
from arena_relay.dispatch.registry import TriggerRegistry
from arena_relay.services.api_client import ArenaApiClient
from arena_relay.services.position_directory import PositionDirectory
from arena_relay.services.result_store import ResultStoreClient
from arena_relay.services.workflow_client import WorkflowClient
from arena_relay.signals.classifier import SignalClassifier
from arena_relay.signals.tracker import RollingStatsTracker
from arena_relay.utils.date_utils import now_utc
from arena_relay.utils.exceptions import DirectoryError
from arena_relay.utils.helpers import safe_json_loads


logger = logging.getLogger(__name__)


class MarketRelay:
    """Signal detection and agent trigger relay."""

    def __init__(
        self,
        feed: MarketFeedClient,
        tracker: RollingStatsTracker,
        classifier: SignalClassifier,
        registry: TriggerRegistry,
        dispatcher: TriggerDispatcher,
        poller: CompletionPoller,
        directory: PositionDirectory,
        subscriptions: Optional[SubscriptionManager] = None,
        event_bus: Optional[EventBus] = None,
        api_client: Optional[ArenaApiClient] = None,
        platform: str = "dflow",
        poll_interval_seconds: float = 30.0,
        market_refresh_interval_seconds: float = 300.0,
        signal_logger: Optional[SignalLogger] = None,
        shutdown_timeout_seconds: float = 5.0
    ) -> None:
        self.feed = feed
        self.tracker = tracker
        self.classifier = classifier
        self.registry = registry
        self.dispatcher = dispatcher
        self.poller = poller
        self.directory = directory
        self.subscriptions = subscriptions or SubscriptionManager()
        self.event_bus = event_bus or EventBus()
        self.api_client = api_client
        self.platform = platform
        self.poll_interval_seconds = poll_interval_seconds
        self.market_refresh_interval_seconds = market_refresh_interval_seconds
        self.signal_logger = signal_logger or SignalLogger()
        self.shutdown_timeout_seconds = shutdown_timeout_seconds

        self._tasks: List[asyncio.Task] = []
        self._stop_event: Optional[asyncio.Event] = None
        self._started_at: Optional[datetime] = None
        self._stats = {"messages": 0, "updates": 0, "signals": 0, "dropped_signals": 0}

        self.feed.on_message(self.handle_message)
        self.feed.on_state_change(self._on_feed_state)

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def handle_message(self, raw: Union[str, bytes, Dict[str, Any]]) -> Optional[DispatchResult]:
        """
        Process one raw feed message.

        The message is normalized and run through the pipeline before it is
        rebroadcast to observers as-is. Messages that are not JSON objects
        are dropped.

        Args:
            raw: JSON text or a decoded message

        Returns:
            Dispatch result if the message produced a signal
        """
        self._stats["messages"] += 1
        message = safe_json_loads(raw) if isinstance(raw, (str, bytes)) else raw
        if not isinstance(message, dict):
            return None

        update = parse_feed_message(message, platform=self.platform)
        result = await self.handle_update(update) if update is not None else None

        await self.event_bus.emit(EventType.MARKET_UPDATE, message, source="feed")
        return result

    async def handle_update(self, update: MarketUpdate) -> Optional[DispatchResult]:
        """
        Observe and classify one update, dispatching any resulting signal.

        Args:
            update: Normalized market update

        Returns:
            Dispatch result, or None if no signal fired or it was dropped
        """
        self._stats["updates"] += 1

        observation = self.tracker.observe(update)
        if observation is None:
            return None

        signal = self.classifier.classify(observation)
        if signal is None:
            return None

        self._stats["signals"] += 1
        self.signal_logger.log_signal_detected(
            signal.kind.value, signal.ticker, signal.platform, signal.data
        )
        await self.event_bus.emit(EventType.SIGNAL_DETECTED, signal.to_payload(), source="classifier")

        try:
            return await self.dispatch_signal(signal)
        except DirectoryError as e:
            self._stats["dropped_signals"] += 1
            logger.warning(f"Dropping {signal.kind.value} on {signal.ticker}: {e}")
            return None

    async def dispatch_signal(
        self,
        signal: Signal,
        recipients: Optional[Iterable[str]] = None
    ) -> DispatchResult:
        """
        Fan a signal out to recipients.

        Args:
            signal: Signal to dispatch
            recipients: Explicit recipients; when omitted the position
                directory is asked who holds the ticker

        Returns:
            Dispatch result

        Raises:
            DirectoryError: If holders could not be resolved
        """
        if recipients is None:
            recipients = await self.directory.holders(signal.ticker)
        recipients = list(recipients)

        if not recipients:
            logger.debug(f"No holders for {signal.ticker}; nothing to trigger")
        return await self.dispatcher.dispatch(signal, recipients)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def refresh_agent_markets(self) -> List[str]:
        """
        Replace the agent-held market set from the position directory.

        Returns:
            Tickers newly subscribed on the feed
        """
        try:
            markets = await self.directory.agent_markets(self.platform)
        except DirectoryError as e:
            logger.warning(f"Agent market refresh failed: {e}")
            return []

        new = self.subscriptions.replace_agent_markets(markets)
        await self.feed.subscribe(new)
        logger.info(f"Tracking {len(markets)} agent-held market(s), {len(new)} new")
        return new

    async def subscribe_markets(self, markets: Iterable[str]) -> List[str]:
        """Add agent-held markets pushed by the arena in real time."""
        new = self.subscriptions.add_agent_markets(markets)
        await self.feed.subscribe(new)
        if new:
            logger.info(f"Real-time subscribed to {len(new)} new market(s)")
        return new

    async def client_subscribe(self, client_id: str, tickers: Iterable[str]) -> List[str]:
        new = self.subscriptions.subscribe_client(client_id, tickers)
        await self.feed.subscribe(new)
        return new

    def client_unsubscribe(self, client_id: str, tickers: Iterable[str]) -> None:
        self.subscriptions.unsubscribe_client(client_id, tickers)

    def client_disconnect(self, client_id: str) -> None:
        self.subscriptions.remove_client(client_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the feed, the completion poller and the market refresh loop."""
        if self._tasks:
            return

        if self.api_client is not None:
            await self.api_client.start()

        self._stop_event = asyncio.Event()
        self._started_at = now_utc()
        self._tasks = [
            asyncio.create_task(self._market_refresh_loop(), name="agent_market_refresh"),
            asyncio.create_task(self.feed.run(), name="market_feed"),
            asyncio.create_task(self.poller.run(self.poll_interval_seconds), name="completion_poller"),
        ]
        logger.info("Market relay started")

    async def stop(self) -> None:
        """Stop all background loops and close outbound clients."""
        if self._stop_event is not None:
            self._stop_event.set()
        self.poller.stop()
        await self.feed.stop()

        tasks, self._tasks = self._tasks, []
        if tasks:
            # A loop that had not started yet when stop was requested never
            # sees its stop signal, so stragglers are cancelled.
            _, pending = await asyncio.wait(tasks, timeout=self.shutdown_timeout_seconds)
            for task in pending:
                task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Relay task ended with error: {result}")

        if self.api_client is not None:
            await self.api_client.stop()
        logger.info("Market relay stopped")

    async def _market_refresh_loop(self) -> None:
        while True:
            await self.refresh_agent_markets()
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.market_refresh_interval_seconds,
                )
                return
            except asyncio.TimeoutError:
                continue

    async def _on_feed_state(self, state: WebSocketState) -> None:
        if state == WebSocketState.CONNECTED:
            await self.event_bus.emit(EventType.FEED_CONNECTED, {"state": state.value}, source="feed")
        elif state in (WebSocketState.RECONNECTING, WebSocketState.DISCONNECTED):
            await self.event_bus.emit(EventType.FEED_DISCONNECTED, {"state": state.value}, source="feed")

    def get_status(self) -> Dict[str, Any]:
        """Health snapshot for the API."""
        return {
            "status": "ok",
            "running": self.is_running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "feed": self.feed.get_statistics(),
            "active_triggers": len(self.registry),
            "tracked_tickers": len(self.tracker),
            "agent_markets": len(self.subscriptions.agent_markets),
            "clients": self.subscriptions.client_count,
            "relay": dict(self._stats),
            "dispatcher": self.dispatcher.get_statistics(),
            "poller": self.poller.get_statistics(),
            "events": self.event_bus.get_stats(),
        }


def build_relay(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    connector: Optional[Connector] = None,
    clock: Callable[[], datetime] = now_utc,
    event_bus: Optional[EventBus] = None
) -> MarketRelay:
    """
    Construct the production relay graph from settings.

    Args:
        settings: Application settings
        transport: Optional httpx transport for the arena API
        connector: Optional feed connector
        clock: Time source shared by every time-based rule
        event_bus: Event bus; the process-wide bus by default

    Returns:
        Wired MarketRelay (not started)
    """
    secret = settings.webhook_secret.get_secret_value() or None
    api = ArenaApiClient.from_settings(settings.dispatch, token=secret, transport=transport)
    bus = event_bus or get_event_bus()
    signal_logger = get_signal_logger()

    registry = TriggerRegistry(token_prefix=settings.dispatch.token_prefix, clock=clock)
    dispatcher = TriggerDispatcher(
        registry,
        WorkflowClient(api, settings.dispatch.trigger_path),
        event_bus=bus,
        signal_logger=signal_logger,
    )
    poller = CompletionPoller(
        registry,
        ResultStoreClient(api, settings.dispatch.results_path),
        timeout_seconds=settings.poller.timeout_seconds,
        clock=clock,
        event_bus=bus,
        signal_logger=signal_logger,
    )
    directory = PositionDirectory(
        api,
        holders_path=settings.dispatch.holders_path,
        markets_path=settings.dispatch.markets_path,
    )

    return MarketRelay(
        feed=MarketFeedClient(FeedConfig.from_settings(settings.feed), connector=connector),
        tracker=RollingStatsTracker(settings.signals.window_size, clock=clock),
        classifier=SignalClassifier(settings.signals, clock=clock),
        registry=registry,
        dispatcher=dispatcher,
        poller=poller,
        directory=directory,
        event_bus=bus,
        api_client=api,
        platform=settings.feed.platform,
        poll_interval_seconds=settings.poller.interval_seconds,
        market_refresh_interval_seconds=settings.market_refresh_interval_seconds,
        signal_logger=signal_logger,
    )
