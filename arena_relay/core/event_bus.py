"""
Event Bus Module for Arena Relay.

This module provides a publish-subscribe event system that lets the API
layer observe feed traffic and the trigger lifecycle without the relay
depending on it.
"""

import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import (
    Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, Union
)
import inspect
import logging
import uuid

from arena_relay.utils.date_utils import now_utc


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event type enumeration."""

    # Feed events
    MARKET_UPDATE = auto()
    FEED_CONNECTED = auto()
    FEED_DISCONNECTED = auto()

    # Signal events
    SIGNAL_DETECTED = auto()

    # Trigger lifecycle
    TRIGGER_STARTED = auto()
    TRIGGER_SKIPPED = auto()
    TRIGGER_FAILED = auto()
    TRIGGER_COMPLETED = auto()
    TRIGGER_TIMED_OUT = auto()


class EventPriority(Enum):
    """Event priority levels."""
    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


@dataclass
class Event:
    """
    Event class representing a single event.

    Attributes:
        event_type: Type of the event
        data: Event payload data
        source: Source component of the event
        timestamp: When the event was created
        event_id: Unique event identifier
        priority: Event priority level
        metadata: Additional event metadata
    """

    event_type: EventType
    data: Any = None
    source: str = ""
    timestamp: datetime = field(default_factory=now_utc)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    priority: EventPriority = EventPriority.NORMAL
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.event_type, EventType):
            raise ValueError(f"Invalid event type: {self.event_type}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.name,
            "data": self.data,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "priority": self.priority.name,
            "metadata": self.metadata,
        }


SyncHandler = Callable[[Event], None]
AsyncHandler = Callable[[Event], Awaitable[None]]
EventHandler = Union[SyncHandler, AsyncHandler]


@dataclass
class Subscription:
    """Subscription information for an event handler."""

    handler: EventHandler
    event_types: Set[EventType]
    priority: EventPriority
    is_async: bool
    subscriber_id: str
    filter_func: Optional[Callable[[Event], bool]] = None
    once: bool = False
    active: bool = True


class EventBus:
    """
    Event bus for the publish-subscribe pattern.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and counted; it never affects the publisher or other handlers.
    """

    def __init__(self, history_limit: int = 1000) -> None:
        self._subscriptions: Dict[EventType, List[Subscription]] = defaultdict(list)
        self._event_history: Deque[Event] = deque(maxlen=history_limit)
        self._stats: Dict[str, int] = defaultdict(int)

    def subscribe(
        self,
        event_types: Union[EventType, List[EventType]],
        handler: EventHandler,
        priority: EventPriority = EventPriority.NORMAL,
        filter_func: Optional[Callable[[Event], bool]] = None,
        once: bool = False
    ) -> str:
        """
        Subscribe to events.

        Args:
            event_types: Event type(s) to subscribe to
            handler: Handler function (sync or async)
            priority: Handler priority
            filter_func: Optional filter function
            once: If True, handler will be called only once

        Returns:
            Subscriber ID
        """
        if isinstance(event_types, EventType):
            event_types = [event_types]

        subscription = Subscription(
            handler=handler,
            event_types=set(event_types),
            priority=priority,
            is_async=inspect.iscoroutinefunction(handler),
            subscriber_id=str(uuid.uuid4()),
            filter_func=filter_func,
            once=once,
        )

        for event_type in event_types:
            self._subscriptions[event_type].append(subscription)
            self._subscriptions[event_type].sort(
                key=lambda s: s.priority.value, reverse=True
            )

        logger.debug(f"Subscribed {subscription.subscriber_id} to {[t.name for t in event_types]}")
        return subscription.subscriber_id

    def unsubscribe(self, subscriber_id: str) -> bool:
        """
        Unsubscribe a handler.

        Args:
            subscriber_id: Subscriber ID to remove

        Returns:
            True if found and removed
        """
        removed = False
        for event_type, subscriptions in self._subscriptions.items():
            remaining = [s for s in subscriptions if s.subscriber_id != subscriber_id]
            if len(remaining) != len(subscriptions):
                removed = True
                self._subscriptions[event_type] = remaining

        if removed:
            logger.debug(f"Unsubscribed {subscriber_id}")
        return removed

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        """Number of active subscriptions, optionally for one event type."""
        if event_type is not None:
            return sum(1 for s in self._subscriptions.get(event_type, []) if s.active)
        ids = {
            s.subscriber_id
            for subscriptions in self._subscriptions.values()
            for s in subscriptions
            if s.active
        }
        return len(ids)

    async def publish_async(self, event: Event) -> None:
        """
        Publish an event and wait for all async handlers.

        Args:
            event: Event to publish
        """
        self._stats["events_published"] += 1
        self._event_history.append(event)

        tasks = []
        for subscription in self._get_handlers(event):
            if subscription.is_async:
                tasks.append(self._call_async_handler(subscription, event))
                continue
            try:
                subscription.handler(event)
                self._stats["handlers_called"] += 1
            except Exception as e:
                logger.error(f"Error in event handler: {e}")
                self._stats["handler_errors"] += 1

        if tasks:
            await asyncio.gather(*tasks)

    async def emit(
        self,
        event_type: EventType,
        data: Any = None,
        source: str = "",
        priority: EventPriority = EventPriority.NORMAL,
        **metadata: Any
    ) -> Event:
        """
        Convenience method to emit an event.

        Args:
            event_type: Type of event
            data: Event data
            source: Event source
            priority: Event priority
            **metadata: Additional metadata

        Returns:
            Created event
        """
        event = Event(
            event_type=event_type,
            data=data,
            source=source,
            priority=priority,
            metadata=metadata,
        )
        await self.publish_async(event)
        return event

    def _get_handlers(self, event: Event) -> List[Subscription]:
        """Collect matching handlers, retiring ``once`` subscriptions."""
        handlers = []
        for subscription in list(self._subscriptions.get(event.event_type, [])):
            if not subscription.active:
                continue
            if subscription.filter_func and not subscription.filter_func(event):
                continue
            if subscription.once:
                subscription.active = False
            handlers.append(subscription)
        return handlers

    async def _call_async_handler(
        self,
        subscription: Subscription,
        event: Event
    ) -> None:
        try:
            await subscription.handler(event)
            self._stats["handlers_called"] += 1
        except Exception as e:
            logger.error(f"Error in async event handler: {e}")
            self._stats["handler_errors"] += 1

    def get_history(
        self,
        event_type: Optional[EventType] = None,
        limit: int = 100
    ) -> List[Event]:
        """
        Get event history.

        Args:
            event_type: Filter by event type
            limit: Maximum events to return

        Returns:
            List of events, oldest first
        """
        events = list(self._event_history)
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events[-limit:]

    def get_stats(self) -> Dict[str, int]:
        """Get event bus statistics."""
        return dict(self._stats)


_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus instance."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus
