"""
Core Package for Arena Relay.

Domain models and the event bus. The relay itself lives in
``arena_relay.core.relay``.
"""

from arena_relay.core.models import (
    UpdateKind,
    SignalKind,
    DispatchOutcome,
    PollStatus,
    MarketUpdate,
    TickerState,
    Observation,
    Signal,
    TriggerRecord,
    RecipientResult,
    DispatchResult,
    PollResult,
    summarize,
)

from arena_relay.core.event_bus import (
    EventType,
    EventPriority,
    Event,
    EventBus,
    get_event_bus,
)

__all__ = [
    "UpdateKind",
    "SignalKind",
    "DispatchOutcome",
    "PollStatus",
    "MarketUpdate",
    "TickerState",
    "Observation",
    "Signal",
    "TriggerRecord",
    "RecipientResult",
    "DispatchResult",
    "PollResult",
    "summarize",
    "EventType",
    "EventPriority",
    "Event",
    "EventBus",
    "get_event_bus",
]
