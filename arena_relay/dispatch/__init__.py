"""
Dispatch Package for Arena Relay.

Trigger registry, deduplicating fan-out and completion polling.
"""

from arena_relay.dispatch.registry import TriggerRegistry
from arena_relay.dispatch.dispatcher import TriggerDispatcher
from arena_relay.dispatch.poller import CompletionPoller

__all__ = [
    "TriggerRegistry",
    "TriggerDispatcher",
    "CompletionPoller",
]
