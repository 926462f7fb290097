"""
Dedup/Fan-out Dispatcher Module for Arena Relay.

Issues one trigger per recipient for a signal, skipping recipients that
already have an active trigger. Calls go out concurrently and are awaited
as a batch; a failure is scoped to its recipient.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from arena_relay.config.logging_config import SignalLogger
from arena_relay.core.event_bus import EventBus, EventType
from arena_relay.core.models import (
    DispatchOutcome,
    DispatchResult,
    RecipientResult,
    Signal,
)
from arena_relay.dispatch.registry import TriggerRegistry
from arena_relay.utils.helpers import unique


logger = logging.getLogger(__name__)


class TriggerStarter(Protocol):
    """Anything that can start work for a recipient."""

    async def start(self, recipient_id: str, token: str, signal: Signal) -> Optional[str]:
        ...


class TriggerDispatcher:
    """Fans a signal out to recipients with one active trigger per token."""

    def __init__(
        self,
        registry: TriggerRegistry,
        workflow_client: TriggerStarter,
        event_bus: Optional[EventBus] = None,
        signal_logger: Optional[SignalLogger] = None
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            registry: Shared trigger registry
            workflow_client: Collaborator that starts work for a recipient
            event_bus: Optional bus for lifecycle events
            signal_logger: Logger for trigger lifecycle entries
        """
        self.registry = registry
        self.workflow_client = workflow_client
        self.event_bus = event_bus
        self.signal_logger = signal_logger or SignalLogger()
        self._stats = {"dispatches": 0, "started": 0, "already_running": 0, "failed": 0}

    async def dispatch(self, signal: Signal, recipients: Sequence[str]) -> DispatchResult:
        """
        Dispatch a signal to recipients.

        Args:
            signal: Detected signal
            recipients: Recipient identifiers; duplicates are collapsed

        Returns:
            Per-recipient results with started / already_running / failed counts
        """
        recipients = [r for r in unique(recipients) if r]
        self._stats["dispatches"] += 1

        results = await asyncio.gather(
            *(self._dispatch_one(signal, recipient_id) for recipient_id in recipients)
        )
        result = DispatchResult(signal=signal, results=list(results))

        self._stats["started"] += result.started
        self._stats["already_running"] += result.already_running
        self._stats["failed"] += result.failed

        logger.info(
            f"Dispatched {signal.kind.value} on {signal.ticker}: "
            f"{result.started} started, {result.already_running} already running, "
            f"{result.failed} failed"
        )
        return result

    async def _dispatch_one(self, signal: Signal, recipient_id: str) -> RecipientResult:
        token = self.registry.token_for(recipient_id)

        record = self.registry.reserve(
            recipient_id, ticker=signal.ticker, signal_kind=signal.kind
        )
        if record is None:
            self.signal_logger.log_trigger_skipped(recipient_id, token, signal.ticker)
            await self._emit(EventType.TRIGGER_SKIPPED, recipient_id, token, signal)
            return RecipientResult(
                recipient_id=recipient_id,
                token=token,
                outcome=DispatchOutcome.ALREADY_RUNNING,
            )

        try:
            run_id = await self.workflow_client.start(recipient_id, token, signal)
        except Exception as e:
            # The poller may have resolved this record while the call was in
            # flight, and a newer dispatch may hold the token by now.
            self.registry.release(record)
            error = str(e) or e.__class__.__name__
            self.signal_logger.log_trigger_failed(recipient_id, token, error)
            await self._emit(EventType.TRIGGER_FAILED, recipient_id, token, signal, error=error)
            return RecipientResult(
                recipient_id=recipient_id,
                token=token,
                outcome=DispatchOutcome.FAILED,
                error=error,
            )

        self.signal_logger.log_trigger_started(recipient_id, token, signal.ticker, run_id)
        await self._emit(EventType.TRIGGER_STARTED, recipient_id, token, signal, run_id=run_id)
        return RecipientResult(
            recipient_id=recipient_id,
            token=token,
            outcome=DispatchOutcome.STARTED,
            run_id=run_id,
        )

    async def _emit(
        self,
        event_type: EventType,
        recipient_id: str,
        token: str,
        signal: Signal,
        **extra
    ) -> None:
        if self.event_bus is None:
            return
        data = {"recipientId": recipient_id, "token": token, "signal": signal.summary()}
        data.update(extra)
        await self.event_bus.emit(event_type, data, source="dispatcher")

    def get_statistics(self) -> dict:
        return dict(self._stats, active=len(self.registry))
