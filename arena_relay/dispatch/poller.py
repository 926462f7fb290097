"""
Completion Poller Module for Arena Relay.

Resolves active triggers to ``completed`` once the result store shows a
result recorded after the trigger started, or to ``failed`` once the
trigger has been running longer than the timeout. Runs on its own timer,
independent of the dispatcher.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from arena_relay.config.constants import TRIGGER_TIMEOUT_SECONDS, POLL_INTERVAL_SECONDS
from arena_relay.config.logging_config import SignalLogger
from arena_relay.core.event_bus import EventBus, EventType
from arena_relay.core.models import PollResult, PollStatus, TriggerRecord
from arena_relay.dispatch.registry import TriggerRegistry
from arena_relay.utils.date_utils import now_utc
from arena_relay.utils.helpers import unique


logger = logging.getLogger(__name__)


class ResultSource(Protocol):
    """Anything that can list results for a recipient since a time."""

    async def fetch(self, recipient_id: str, since: datetime) -> List[Dict[str, Any]]:
        ...


def _timeout_reason(timeout: timedelta) -> str:
    minutes = timeout.total_seconds() / 60
    if minutes.is_integer():
        return f"timed out after {int(minutes)} min"
    return f"timed out after {int(timeout.total_seconds())} s"


class CompletionPoller:
    """
    Polls the result store for active triggers.

    State machine per token: not_found -> running -> completed | failed.
    Terminal states remove the record exactly once.
    """

    def __init__(
        self,
        registry: TriggerRegistry,
        result_store: ResultSource,
        timeout_seconds: float = TRIGGER_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_utc,
        event_bus: Optional[EventBus] = None,
        signal_logger: Optional[SignalLogger] = None
    ) -> None:
        """
        Initialize the poller.

        Args:
            registry: Shared trigger registry
            result_store: Collaborator queried for results
            timeout_seconds: Running time after which a trigger fails
            clock: Time source
            event_bus: Optional bus for lifecycle events
            signal_logger: Logger for trigger lifecycle entries
        """
        self.registry = registry
        self.result_store = result_store
        self.timeout = timedelta(seconds=timeout_seconds)
        self._clock = clock
        self.event_bus = event_bus
        self.signal_logger = signal_logger or SignalLogger()

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._stats = {"polls": 0, "completed": 0, "timed_out": 0, "query_errors": 0}

    @property
    def is_running(self) -> bool:
        return self._running

    async def poll_once(self, token: str) -> PollResult:
        """
        Poll a single trigger token.

        Args:
            token: Trigger token

        Returns:
            Current status of the token
        """
        self._stats["polls"] += 1

        record = self.registry.get(token)
        if record is None:
            return PollResult(token=token, status=PollStatus.NOT_FOUND)

        results = await self._query_results(record)

        if results:
            return await self._resolve(
                record, PollStatus.COMPLETED, result=results[0]
            )

        if self._clock() - record.started_at > self.timeout:
            return await self._resolve(
                record, PollStatus.FAILED, reason=_timeout_reason(self.timeout)
            )

        return PollResult(
            token=token,
            status=PollStatus.RUNNING,
            recipient_id=record.recipient_id,
        )

    async def _query_results(self, record: TriggerRecord) -> List[Dict[str, Any]]:
        try:
            return await self.result_store.fetch(record.recipient_id, record.started_at)
        except Exception as e:
            # Counts as no result yet; the timeout still applies.
            self._stats["query_errors"] += 1
            logger.warning(f"Result query failed for {record.token}: {e}")
            return []

    async def _resolve(
        self,
        record: TriggerRecord,
        status: PollStatus,
        reason: Optional[str] = None,
        result: Optional[Dict[str, Any]] = None
    ) -> PollResult:
        # Another poll may have resolved this record (and a new dispatch may
        # have reused the token) while this one awaited the result store.
        if not self.registry.release(record):
            return PollResult(token=record.token, status=PollStatus.NOT_FOUND)

        if status == PollStatus.COMPLETED:
            self._stats["completed"] += 1
            event_type = EventType.TRIGGER_COMPLETED
        else:
            self._stats["timed_out"] += 1
            event_type = EventType.TRIGGER_TIMED_OUT

        self.signal_logger.log_trigger_resolved(
            record.recipient_id, record.token, status.value, reason
        )
        if self.event_bus is not None:
            await self.event_bus.emit(
                event_type,
                {"recipientId": record.recipient_id, "token": record.token, "reason": reason},
                source="poller",
            )

        return PollResult(
            token=record.token,
            status=status,
            recipient_id=record.recipient_id,
            reason=reason,
            result=result,
        )

    async def poll_many(self, tokens: Iterable[str]) -> List[PollResult]:
        """
        Poll several tokens concurrently.

        Args:
            tokens: Trigger tokens; duplicates are collapsed

        Returns:
            Results in the order of the (deduplicated) tokens
        """
        return list(await asyncio.gather(*(self.poll_once(t) for t in unique(tokens))))

    async def poll_all(self) -> List[PollResult]:
        """Poll every active token."""
        return await self.poll_many(self.registry.tokens())

    async def run(self, interval_seconds: float = POLL_INTERVAL_SECONDS) -> None:
        """
        Poll all active tokens every ``interval_seconds`` until stopped.

        Args:
            interval_seconds: Delay between sweeps
        """
        self._running = True
        self._stop_event = asyncio.Event()
        logger.info(f"Completion poller started (interval {interval_seconds}s)")

        try:
            while self._running:
                if len(self.registry):
                    try:
                        results = await self.poll_all()
                        resolved = sum(1 for r in results if r.is_terminal)
                        if resolved:
                            logger.info(f"Poller resolved {resolved} trigger(s), {len(self.registry)} active")
                    except Exception as e:
                        logger.error(f"Poller sweep failed: {e}", exc_info=True)

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=interval_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info("Completion poller stopped")

    def stop(self) -> None:
        """Ask the run loop to exit after the current sweep."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def get_statistics(self) -> Dict[str, Any]:
        return dict(self._stats, active=len(self.registry), running=self._running)
