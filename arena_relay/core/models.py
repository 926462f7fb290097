"""
Core Models Module for Arena Relay.

This module defines the data structures that flow through the relay: market
updates from the feed, per-ticker rolling state, detected signals, and the
records and results of trigger dispatch and completion polling.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic import ValidationError as PydanticValidationError

from arena_relay.config.constants import DEFAULT_PLATFORM, TRADE_WINDOW_SIZE
from arena_relay.utils.date_utils import now_utc, parse_datetime, to_epoch_ms
from arena_relay.utils.exceptions import ValidationError


# =============================================================================
# ENUMS
# =============================================================================

class UpdateKind(str, Enum):
    """Feed channel an update came from."""
    PRICES = "prices"
    TRADES = "trades"
    ORDERBOOK = "orderbook"


class SignalKind(str, Enum):
    """Detected market condition."""
    PRICE_SWING = "price_swing"
    VOLUME_SPIKE = "volume_spike"
    ORDERBOOK_IMBALANCE = "orderbook_imbalance"
    POSITION_FLIP = "position_flip"


class DispatchOutcome(str, Enum):
    """Per-recipient outcome of a dispatch."""
    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"


class PollStatus(str, Enum):
    """Status of a trigger token as seen by the completion poller."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    NOT_FOUND = "not_found"


# =============================================================================
# FEED MODELS
# =============================================================================

class MarketUpdate(BaseModel):
    """A single normalized observation from the market feed."""

    kind: UpdateKind = Field(description="Feed channel")
    ticker: str = Field(min_length=1, description="Market ticker")
    platform: str = Field(default=DEFAULT_PLATFORM, description="Source platform")

    yes_bid: Optional[float] = Field(default=None, description="Best YES bid")
    yes_ask: Optional[float] = Field(default=None, description="Best YES ask")
    no_bid: Optional[float] = Field(default=None, description="Best NO bid")
    no_ask: Optional[float] = Field(default=None, description="Best NO ask")

    trade_size: Optional[float] = Field(default=None, description="Trade size")
    trade_price: Optional[float] = Field(default=None, description="Trade price")

    yes_depth: Optional[float] = Field(default=None, description="Total resting YES size")
    no_depth: Optional[float] = Field(default=None, description="Total resting NO size")

    received_at: datetime = Field(default_factory=now_utc, description="Arrival time")

    @field_validator('ticker')
    @classmethod
    def validate_ticker(cls, v: str) -> str:
        """Strip surrounding whitespace from the ticker."""
        return v.strip()

    @computed_field
    @property
    def mid_price(self) -> Optional[float]:
        """Average of the YES bid and ask, or None when either is missing."""
        if self.yes_bid is None or self.yes_ask is None:
            return None
        return (self.yes_bid + self.yes_ask) / 2


@dataclass
class TickerState:
    """Rolling state kept for one ticker."""

    ticker: str
    window_size: int = TRADE_WINDOW_SIZE
    last_mid: Optional[float] = None
    trade_sizes: Deque[float] = field(init=False)
    price_observations: int = 0
    trade_observations: int = 0
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.trade_sizes = deque(maxlen=self.window_size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticker": self.ticker,
            "last_mid": self.last_mid,
            "window": len(self.trade_sizes),
            "price_observations": self.price_observations,
            "trade_observations": self.trade_observations,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Observation(BaseModel):
    """What the tracker hands to the classifier for one accepted update."""

    model_config = ConfigDict(frozen=True)

    kind: UpdateKind
    ticker: str
    platform: str = DEFAULT_PLATFORM
    previous: Optional[float] = None
    current: Optional[float] = None
    window: Tuple[float, ...] = ()
    yes_depth: Optional[float] = None
    no_depth: Optional[float] = None
    observed_at: datetime = Field(default_factory=now_utc)


# =============================================================================
# SIGNAL MODELS
# =============================================================================

class Signal(BaseModel):
    """An immutable detected market condition."""

    model_config = ConfigDict(frozen=True)

    kind: SignalKind = Field(description="Signal kind")
    ticker: str = Field(min_length=1, description="Market ticker")
    platform: str = Field(default=DEFAULT_PLATFORM, description="Source platform")
    data: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific payload")
    detected_at: datetime = Field(default_factory=now_utc, description="Detection time")

    def to_payload(self) -> Dict[str, Any]:
        """
        Render the wire shape sent to recipients.

        Returns:
            Dictionary with type, ticker, platform, data and an epoch-ms timestamp
        """
        return {
            "type": self.kind.value,
            "ticker": self.ticker,
            "platform": self.platform,
            "data": dict(self.data),
            "timestamp": to_epoch_ms(self.detected_at),
        }

    @classmethod
    def from_payload(cls, payload: Any) -> 'Signal':
        """
        Parse the wire shape produced by ``to_payload``.

        Args:
            payload: Decoded JSON object

        Returns:
            Signal instance

        Raises:
            ValidationError: If the payload is malformed
        """
        if not isinstance(payload, dict):
            raise ValidationError("Signal payload must be an object")

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise ValidationError("Signal data must be an object", details={"data": data})

        try:
            detected_at = parse_datetime(payload.get("timestamp"))
        except (AttributeError, TypeError, ValueError, OverflowError) as e:
            raise ValidationError(
                "Invalid signal timestamp",
                details={"timestamp": payload.get("timestamp")},
                cause=e
            )

        try:
            return cls(
                kind=payload.get("type"),
                ticker=payload.get("ticker"),
                platform=payload.get("platform") or DEFAULT_PLATFORM,
                data=data,
                detected_at=detected_at,
            )
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid signal payload",
                details={"errors": [err["msg"] for err in e.errors()]},
                cause=e
            )

    def summary(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "ticker": self.ticker, "platform": self.platform}


# =============================================================================
# DISPATCH MODELS
# =============================================================================

class TriggerRecord(BaseModel):
    """One active dispatched unit of work."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(description="Trigger token derived from the recipient")
    recipient_id: str = Field(description="Recipient identifier")
    started_at: datetime = Field(description="Dispatch time")
    ticker: Optional[str] = Field(default=None, description="Ticker of the triggering signal")
    signal_kind: Optional[SignalKind] = Field(default=None, description="Kind of the triggering signal")

    def elapsed_seconds(self, now: datetime) -> float:
        """Seconds since the trigger started."""
        return (now - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "recipientId": self.recipient_id,
            "startedAt": self.started_at.isoformat(),
            "ticker": self.ticker,
            "signalType": self.signal_kind.value if self.signal_kind else None,
        }


class RecipientResult(BaseModel):
    """Outcome of dispatching to a single recipient."""

    recipient_id: str
    token: str
    outcome: DispatchOutcome
    run_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "recipientId": self.recipient_id,
            "token": self.token,
            "status": self.outcome.value,
        }
        if self.run_id is not None:
            result["runId"] = self.run_id
        if self.error is not None:
            result["error"] = self.error
        return result


class DispatchResult(BaseModel):
    """Aggregate result of a fan-out; partial failure is never fatal."""

    signal: Signal
    results: List[RecipientResult] = Field(default_factory=list)

    def _count(self, outcome: DispatchOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @computed_field
    @property
    def started(self) -> int:
        return self._count(DispatchOutcome.STARTED)

    @computed_field
    @property
    def already_running(self) -> int:
        return self._count(DispatchOutcome.ALREADY_RUNNING)

    @computed_field
    @property
    def failed(self) -> int:
        return self._count(DispatchOutcome.FAILED)

    def by_outcome(self, outcome: DispatchOutcome) -> List[RecipientResult]:
        """Results with the given outcome, in recipient order."""
        return [r for r in self.results if r.outcome == outcome]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the JSON shape returned by the API.

        Returns:
            Dictionary with the signal summary, counts and per-recipient results
        """
        return {
            "signal": self.signal.summary(),
            "started": self.started,
            "alreadyRunning": self.already_running,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
            "errors": [
                {"recipientId": r.recipient_id, "error": r.error}
                for r in self.by_outcome(DispatchOutcome.FAILED)
            ],
        }


# =============================================================================
# POLL MODELS
# =============================================================================

class PollResult(BaseModel):
    """Status of one trigger token after a poll."""

    token: str
    status: PollStatus
    recipient_id: Optional[str] = None
    reason: Optional[str] = None
    result: Optional[Dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (PollStatus.COMPLETED, PollStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"token": self.token, "status": self.status.value}
        if self.recipient_id is not None:
            data["recipientId"] = self.recipient_id
        if self.reason is not None:
            data["error"] = self.reason
        if self.result is not None:
            data["result"] = self.result
        return data


def summarize(results: Iterable[PollResult]) -> Dict[str, int]:
    """
    Count poll results per status.

    Args:
        results: Poll results

    Returns:
        Dictionary with total, running, completed, failed and notFound counts
    """
    counts = {status: 0 for status in PollStatus}
    total = 0
    for result in results:
        counts[result.status] += 1
        total += 1
    return {
        "total": total,
        "running": counts[PollStatus.RUNNING],
        "completed": counts[PollStatus.COMPLETED],
        "failed": counts[PollStatus.FAILED],
        "notFound": counts[PollStatus.NOT_FOUND],
    }
