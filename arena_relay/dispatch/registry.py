"""
Trigger Registry Module for Arena Relay.

The single owner of the active trigger map. The dispatcher inserts records
and the completion poller removes them; every method is synchronous, so on
the event loop each read-modify-write completes before the next suspension
point.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional

from arena_relay.config.constants import TRIGGER_TOKEN_PREFIX
from arena_relay.core.models import SignalKind, TriggerRecord
from arena_relay.utils.date_utils import now_utc


logger = logging.getLogger(__name__)


class TriggerRegistry:
    """In-memory map of trigger token to active ``TriggerRecord``."""

    def __init__(
        self,
        token_prefix: str = TRIGGER_TOKEN_PREFIX,
        clock: Callable[[], datetime] = now_utc
    ) -> None:
        self.token_prefix = token_prefix
        self._clock = clock
        self._records: Dict[str, TriggerRecord] = {}

    def token_for(self, recipient_id: str) -> str:
        """Derive the stable trigger token for a recipient."""
        return f"{self.token_prefix}{recipient_id}"

    def get(self, token: str) -> Optional[TriggerRecord]:
        return self._records.get(token)

    def is_active(self, token: str) -> bool:
        return token in self._records

    def reserve(
        self,
        recipient_id: str,
        ticker: Optional[str] = None,
        signal_kind: Optional[SignalKind] = None,
        started_at: Optional[datetime] = None
    ) -> Optional[TriggerRecord]:
        """
        Insert a record for a recipient unless one is already active.

        Args:
            recipient_id: Recipient identifier
            ticker: Ticker of the triggering signal
            signal_kind: Kind of the triggering signal
            started_at: Start time, defaults to now

        Returns:
            The new record, or None if the recipient's token is active
        """
        token = self.token_for(recipient_id)
        if token in self._records:
            return None

        record = TriggerRecord(
            token=token,
            recipient_id=recipient_id,
            started_at=started_at or self._clock(),
            ticker=ticker,
            signal_kind=signal_kind,
        )
        self._records[token] = record
        logger.debug(f"Reserved trigger {token}")
        return record

    def remove(self, token: str) -> Optional[TriggerRecord]:
        """
        Remove a record.

        Returns:
            The removed record for the first caller, None afterwards
        """
        record = self._records.pop(token, None)
        if record is not None:
            logger.debug(f"Removed trigger {token}")
        return record

    def release(self, record: TriggerRecord) -> bool:
        """
        Remove ``record`` only if it is still the active record for its token.

        Returns:
            True if the record was removed
        """
        if self._records.get(record.token) is not record:
            return False
        del self._records[record.token]
        logger.debug(f"Released trigger {record.token}")
        return True

    def records(self) -> List[TriggerRecord]:
        """Snapshot of active records, oldest first."""
        return sorted(self._records.values(), key=lambda r: r.started_at)

    def tokens(self) -> List[str]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, token: object) -> bool:
        return token in self._records

    def __iter__(self) -> Iterator[TriggerRecord]:
        return iter(self.records())
