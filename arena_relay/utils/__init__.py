"""
Utilities Package for Arena Relay.

Exceptions, date helpers and payload conversion helpers.
"""

from arena_relay.utils.exceptions import (
    ErrorCode,
    RelayException,
    ValidationError,
    AuthenticationError,
    FeedError,
    FeedSendError,
    ExternalServiceError,
    TriggerDeliveryError,
    ResultQueryError,
    DirectoryError,
)

from arena_relay.utils.date_utils import (
    now_utc,
    make_aware,
    to_epoch_ms,
    from_epoch_ms,
    from_epoch,
    parse_datetime,
)

from arena_relay.utils.helpers import (
    generate_uuid,
    to_float,
    safe_json_loads,
    unique,
    split_csv,
)

__all__ = [
    "ErrorCode",
    "RelayException",
    "ValidationError",
    "AuthenticationError",
    "FeedError",
    "FeedSendError",
    "ExternalServiceError",
    "TriggerDeliveryError",
    "ResultQueryError",
    "DirectoryError",
    "now_utc",
    "make_aware",
    "to_epoch_ms",
    "from_epoch_ms",
    "from_epoch",
    "parse_datetime",
    "generate_uuid",
    "to_float",
    "safe_json_loads",
    "unique",
    "split_csv",
]
