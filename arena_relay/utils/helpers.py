"""
Helper Functions Module for Arena Relay.

Small conversion helpers used when decoding loosely typed feed and API payloads.
"""

import json
import math
import uuid
from typing import Any, Iterable, List, Optional, TypeVar


T = TypeVar('T')


def generate_uuid() -> str:
    """
    Generate a UUID string.

    Returns:
        UUID string
    """
    return str(uuid.uuid4())


def to_float(value: Any) -> Optional[float]:
    """
    Convert a feed value to float.

    The feed sends prices as strings and uses ``null`` for an empty side,
    so ``None``, empty strings and non-finite numbers all map to ``None``.

    Args:
        value: Raw value

    Returns:
        Float value or None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_json_loads(text: str, default: Any = None) -> Any:
    """
    Parse JSON, returning a default on failure.

    Args:
        text: JSON text
        default: Value returned when parsing fails

    Returns:
        Parsed value or default
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return default


def unique(items: Iterable[T]) -> List[T]:
    """Remove duplicates while keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma separated query parameter, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
