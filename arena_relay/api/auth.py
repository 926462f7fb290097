"""
Request Authentication for the Arena Relay API.

Inbound webhook calls carry ``Authorization: Bearer <secret>``; the header
must match the configured secret exactly.
"""

import secrets
from typing import Optional

from fastapi import Request

from arena_relay.config.settings import Settings
from arena_relay.utils.exceptions import AuthenticationError


def is_authorized(header: Optional[str], secret: str) -> bool:
    """
    Check an Authorization header against the webhook secret.

    An empty secret never authorizes anything.
    """
    if not secret or not header:
        return False
    return secrets.compare_digest(header.encode(), f"Bearer {secret}".encode())


async def require_bearer(request: Request) -> None:
    """FastAPI dependency rejecting requests without the webhook secret."""
    settings: Settings = request.app.state.settings
    header = request.headers.get("authorization")
    if not is_authorized(header, settings.webhook_secret.get_secret_value()):
        raise AuthenticationError()
