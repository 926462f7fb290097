"""
Result Store Client Module for Arena Relay.

Queries the arena for results (agent decisions) recorded for a recipient at
or after a given time.
"""

from datetime import datetime
from typing import Any, Dict, List

from arena_relay.config.constants import RESULTS_PATH
from arena_relay.services.api_client import ArenaApiClient
from arena_relay.utils.date_utils import make_aware
from arena_relay.utils.exceptions import ResultQueryError


class ResultStoreClient:
    """Reads completed results from the arena API."""

    def __init__(self, api: ArenaApiClient, path: str = RESULTS_PATH) -> None:
        self.api = api
        self.path = path

    async def fetch(self, recipient_id: str, since: datetime) -> List[Dict[str, Any]]:
        """
        List results for a recipient created at or after ``since``.

        Args:
            recipient_id: Recipient identifier
            since: Lower bound (inclusive)

        Returns:
            Result objects, possibly empty

        Raises:
            ResultQueryError: If the query fails or the body has an unexpected shape
        """
        body = await self.api.get(
            self.path,
            error_cls=ResultQueryError,
            recipientId=recipient_id,
            since=make_aware(since).isoformat(),
        )

        if body is None:
            return []
        if isinstance(body, dict):
            body = body.get("results")
        if not isinstance(body, list):
            raise ResultQueryError(
                "Unexpected result store response",
                details={"recipient_id": recipient_id},
            )
        return [item for item in body if isinstance(item, dict)]
