"""
Workflow Client Module for Arena Relay.

Starts an agent's trading workflow for a signal through the arena's
start-work endpoint.
"""

import logging
from typing import Optional

from arena_relay.config.constants import TRIGGER_PATH
from arena_relay.core.models import Signal
from arena_relay.services.api_client import ArenaApiClient
from arena_relay.utils.exceptions import TriggerDeliveryError


logger = logging.getLogger(__name__)


class WorkflowClient:
    """Delivers triggers to the start-work endpoint."""

    def __init__(self, api: ArenaApiClient, path: str = TRIGGER_PATH) -> None:
        self.api = api
        self.path = path

    async def start(self, recipient_id: str, token: str, signal: Signal) -> Optional[str]:
        """
        Start work for one recipient.

        Args:
            recipient_id: Recipient (agent) identifier
            token: Trigger token the workflow registers its hook under
            signal: Triggering signal

        Returns:
            Run identifier reported by the endpoint, if any

        Raises:
            TriggerDeliveryError: On any non-2xx response or transport error
        """
        body = await self.api.post(
            self.path,
            {
                "recipientId": recipient_id,
                "token": token,
                "signal": signal.to_payload(),
            },
            error_cls=TriggerDeliveryError,
        )

        run_id = None
        if isinstance(body, dict):
            run_id = body.get("runId") or body.get("workflowRunId") or body.get("id")
        logger.debug(f"Started workflow for {recipient_id} (run: {run_id})")
        return str(run_id) if run_id is not None else None
