"""
Frontend WebSocket connection management.

Every feed message is rebroadcast verbatim to every connected client.
"""

import asyncio
import json
import logging
from typing import Any, Dict

from fastapi import WebSocket

from arena_relay.core.event_bus import Event


logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected frontend clients and broadcasts to them."""

    def __init__(self) -> None:
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, client_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections[client_id] = websocket
        logger.info(f"Client {client_id} connected ({len(self.active_connections)} total)")

    def disconnect(self, client_id: str) -> None:
        if self.active_connections.pop(client_id, None) is not None:
            logger.info(f"Client {client_id} disconnected ({len(self.active_connections)} total)")

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """
        Send a message to every client concurrently.

        Clients that fail to receive are dropped.

        Returns:
            Number of clients the message reached
        """
        if not self.active_connections:
            return 0

        text = json.dumps(message, default=str)
        clients = list(self.active_connections.items())
        results = await asyncio.gather(
            *(websocket.send_text(text) for _, websocket in clients),
            return_exceptions=True,
        )

        sent = 0
        for (client_id, _), result in zip(clients, results):
            if isinstance(result, Exception):
                logger.warning(f"Error broadcasting to {client_id}: {result}")
                self.disconnect(client_id)
            else:
                sent += 1
        return sent

    async def on_market_update(self, event: Event) -> None:
        """Event bus handler for feed messages."""
        await self.broadcast(event.data)

    def __len__(self) -> int:
        return len(self.active_connections)
