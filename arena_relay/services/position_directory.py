"""
Position Directory Module for Arena Relay.

Answers which agents hold a position in a ticker, and which markets agents
hold at all (used to keep the feed subscribed to them).
"""

import logging
from typing import Any, List, Optional

from arena_relay.config.constants import HOLDERS_PATH, MARKETS_PATH
from arena_relay.services.api_client import ArenaApiClient
from arena_relay.utils.exceptions import DirectoryError
from arena_relay.utils.helpers import unique


logger = logging.getLogger(__name__)


def _extract(body: Any, key: str, id_fields: tuple) -> List[str]:
    """Pull a list of identifiers out of ``{key: [...]}`` or a bare list."""
    if isinstance(body, dict):
        body = body.get(key)
    if not isinstance(body, list):
        raise DirectoryError(f"Unexpected response: missing '{key}' list")

    values = []
    for item in body:
        if isinstance(item, str):
            values.append(item)
        elif isinstance(item, dict):
            for field in id_fields:
                if item.get(field):
                    values.append(str(item[field]))
                    break
    return unique(v for v in values if v)


class PositionDirectory:
    """Position lookups against the arena API."""

    def __init__(
        self,
        api: ArenaApiClient,
        holders_path: str = HOLDERS_PATH,
        markets_path: str = MARKETS_PATH
    ) -> None:
        self.api = api
        self.holders_path = holders_path
        self.markets_path = markets_path

    async def holders(self, ticker: str) -> List[str]:
        """
        Recipients currently holding a position in ``ticker``.

        Raises:
            DirectoryError: If the lookup fails
        """
        body = await self.api.get(self.holders_path, error_cls=DirectoryError, ticker=ticker)
        holders = _extract(body, "holders", ("recipientId", "modelId", "id"))
        logger.debug(f"{len(holders)} holder(s) for {ticker}")
        return holders

    async def agent_markets(self, platform: Optional[str] = None) -> List[str]:
        """
        Tickers any agent holds, optionally for one platform.

        Raises:
            DirectoryError: If the lookup fails
        """
        params = {"platform": platform} if platform else {}
        body = await self.api.get(self.markets_path, error_cls=DirectoryError, **params)
        return _extract(body, "markets", ("ticker", "marketTicker"))
