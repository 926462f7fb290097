"""
Subscription Manager Module for Arena Relay.

Tracks which tickers each frontend client asked for and which tickers agents
hold. The feed is subscribed to the union of both; every mutation reports
only the tickers that became newly part of that union.
"""

from typing import Dict, Iterable, List, Set

from arena_relay.utils.helpers import unique


class SubscriptionManager:
    """Union of client-requested and agent-held tickers."""

    def __init__(self) -> None:
        self._clients: Dict[str, Set[str]] = {}
        self._agent_markets: Set[str] = set()

    def all_tickers(self) -> Set[str]:
        tickers = set(self._agent_markets)
        for client_tickers in self._clients.values():
            tickers |= client_tickers
        return tickers

    def _new_in_union(self, candidates: Iterable[str]) -> List[str]:
        current = self.all_tickers()
        return [t for t in unique(candidates) if t and t not in current]

    def subscribe_client(self, client_id: str, tickers: Iterable[str]) -> List[str]:
        """
        Add tickers for a client.

        Returns:
            Tickers that were not subscribed before
        """
        tickers = [t for t in tickers if isinstance(t, str) and t]
        new = self._new_in_union(tickers)
        self._clients.setdefault(client_id, set()).update(tickers)
        return new

    def unsubscribe_client(self, client_id: str, tickers: Iterable[str]) -> None:
        """Remove tickers from a client; the feed subscription is kept."""
        client_tickers = self._clients.get(client_id)
        if client_tickers is not None:
            client_tickers.difference_update(tickers)

    def remove_client(self, client_id: str) -> None:
        self._clients.pop(client_id, None)

    def client_tickers(self, client_id: str) -> Set[str]:
        return set(self._clients.get(client_id, set()))

    def add_agent_markets(self, tickers: Iterable[str]) -> List[str]:
        """
        Add agent-held tickers.

        Returns:
            Tickers that were not subscribed before
        """
        tickers = [t for t in tickers if isinstance(t, str) and t]
        new = self._new_in_union(tickers)
        self._agent_markets.update(tickers)
        return new

    def replace_agent_markets(self, tickers: Iterable[str]) -> List[str]:
        """
        Replace the agent-held set with a fresh directory listing.

        Returns:
            Tickers that were not subscribed before
        """
        tickers = [t for t in tickers if isinstance(t, str) and t]
        new = self._new_in_union(tickers)
        self._agent_markets = set(tickers)
        return new

    @property
    def agent_markets(self) -> Set[str]:
        return set(self._agent_markets)

    @property
    def client_count(self) -> int:
        return len(self._clients)
