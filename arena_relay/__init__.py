"""
Arena Relay.

Detects price swings, volume spikes, orderbook imbalances and position flips
on a prediction-market feed and triggers the trading agents holding the
affected markets, one active trigger per agent.
"""

__version__ = "0.3.0"
