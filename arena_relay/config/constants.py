"""
Constants Module for Arena Relay.

Default thresholds and endpoints shared by the settings models and the
components that can also be built without settings (tests, scripts).
"""

# Feed
DEFAULT_FEED_URL = "wss://prediction-markets-api.dflow.net/api/v1/ws"
DEFAULT_PLATFORM = "dflow"
DEFAULT_FEED_CHANNELS = ("prices", "trades")
RECONNECT_DELAY_SECONDS = 5.0

# Rolling statistics
TRADE_WINDOW_SIZE = 100

# Price swing
SWING_THRESHOLD = 0.10

# Volume spike
SPIKE_MULTIPLIER = 10.0
MIN_TRADE_HISTORY = 10

# Orderbook imbalance
IMBALANCE_RATIO = 3.0

# Position flip (hysteresis around 50%)
FLIP_UPPER_THRESHOLD = 0.52
FLIP_LOWER_THRESHOLD = 0.48
FLIP_COOLDOWN_SECONDS = 60 * 60

# Dispatch
TRIGGER_TOKEN_PREFIX = "signals:"
TRIGGER_TIMEOUT_SECONDS = 10 * 60
POLL_INTERVAL_SECONDS = 30.0
AGENT_MARKET_REFRESH_SECONDS = 5 * 60

# Arena API paths
TRIGGER_PATH = "/api/signals/start"
RESULTS_PATH = "/api/agents/results"
HOLDERS_PATH = "/api/agents/holders"
MARKETS_PATH = "/api/agents/markets"
