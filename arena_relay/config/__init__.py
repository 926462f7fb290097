"""
Configuration Package for Arena Relay.

Settings, defaults and logging setup.
"""

from arena_relay.config.settings import (
    Settings,
    FeedSettings,
    SignalSettings,
    DispatchSettings,
    PollerSettings,
    ServerSettings,
    Environment,
    LogLevel,
    get_settings,
    reload_settings,
)

from arena_relay.config.logging_config import (
    LoggingConfig,
    LogFormat,
    LogDestination,
    LoggingManager,
    SignalLogger,
    setup_logging,
    get_signal_logger,
)

__all__ = [
    "Settings",
    "FeedSettings",
    "SignalSettings",
    "DispatchSettings",
    "PollerSettings",
    "ServerSettings",
    "Environment",
    "LogLevel",
    "get_settings",
    "reload_settings",
    "LoggingConfig",
    "LogFormat",
    "LogDestination",
    "LoggingManager",
    "SignalLogger",
    "setup_logging",
    "get_signal_logger",
]
