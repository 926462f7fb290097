"""
Main Settings Module for Arena Relay.

This module provides centralized configuration for the relay: the market feed,
signal thresholds, the arena API it triggers and polls, and the HTTP server.
"""

import json
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arena_relay.config import constants


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FeedSettings(BaseModel):
    """Market feed connection settings."""

    url: str = Field(default=constants.DEFAULT_FEED_URL, description="Feed WebSocket URL")
    api_key: SecretStr = Field(default=SecretStr(""), description="Feed API key (x-api-key header)")
    platform: str = Field(default=constants.DEFAULT_PLATFORM, description="Platform label for signals")
    channels: List[str] = Field(
        default_factory=lambda: list(constants.DEFAULT_FEED_CHANNELS),
        description="Feed channels to subscribe to"
    )
    reconnect_delay_seconds: float = Field(
        default=constants.RECONNECT_DELAY_SECONDS, ge=0.0, le=300.0,
        description="Delay before reconnecting"
    )

    @field_validator('channels', mode='before')
    @classmethod
    def parse_channels(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse channels from string or list."""
        if isinstance(v, str):
            return [c.strip().lower() for c in v.split(',') if c.strip()]
        return [c.lower() for c in v]

    @property
    def is_configured(self) -> bool:
        """Check if the feed API key is configured."""
        return bool(self.api_key.get_secret_value())


class SignalSettings(BaseModel):
    """Thresholds for the signal classifier."""

    window_size: int = Field(default=constants.TRADE_WINDOW_SIZE, ge=2, le=10000)
    swing_threshold: float = Field(default=constants.SWING_THRESHOLD, gt=0.0)
    spike_multiplier: float = Field(default=constants.SPIKE_MULTIPLIER, gt=1.0)
    min_trade_history: int = Field(default=constants.MIN_TRADE_HISTORY, ge=1)
    imbalance_enabled: bool = Field(default=False, description="Emit orderbook imbalance signals")
    imbalance_ratio: float = Field(default=constants.IMBALANCE_RATIO, gt=1.0)
    flip_enabled: bool = Field(default=True, description="Emit position flip signals")
    flip_upper_threshold: float = Field(default=constants.FLIP_UPPER_THRESHOLD, gt=0.0, lt=1.0)
    flip_lower_threshold: float = Field(default=constants.FLIP_LOWER_THRESHOLD, gt=0.0, lt=1.0)
    flip_cooldown_seconds: int = Field(default=constants.FLIP_COOLDOWN_SECONDS, ge=0)

    @model_validator(mode='after')
    def check_flip_band(self) -> 'SignalSettings':
        """The flip band must be a proper interval."""
        if self.flip_lower_threshold >= self.flip_upper_threshold:
            raise ValueError("flip_lower_threshold must be below flip_upper_threshold")
        if self.min_trade_history >= self.window_size:
            raise ValueError("min_trade_history must be smaller than window_size")
        return self


class DispatchSettings(BaseModel):
    """Arena API settings used for triggers, results and position lookups."""

    api_base_url: str = Field(default="http://localhost:3000", description="Arena API base URL")
    trigger_path: str = Field(default=constants.TRIGGER_PATH)
    results_path: str = Field(default=constants.RESULTS_PATH)
    holders_path: str = Field(default=constants.HOLDERS_PATH)
    markets_path: str = Field(default=constants.MARKETS_PATH)
    token_prefix: str = Field(default=constants.TRIGGER_TOKEN_PREFIX)
    request_timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)


class PollerSettings(BaseModel):
    """Completion poller settings."""

    interval_seconds: float = Field(default=constants.POLL_INTERVAL_SECONDS, ge=1.0, le=3600.0)
    timeout_seconds: int = Field(default=constants.TRIGGER_TIMEOUT_SECONDS, ge=1)


class ServerSettings(BaseModel):
    """HTTP server settings."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=1999, ge=1, le=65535)


class Settings(BaseSettings):
    """
    Main application settings.

    Values come from the environment (``ARENA_RELAY_`` prefix, ``__`` for
    nested sections) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ARENA_RELAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = Field(default="Arena Relay", description="Application name")
    version: str = Field(default="0.3.0", description="Application version")
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(default="detailed", description="simple, detailed or json")

    webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer secret for inbound requests and outbound arena calls"
    )
    market_refresh_interval_seconds: float = Field(
        default=constants.AGENT_MARKET_REFRESH_SECONDS, ge=5.0
    )

    feed: FeedSettings = Field(default_factory=FeedSettings)
    signals: SignalSettings = Field(default_factory=SignalSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    poller: PollerSettings = Field(default_factory=PollerSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def has_webhook_secret(self) -> bool:
        return bool(self.webhook_secret.get_secret_value())

    def to_dict(self, exclude_secrets: bool = True) -> Dict[str, Any]:
        """
        Convert settings to dictionary.

        Args:
            exclude_secrets: Whether to mask secret values

        Returns:
            Dictionary representation of settings
        """
        data = self.model_dump(mode="json")
        if exclude_secrets:
            sensitive_keys = ['secret', 'token', 'api_key']

            def mask_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: '***MASKED***' if any(sk in k.lower() for sk in sensitive_keys) else mask_secrets(v)
                        for k, v in obj.items()
                    }
                if isinstance(obj, list):
                    return [mask_secrets(item) for item in obj]
                return obj

            data = mask_secrets(data)
        else:
            data["webhook_secret"] = self.webhook_secret.get_secret_value()
            data["feed"]["api_key"] = self.feed.api_key.get_secret_value()
        return data

    @classmethod
    def load_from_file(cls, filepath: Path) -> 'Settings':
        """
        Load settings from JSON file.

        Args:
            filepath: Path to settings file

        Returns:
            Settings instance
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Settings file not found: {filepath}")
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls(**data)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings, clearing the cache.

    Returns:
        New Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
