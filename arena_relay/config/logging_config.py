"""
Logging Configuration Module for Arena Relay.

This module configures console and file logging for the relay and provides
the specialized signal logger used by the dispatcher and the poller.
"""

import logging
import logging.handlers
import sys
import json
import traceback
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from enum import Enum
import threading

from pydantic import BaseModel, Field


SIGNAL_LOGGER_NAME = "arena_relay.signals"


class LogFormat(str, Enum):
    """Log format enumeration."""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


class LogDestination(str, Enum):
    """Log destination enumeration."""
    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Default log level")
    format: LogFormat = Field(default=LogFormat.DETAILED, description="Log format")
    destination: LogDestination = Field(default=LogDestination.CONSOLE, description="Log destination")
    log_dir: Path = Field(default=Path("logs"), description="Log directory")
    max_bytes: int = Field(default=10 * 1024 * 1024, description="Max log file size (10MB)")
    backup_count: int = Field(default=5, description="Number of backup files")
    include_stack_trace: bool = Field(default=True, description="Include stack traces")
    colorize_console: bool = Field(default=True, description="Colorize console output")


# Log format strings
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)-30s | "
    "%(filename)s:%(lineno)d | %(message)s"
)

# Color codes for console output
COLORS = {
    'DEBUG': '\033[36m',      # Cyan
    'INFO': '\033[32m',       # Green
    'WARNING': '\033[33m',    # Yellow
    'ERROR': '\033[31m',      # Red
    'CRITICAL': '\033[35m',   # Magenta
    'RESET': '\033[0m'        # Reset
}


class ColorizedFormatter(logging.Formatter):
    """Formatter that adds colors to log levels for console output."""

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        colorize: bool = True
    ) -> None:
        super().__init__(fmt, datefmt)
        self.colorize = colorize

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if self.colorize and record.levelname in COLORS:
            color = COLORS[record.levelname]
            reset = COLORS['RESET']
            message = f"{color}{message}{reset}"
        return message


class JSONFormatter(logging.Formatter):
    """Formatter that outputs logs as JSON."""

    def __init__(
        self,
        include_stack_trace: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Initialize the JSON formatter.

        Args:
            include_stack_trace: Whether to include stack traces
            extra_fields: Extra fields to include in all log entries
        """
        super().__init__()
        self.include_stack_trace = include_stack_trace
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON formatted log string
        """
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, 'extra_data'):
            log_entry['extra'] = record.extra_data

        log_entry.update(self.extra_fields)

        if record.exc_info and self.include_stack_trace:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_entry, default=str)


class SignalLogger:
    """Specialized logger for signal and trigger lifecycle events."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(SIGNAL_LOGGER_NAME)

    def log_signal_detected(
        self,
        kind: str,
        ticker: str,
        platform: str,
        data: Dict[str, Any]
    ) -> None:
        """Log a detected signal."""
        self.logger.info(
            f"SIGNAL: {kind.upper()} {ticker} ({platform})",
            extra={'extra_data': {
                'event': 'signal_detected',
                'kind': kind,
                'ticker': ticker,
                'platform': platform,
                'data': data
            }}
        )

    def log_trigger_started(
        self,
        recipient_id: str,
        token: str,
        ticker: str,
        run_id: Optional[str] = None
    ) -> None:
        """Log a trigger that reached its recipient."""
        self.logger.info(
            f"TRIGGER STARTED: {recipient_id} on {ticker} (run: {run_id or '-'})",
            extra={'extra_data': {
                'event': 'trigger_started',
                'recipient_id': recipient_id,
                'token': token,
                'ticker': ticker,
                'run_id': run_id
            }}
        )

    def log_trigger_skipped(self, recipient_id: str, token: str, ticker: str) -> None:
        """Log a recipient skipped because a trigger is already active."""
        self.logger.info(
            f"TRIGGER SKIPPED: {recipient_id} already running ({ticker})",
            extra={'extra_data': {
                'event': 'trigger_skipped',
                'recipient_id': recipient_id,
                'token': token,
                'ticker': ticker
            }}
        )

    def log_trigger_failed(self, recipient_id: str, token: str, error: str) -> None:
        """Log a trigger that could not be delivered."""
        self.logger.warning(
            f"TRIGGER FAILED: {recipient_id} - {error}",
            extra={'extra_data': {
                'event': 'trigger_failed',
                'recipient_id': recipient_id,
                'token': token,
                'error': error
            }}
        )

    def log_trigger_resolved(
        self,
        recipient_id: str,
        token: str,
        status: str,
        reason: Optional[str] = None
    ) -> None:
        """Log a trigger that completed or timed out."""
        level = logging.INFO if status == "completed" else logging.WARNING
        message = f"TRIGGER {status.upper()}: {recipient_id}"
        if reason:
            message += f" - {reason}"
        self.logger.log(
            level,
            message,
            extra={'extra_data': {
                'event': 'trigger_resolved',
                'recipient_id': recipient_id,
                'token': token,
                'status': status,
                'reason': reason
            }}
        )


class LoggingManager:
    """
    Central logging manager for the relay.

    Manages the root handlers and the component loggers.
    """

    _instance: Optional['LoggingManager'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'LoggingManager':
        """Singleton pattern for logging manager."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self.config: Optional[LoggingConfig] = None
        self.handlers: Dict[str, logging.Handler] = {}
        self.loggers: Dict[str, logging.Logger] = {}
        self._signal_logger: Optional[SignalLogger] = None
        self._initialized = True

    def setup(self, config: Optional[LoggingConfig] = None) -> None:
        """
        Set up logging with the given configuration.

        Args:
            config: Logging configuration
        """
        self.config = config or LoggingConfig()

        root_logger = logging.getLogger()
        root_logger.setLevel(self.config.level)

        for handler in self.handlers.values():
            root_logger.removeHandler(handler)
            handler.close()
        self.handlers.clear()

        if self.config.destination in (LogDestination.CONSOLE, LogDestination.BOTH):
            console_handler = self._create_console_handler()
            root_logger.addHandler(console_handler)
            self.handlers['console'] = console_handler

        if self.config.destination in (LogDestination.FILE, LogDestination.BOTH):
            self.config.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = self._create_file_handler("arena_relay.log")
            root_logger.addHandler(file_handler)
            self.handlers['main_file'] = file_handler

            error_handler = self._create_file_handler("errors.log")
            error_handler.setLevel(logging.ERROR)
            root_logger.addHandler(error_handler)
            self.handlers['error_file'] = error_handler

        self._setup_component_loggers()

    def _create_console_handler(self) -> logging.Handler:
        """Create console handler with appropriate formatter."""
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(self.config.level)

        if self.config.format == LogFormat.JSON:
            formatter = JSONFormatter(include_stack_trace=self.config.include_stack_trace)
        elif self.config.format == LogFormat.DETAILED:
            formatter = ColorizedFormatter(
                DETAILED_FORMAT,
                colorize=self.config.colorize_console
            )
        else:
            formatter = ColorizedFormatter(
                SIMPLE_FORMAT,
                colorize=self.config.colorize_console
            )

        handler.setFormatter(formatter)
        return handler

    def _create_file_handler(self, filename: str) -> logging.Handler:
        """Create file handler with rotation."""
        filepath = self.config.log_dir / filename
        handler = logging.handlers.RotatingFileHandler(
            filepath,
            maxBytes=self.config.max_bytes,
            backupCount=self.config.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(self.config.level)

        if self.config.format == LogFormat.JSON:
            formatter = JSONFormatter(include_stack_trace=self.config.include_stack_trace)
        else:
            formatter = logging.Formatter(DETAILED_FORMAT)

        handler.setFormatter(formatter)
        return handler

    def _setup_component_loggers(self) -> None:
        """Set up loggers for the relay components."""
        for logger_name in (
            'arena_relay.core',
            'arena_relay.data',
            'arena_relay.signals',
            'arena_relay.dispatch',
            'arena_relay.services',
            'arena_relay.api',
        ):
            logger = logging.getLogger(logger_name)
            logger.setLevel(self.config.level)
            self.loggers[logger_name] = logger

        # Feed keepalive chatter is only useful when debugging the connection
        logging.getLogger('websockets').setLevel(logging.WARNING)
        logging.getLogger('httpx').setLevel(logging.WARNING)

        self._signal_logger = SignalLogger(logging.getLogger(SIGNAL_LOGGER_NAME))

    def get_signal_logger(self) -> SignalLogger:
        """Get the specialized signal logger."""
        if self._signal_logger is None:
            self._signal_logger = SignalLogger()
        return self._signal_logger


def setup_logging(config: Optional[LoggingConfig] = None) -> LoggingManager:
    """
    Set up logging with the given configuration.

    Args:
        config: Logging configuration

    Returns:
        LoggingManager instance
    """
    manager = LoggingManager()
    manager.setup(config)
    return manager


def get_signal_logger() -> SignalLogger:
    """Get the specialized signal logger."""
    return LoggingManager().get_signal_logger()
