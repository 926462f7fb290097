"""
Custom Exceptions Module for Arena Relay.

This module defines the exceptions raised by the relay so that callers can
tell a feed problem from an external service failure or a bad request.
"""

from typing import Any, Dict, Optional
from enum import IntEnum
import logging


logger = logging.getLogger(__name__)


class ErrorCode(IntEnum):
    """Error code enumeration for all exceptions."""

    # General errors (1xxx)
    UNKNOWN = 1000
    VALIDATION = 1003

    # Feed errors (2xxx)
    FEED_CONNECTION = 2000
    FEED_SEND = 2001

    # External service errors (4xxx)
    API_AUTHENTICATION = 4001
    API_RESPONSE = 4005
    TRIGGER_DELIVERY = 4100
    RESULT_QUERY = 4101
    DIRECTORY_LOOKUP = 4102


class RelayException(Exception):
    """
    Base exception class for all relay exceptions.

    All custom exceptions should inherit from this class.
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unknown error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Error code
            details: Additional error details
            cause: Original exception that caused this one
        """
        self.message = message or self.default_message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}
        self.cause = cause

        full_message = f"[{self.error_code.name}:{self.error_code.value}] {self.message}"
        if self.details:
            full_message += f" | Details: {self.details}"

        super().__init__(full_message)

        logger.debug(
            f"Exception raised: {self.__class__.__name__}",
            extra={
                "error_code": self.error_code.value,
                "details": self.details,
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# REQUEST EXCEPTIONS
# =============================================================================

class ValidationError(RelayException):
    """Raised when validation fails."""
    error_code = ErrorCode.VALIDATION
    default_message = "Validation failed"


class AuthenticationError(RelayException):
    """Raised when an inbound request carries the wrong credentials."""
    error_code = ErrorCode.API_AUTHENTICATION
    default_message = "Unauthorized"


# =============================================================================
# FEED EXCEPTIONS
# =============================================================================

class FeedError(RelayException):
    """Base class for market feed errors."""
    error_code = ErrorCode.FEED_CONNECTION
    default_message = "Market feed error"


class FeedSendError(FeedError):
    """Raised when a message cannot be sent to the feed."""
    error_code = ErrorCode.FEED_SEND
    default_message = "Failed to send message to market feed"


# =============================================================================
# EXTERNAL SERVICE EXCEPTIONS
# =============================================================================

class ExternalServiceError(RelayException):
    """Base class for failures talking to the arena API."""
    error_code = ErrorCode.API_RESPONSE
    default_message = "External service error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        self.status_code = status_code
        details = kwargs.pop("details", None) or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)


class TriggerDeliveryError(ExternalServiceError):
    """Raised when the start-work endpoint does not accept a trigger."""
    error_code = ErrorCode.TRIGGER_DELIVERY
    default_message = "Failed to deliver trigger"


class ResultQueryError(ExternalServiceError):
    """Raised when the result store cannot be queried."""
    error_code = ErrorCode.RESULT_QUERY
    default_message = "Failed to query results"


class DirectoryError(ExternalServiceError):
    """Raised when position holders or agent markets cannot be fetched."""
    error_code = ErrorCode.DIRECTORY_LOOKUP
    default_message = "Failed to query position directory"
