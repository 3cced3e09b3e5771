"""Structured error tracking with automatic classification.

This module provides error handling for the order parsing pipeline with:
- Exception types for the failures the pipeline distinguishes
- Automatic error classification by stage and type
- Integration with structured logging
- Serializable error records for routing traces

Per-email failures are converted into ExtractionError records and stored in
the routing trace; only RegistryNotPopulatedError reaches the caller.

Usage:
    from mail_orders.error_tracking import ExtractionError, ErrorStage

    try:
        provider.analyze_email(payload)
    except BackendFailure as e:
        error = ExtractionError.from_exception(e, ErrorStage.LLM,
                                               context={'email_id': email.id})
        error.log()
        trace['llm_error'] = error.to_dict()
"""

import traceback
from enum import Enum
from typing import Any

from mail_orders.logging_config import get_logger

logger = get_logger(__name__)


class OrderParsingError(Exception):
    """Base class for order parsing errors."""


class BackendFailure(OrderParsingError):
    """LLM backend call failed, timed out, or returned unusable output."""


class RateLimited(BackendFailure):
    """LLM backend signalled rate limiting; callers back off instead of giving up."""


class RegistryNotPopulatedError(OrderParsingError):
    """Raised when the pipeline is asked to run against an empty registry."""


class RegistryFrozenError(OrderParsingError):
    """Raised when registering into a registry that was already sealed."""


class ErrorStage(Enum):
    """Pipeline stage where an error occurred."""

    CLASSIFY = "classify"  # Language detection and pre-filter
    EXTRACT = "extract"  # Retailer pattern extraction
    LLM = "llm"  # LLM backend analysis
    MERGE = "merge"  # Merging regex and LLM results
    BATCH = "batch"  # Batch orchestration


class ErrorType(Enum):
    """Error type classification for backoff and debugging."""

    API_ERROR = "api_error"  # External API errors
    TIMEOUT = "timeout"  # Timeout errors
    PARSE_ERROR = "parse_error"  # Parsing/extraction failures
    VALIDATION = "validation"  # Data validation failures
    NETWORK = "network"  # Network connectivity issues
    RATE_LIMIT = "rate_limit"  # API rate limiting (backoff)
    AUTH_ERROR = "auth_error"  # Authentication failures
    UNKNOWN = "unknown"  # Uncategorized errors


RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate_limit",
    "ratelimit",
    "too many requests",
    "429",
    "quota",
    "resource exhausted",
    "resourceexhausted",
)


def is_rate_limit_message(message: str) -> bool:
    """Check an error message for rate limiting markers."""
    message = message.lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


class ExtractionError:
    """Structured error with logging and trace serialization.

    Attributes:
        stage: Error stage (where in the pipeline the error occurred)
        error_type: Error type (for backoff and debugging decisions)
        message: Human-readable error message
        exception: Original exception (if any)
        context: Additional context (email_id, retailer, etc.)
        is_retryable: Whether the failure is transient
        stack_trace: Full stack trace string
    """

    def __init__(
        self,
        stage: ErrorStage,
        error_type: ErrorType,
        message: str,
        exception: Exception | None = None,
        context: dict[str, Any] | None = None,
        is_retryable: bool = False,
    ):
        self.stage = stage
        self.error_type = error_type
        self.message = message
        self.exception = exception
        self.context = context or {}
        self.is_retryable = is_retryable
        self.stack_trace = None

        if exception:
            self.stack_trace = "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            )

    def log(self) -> None:
        """Log error through the structured logging system."""
        logger.error(
            f"[{self.stage.value}] {self.message}",
            extra={
                "email_id": self.context.get("email_id"),
                "retailer": self.context.get("retailer"),
                "parse_method": self.context.get("parse_method"),
            },
            exc_info=self.exception,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for embedding in traces and debug info."""
        return {
            "stage": self.stage.value,
            "error_type": self.error_type.value,
            "message": self.message,
            "is_retryable": self.is_retryable,
        }

    @classmethod
    def from_exception(
        cls,
        exception: Exception,
        stage: ErrorStage,
        context: dict[str, Any] | None = None,
    ) -> "ExtractionError":
        """Auto-classify error from exception.

        Examines exception type and message to determine error type
        and whether the failure is transient.

        Args:
            exception: Exception object to classify
            stage: Error stage where exception occurred
            context: Additional context dict

        Returns:
            ExtractionError instance with auto-classified type
        """
        error_type = ErrorType.UNKNOWN
        is_retryable = False

        error_str = str(exception).lower()
        exception_name = type(exception).__name__

        # Rate limiting (retryable with backoff)
        if isinstance(exception, RateLimited) or is_rate_limit_message(error_str):
            error_type = ErrorType.RATE_LIMIT
            is_retryable = True

        # Timeout errors (retryable)
        elif "timeout" in error_str or "timed out" in error_str or exception_name in [
            "TimeoutError",
            "ReadTimeout",
            "APITimeoutError",
        ]:
            error_type = ErrorType.TIMEOUT
            is_retryable = True

        # Authentication errors (requires user intervention)
        elif (
            "auth" in error_str
            or "401" in error_str
            or "api key" in error_str
            or "unauthorized" in error_str
        ):
            error_type = ErrorType.AUTH_ERROR

        # Network errors (retryable)
        elif (
            "connection" in error_str
            or "network" in error_str
            or exception_name in ["ConnectionError", "ConnectionResetError"]
        ):
            error_type = ErrorType.NETWORK
            is_retryable = True

        # Unusable backend output
        elif "json" in error_str or exception_name == "JSONDecodeError":
            error_type = ErrorType.PARSE_ERROR

        # Validation errors
        elif (
            "validation" in error_str
            or "invalid" in error_str
            or exception_name in ["ValueError", "ValidationError"]
        ):
            error_type = ErrorType.VALIDATION

        # Parse errors (stage-specific)
        elif stage in [ErrorStage.CLASSIFY, ErrorStage.EXTRACT, ErrorStage.MERGE]:
            error_type = ErrorType.PARSE_ERROR

        # API errors (general external API failures)
        elif isinstance(exception, BackendFailure) or "api" in error_str:
            error_type = ErrorType.API_ERROR
            is_retryable = True

        return cls(
            stage=stage,
            error_type=error_type,
            message=str(exception),
            exception=exception,
            context=context,
            is_retryable=is_retryable,
        )
