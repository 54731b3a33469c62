"""
Feedhook Custom Exceptions
==========================

Exception hierarchy for Feedhook with error codes, context information and
user-friendly messages. None of these are allowed to escape the dispatch
boundary; they exist so that each failure is logged with a precise category.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_PARSE_ERROR = "C003"

    # Routing errors (R001-R099)
    PATTERN_INVALID = "R001"

    # Image errors (I001-I099)
    IMAGE_DOWNLOAD_FAILED = "I001"
    IMAGE_INVALID_FORMAT = "I002"

    # Delivery errors (L001-L099)
    DELIVERY_FAILED = "L001"
    DELIVERY_MESSAGE_REJECTED = "L003"
    DELIVERY_TIMEOUT = "L004"
    DELIVERY_PAYLOAD_TOO_LARGE = "L005"


class FeedhookError(Exception):
    """Base exception for all Feedhook errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize Feedhook error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(FeedhookError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for FeedhookError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message"]
            },
        )


class PatternError(FeedhookError):
    """A routing pattern failed to compile or evaluate."""

    def __init__(self, message: str, pattern: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if pattern is not None:
            context["pattern"] = pattern

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.PATTERN_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Invalid pattern: {message}"),
            recoverable=True,
        )


class TransportError(FeedhookError):
    """Network failure, timeout or unexpected HTTP status."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        """Initialize transport error.

        Args:
            message: Error message
            url: URL of the failed request
            status_code: HTTP status, when a response was received
            **kwargs: Additional arguments for FeedhookError
        """
        context = kwargs.get("context", {})
        if url:
            context["url"] = url
        if status_code is not None:
            context["status_code"] = status_code
        self.status_code = status_code

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DELIVERY_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Webhook delivery failed"),
            recoverable=kwargs.get("recoverable", True),
        )


class PayloadTooLargeError(TransportError):
    """The webhook rejected an upload with HTTP 413."""

    def __init__(self, message: str, url: Optional[str] = None, size: Optional[int] = None):
        super().__init__(
            message,
            url=url,
            status_code=413,
            error_code=ErrorCode.DELIVERY_PAYLOAD_TOO_LARGE,
            context={"size_bytes": size} if size is not None else {},
            user_message="Image too large for upload",
        )
        self.size = size


class ImageDecodeError(FeedhookError):
    """Downloaded bytes are not a decodable image."""

    def __init__(self, message: str, image_url: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if image_url:
            context["image_url"] = image_url

        super().__init__(
            message=message,
            error_code=ErrorCode.IMAGE_INVALID_FORMAT,
            context=context,
            user_message="Invalid image format",
            recoverable=True,
        )


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedhookError:
    """Convert generic exceptions to Feedhook exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        Feedhook exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, FeedhookError):
        logger.error(f"Operation '{operation}' failed: {exception}", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = TransportError(
            message=f"Network error during {operation}: {str(exception)}",
            error_code=ErrorCode.DELIVERY_TIMEOUT
            if isinstance(exception, TimeoutError)
            else ErrorCode.DELIVERY_FAILED,
            context=context,
        )

    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {str(exception)}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Configuration file missing",
        )

    else:
        error = FeedhookError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed: {error}", extra=error.to_dict())
    return error
