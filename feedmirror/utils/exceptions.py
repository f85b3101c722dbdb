"""
FeedMirror Custom Exceptions
============================

Exception hierarchy for FeedMirror with error codes, context information
and user-facing messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_PARSE_ERROR = "C003"

    # Feed fetching and parsing errors (F001-F099)
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"

    # Content processing errors (P001-P099)
    CONTENT_INVALID = "P001"
    CONTENT_MISSING_IDENTIFIER = "P002"

    # Storage errors (S001-S099)
    STORAGE_WRITE_FAILED = "S001"
    STORAGE_READ_FAILED = "S002"
    STORAGE_PERMISSION_DENIED = "S003"

    # Validation errors (V001-V099)
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_DUPLICATE = "V003"

    # System errors (X001-X099)
    SYSTEM_MEMORY_ERROR = "X002"


class FeedMirrorError(Exception):
    """Base exception for all FeedMirror errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedMirror error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the run can continue past this error
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


def _split_kwargs(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(FeedMirrorError):
    """Configuration-related errors. Always fatal for the run."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for FeedMirrorError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class FeedError(FeedMirrorError):
    """Feed fetching and parsing errors, scoped to a single source."""

    def __init__(self, message: str, source_id: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            source_id: Opaque id of the source that caused the error
            **kwargs: Additional arguments for FeedMirrorError
        """
        context = kwargs.get("context", {})
        if source_id:
            context["source_id"] = source_id

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class FeedParseError(FeedError):
    """Malformed or unrecognised feed payloads."""

    def __init__(self, message: str, source_id: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        super().__init__(message, source_id=source_id, **kwargs)


class ProcessingError(FeedMirrorError):
    """Item processing errors."""

    def __init__(self, message: str, item_hash: Optional[str] = None, **kwargs):
        """Initialize processing error.

        Args:
            message: Error message
            item_hash: Content address of the item that caused the error
            **kwargs: Additional arguments for FeedMirrorError
        """
        context = kwargs.get("context", {})
        if item_hash:
            context["item_hash"] = item_hash

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONTENT_INVALID),
            context=context,
            user_message=kwargs.get("user_message", "Item processing failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class StorageError(FeedMirrorError):
    """Persistence backend errors."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        """Initialize storage error.

        Args:
            message: Error message
            key: Storage key or path that failed
            **kwargs: Additional arguments for FeedMirrorError
        """
        context = kwargs.get("context", {})
        if key:
            context["key"] = key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.STORAGE_WRITE_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Storage operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class ValidationError(FeedMirrorError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        """Initialize validation error.

        Args:
            message: Error message
            field_name: Field name that failed validation
            **kwargs: Additional arguments for FeedMirrorError
        """
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedMirrorError:
    """Convert generic exceptions to FeedMirror exceptions with logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        FeedMirror exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, FeedMirrorError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = FeedMirrorError(
            message=f"Network error during {operation}: {exception}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )

    elif isinstance(exception, PermissionError):
        error = StorageError(
            message=f"Permission denied during {operation}: {exception}",
            error_code=ErrorCode.STORAGE_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
            recoverable=False,
        )

    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {exception}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Required file or directory missing",
        )

    elif isinstance(exception, MemoryError):
        error = FeedMirrorError(
            message=f"Memory exhausted during {operation}: {exception}",
            error_code=ErrorCode.SYSTEM_MEMORY_ERROR,
            context=context,
            user_message="System resources exhausted",
        )

    else:
        error = FeedMirrorError(
            message=f"Unexpected error during {operation}: {exception}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, FeedMirrorError):
        return exception.user_message

    return "An unexpected error occurred."
