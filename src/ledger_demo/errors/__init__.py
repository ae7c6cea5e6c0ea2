"""
Centralized error handling for the demo-data generator

This module provides the error hierarchy shared by the generators, the API
client and the plugin pipeline so that failures are classified consistently.
"""

import logging
import sys
import traceback
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:  # pragma: no cover
    from ledger_demo.utilities.logging_patterns import StructuredLogger

_logger: Optional["StructuredLogger"] = None

# Substrings the remote API has historically used to report a duplicate.
CONFLICT_MARKERS: tuple[str, ...] = ("already exists", "conflict", "409")


def _get_logger() -> "StructuredLogger":
    global _logger
    if _logger is None:
        from ledger_demo.utilities.logging_patterns import get_logger as _get_structured_logger

        _logger = _get_structured_logger(__name__, component="errors")
    return _logger


def _capture_traceback() -> str:
    """Return the active traceback, or an empty string outside an except block."""

    exc_type, exc_value, exc_tb = sys.exc_info()
    if exc_type is not None and exc_tb is not None:
        return "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    return ""


class GenerationError(Exception):
    """Base exception class for all demo-data generation errors"""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        recoverable: bool = True,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now()
        self.traceback = _capture_traceback()
        self.original_error = original_error

    def add_context(self, **kwargs: Any) -> "GenerationError":
        """Add additional context to the error"""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback,
        }


class ConfigurationError(GenerationError):
    """Raised when there are configuration issues"""

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="CONFIG_ERROR", recoverable=False, **kwargs)
        if config_key:
            self.add_context(config_key=config_key)


class ValidationError(GenerationError):
    """Raised when an entity payload fails schema or business-rule validation"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        entity_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code="VALIDATION_ERROR", recoverable=False, **kwargs)
        self.field = field
        self.entity_type = entity_type
        if field:
            self.add_context(field=field, value=value)
        if entity_type:
            self.add_context(entity_type=entity_type)


class ApiErrorKind(str, Enum):
    """Structured classification of remote API failures."""

    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    NETWORK = "network"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, status_code: int | None) -> "ApiErrorKind":
        if status_code is None:
            return cls.NETWORK
        if status_code == 409:
            return cls.CONFLICT
        if status_code == 404:
            return cls.NOT_FOUND
        if status_code in (400, 422):
            return cls.VALIDATION
        if status_code in (401, 403):
            return cls.AUTH
        if status_code == 429:
            return cls.RATE_LIMITED
        if status_code >= 500:
            return cls.SERVER
        return cls.UNKNOWN


class ApiError(GenerationError):
    """Raised when a call to the ledger API fails"""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        kind: ApiErrorKind | None = None,
        url: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code="API_ERROR", **kwargs)
        self.status_code = status_code
        self.kind = kind or ApiErrorKind.from_status(status_code)
        self.url = url
        self.add_context(kind=self.kind.value, status_code=status_code)
        if url:
            self.add_context(url=url)


class CircuitOpenError(GenerationError):
    """Raised when a circuit breaker rejects a call without attempting it"""

    def __init__(self, message: str, breaker_name: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="CIRCUIT_OPEN", **kwargs)
        self.breaker_name = breaker_name
        if breaker_name:
            self.add_context(breaker=breaker_name)


class MissingParentError(GenerationError):
    """Raised when a required parent ID is neither given nor registered"""

    def __init__(self, message: str, parent_type: str, **kwargs: Any) -> None:
        super().__init__(message, error_code="MISSING_PARENT", recoverable=False, **kwargs)
        self.parent_type = parent_type
        self.add_context(parent_type=parent_type)


def is_conflict_error(error: BaseException) -> bool:
    """Return True when ``error`` signals that the entity already exists.

    Structured ``ApiError`` kinds are authoritative. Foreign exceptions fall
    back to the message markers the ledger API is known to emit.
    """
    if isinstance(error, ApiError):
        if error.kind is ApiErrorKind.CONFLICT:
            return True
        if error.status_code is not None:
            return False
    message = str(error).lower()
    return any(marker in message for marker in CONFLICT_MARKERS)


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> GenerationError:
    """Convert any exception to a GenerationError with context"""
    if isinstance(error, GenerationError):
        if context:
            error.add_context(**context)
        return error

    generation_error = GenerationError(
        message=str(error) or type(error).__name__,
        error_code=type(error).__name__.upper(),
        context=context or {},
        recoverable=True,
        original_error=error,
    )
    return generation_error


def log_error(error: GenerationError, level: int = logging.ERROR) -> None:
    """Log a structured error"""
    _get_logger().log(
        level,
        f"[{error.error_code}] {error.message}",
        operation="error",
        error_code=error.error_code,
        recoverable=error.recoverable,
        error_context=error.context,
    )


__all__ = [
    "CONFLICT_MARKERS",
    "ApiError",
    "ApiErrorKind",
    "CircuitOpenError",
    "ConfigurationError",
    "GenerationError",
    "MissingParentError",
    "ValidationError",
    "handle_error",
    "is_conflict_error",
    "log_error",
]
