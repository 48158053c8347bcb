"""
Standardized Error Handling for SimpleStorage
=============================================

This module provides the exception hierarchy and the logging helpers shared by
every storage operation.

Codec failures (``pickle.PicklingError``, ``UnpicklingError``, ``EOFError``) and
I/O failures (``OSError``) are never wrapped: they reach the caller as raised by
the codec or the file system.
"""

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for all storage-related errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)

        # Log error with context for debugging
        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        logger.error(
            f"Storage error: {message}" + (f" ({context_str})" if context_str else "")
        )


class InvalidArgumentError(StorageError, ValueError):
    """Raised when a required value, stream or path is missing or empty."""

    pass


class UnsupportedAlgorithmError(StorageError, NotImplementedError):
    """Raised when a compression path is asked for an algorithm it cannot use."""

    pass


class OperationCancelledError(StorageError):
    """Raised when an asynchronous operation starts with cancellation requested."""

    pass


class TypeMismatchError(StorageError, TypeError):
    """Raised when a decoded value is not an instance of the requested type."""

    pass


class StorageConfigurationError(StorageError, ValueError):
    """Raised when storage configuration is invalid."""

    pass


def require_value(value: Any, name: str) -> Any:
    """Return ``value`` unchanged, raising ``InvalidArgumentError`` if it is None."""
    if value is None:
        raise InvalidArgumentError(f"{name} cannot be None", {"argument": name})
    return value


def validate_file_path(file_path: Union[str, os.PathLike, None]) -> Path:
    """
    Validate and normalize a file path.

    Args:
        file_path: File path to validate

    Returns:
        Validated Path object

    Raises:
        InvalidArgumentError: If the path is None, empty or whitespace only
    """
    if file_path is None:
        raise InvalidArgumentError("path cannot be None", {"argument": "path"})

    raw = os.fspath(file_path)
    if isinstance(raw, bytes):
        raw = os.fsdecode(raw)
    if not raw or not raw.strip():
        raise InvalidArgumentError(
            "path cannot be empty or whitespace", {"file_path": repr(raw)}
        )

    return Path(raw)


def check_instance(value: Any, expected_type: Optional[type]) -> Any:
    """Return ``value`` if it matches ``expected_type`` (or no type was requested)."""
    if expected_type is None or isinstance(value, expected_type):
        return value

    raise TypeMismatchError(
        f"Decoded value of type {type(value).__name__} is not an instance of "
        f"{getattr(expected_type, '__name__', expected_type)}",
        {
            "expected_type": getattr(expected_type, "__name__", str(expected_type)),
            "actual_type": type(value).__name__,
        },
    )


@contextmanager
def storage_operation_context(operation: str, **context):
    """
    Context manager for storage operations with standardized logging.

    Args:
        operation: Description of the operation
        **context: Additional context for logging
    """
    logger.debug(f"Starting storage operation: {operation}", extra=context)
    start_time = time.perf_counter()

    try:
        yield
    except StorageError:
        logger.error(f"Storage operation failed: {operation}", extra=context)
        raise
    except Exception as e:
        logger.error(
            f"Unexpected error in storage operation: {operation} - "
            f"{type(e).__name__}: {e}",
            extra=context,
        )
        raise

    duration = time.perf_counter() - start_time
    logger.debug(
        f"Storage operation completed: {operation} ({duration:.3f}s)", extra=context
    )
