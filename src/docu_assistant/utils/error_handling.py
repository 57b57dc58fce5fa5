"""
Unified error handling utilities for the document assistant.

This module holds the exception hierarchy shared by every layer and the
decorators that translate low-level failures (file system, network, model
provider) into it, so callers only ever deal with one family of errors.
"""

import functools
import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Tuple, Type
from ..utils.logging import get_logger


class DocuAssistantError(Exception):
    """Base exception for all document assistant errors."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DocuAssistantError):
    """Configuration-related error."""
    pass


class ValidationError(DocuAssistantError):
    """Input validation error."""
    pass


class CommandError(DocuAssistantError):
    """A command handler could not complete."""
    pass


class ToolExecutionError(DocuAssistantError):
    """Error during tool execution."""
    pass


class StateStoreError(DocuAssistantError):
    """The persisted key-value state could not be read or written."""
    pass


class ModelServiceError(DocuAssistantError):
    """Language-model call failure.

    ``error_type`` uses the recovery taxonomy values (``network``,
    ``rate-limit``, ``auth``, ``validation``, ``execution``, ``offline``) so the
    recovery classifier can consume it directly.
    """

    error_type = "execution"

    def __init__(
        self,
        message: str,
        recoverable: bool = True,
        error_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.recoverable = recoverable
        if error_type:
            self.error_type = error_type


class ModelConnectionError(ModelServiceError):
    error_type = "network"


class ModelTimeoutError(ModelServiceError):
    error_type = "network"


class ModelCancelledError(ModelServiceError):
    """The model call was interrupted through its cancellation token."""
    error_type = "execution"


class ModelRateLimitError(ModelServiceError):
    error_type = "rate-limit"


class ModelAuthError(ModelServiceError):
    error_type = "auth"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, recoverable=False, details=details)


_RATE_LIMIT_MARKERS = ("rate limit", "rate-limit", "too many requests", "429")
_AUTH_MARKERS = ("unauthorized", "forbidden", "api key", "401", "403", "no permissions")


def classify_model_exception(error: Exception, operation_name: str) -> ModelServiceError:
    """Translate an arbitrary provider exception into a ``ModelServiceError``."""
    if isinstance(error, ModelServiceError):
        return error

    text = str(error).lower()
    details = {"original_error": str(error), "exception_type": type(error).__name__}

    if isinstance(error, asyncio.TimeoutError):
        return ModelTimeoutError(f"{operation_name} timed out", details=details)
    if isinstance(error, (ConnectionError, OSError)):
        return ModelConnectionError(f"{operation_name} failed: connection error", details=details)
    if any(marker in text for marker in _RATE_LIMIT_MARKERS):
        return ModelRateLimitError(f"{operation_name} was rate limited", details=details)
    if any(marker in text for marker in _AUTH_MARKERS):
        return ModelAuthError(f"{operation_name} was rejected: {error}", details=details)

    return ModelServiceError(f"{operation_name} failed: {error}", recoverable=True, details=details)


def _wrap(
    func: Callable,
    operation_name: str,
    logger: logging.Logger,
    passthrough: Tuple[Type[Exception], ...],
    translate: Callable[[Exception], Exception],
    timeout: Optional[float] = None,
    announce_success: bool = False,
) -> Callable:
    """Build the sync or async wrapper shared by the decorators below.

    Exceptions in ``passthrough`` are re-raised untouched; anything else is
    re-raised as ``translate(e)`` chained to the original. Success is logged
    at INFO when ``announce_success`` is set, otherwise at DEBUG.
    """
    log_success = logger.info if announce_success else logger.debug

    if asyncio.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            logger.debug(f"Starting {operation_name}")
            try:
                call = func(*args, **kwargs)
                result = await (asyncio.wait_for(call, timeout=timeout) if timeout else call)
            except passthrough:
                raise
            except Exception as e:
                raise translate(e) from e
            log_success(f"{operation_name} completed successfully")
            return result

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs) -> Any:
        logger.debug(f"Starting {operation_name}")
        try:
            result = func(*args, **kwargs)
        except passthrough:
            raise
        except Exception as e:
            raise translate(e) from e
        log_success(f"{operation_name} completed successfully")
        return result

    return sync_wrapper


def handle_tool_execution(operation_name: str, logger: Optional[logging.Logger] = None):
    """
    Decorator for document tool operations.

    ``ValueError``/``TypeError`` become ``ValidationError``, ``OSError``
    becomes ``ToolExecutionError``. Typed errors of this package (including the
    file errors in ``tools.exceptions``) pass through so callers can tell a
    missing document from a permission problem.

    Args:
        operation_name: Human-readable name of the operation
        logger: Optional logger instance (defaults to operation-specific logger)
    """
    _logger = logger or get_logger(f"docu_assistant.tools.{operation_name}")

    def translate(e: Exception) -> Exception:
        details = {"original_error": str(e)}
        if isinstance(e, (ValueError, TypeError)):
            _logger.error(f"{operation_name} failed - invalid parameters: {e}")
            return ValidationError(f"{operation_name} failed: {e}", details={"error_type": "validation", **details})
        if isinstance(e, OSError):
            _logger.error(f"{operation_name} failed - file system error: {e}")
            return ToolExecutionError(f"{operation_name} failed: {e}", details={"error_type": "filesystem", **details})
        _logger.error(f"{operation_name} failed - unexpected error: {e}", exc_info=True)
        return ToolExecutionError(f"{operation_name} failed: {e}", details={"error_type": "unexpected", **details})

    def decorator(func: Callable) -> Callable:
        return _wrap(func, operation_name, _logger, (DocuAssistantError,), translate)

    return decorator


def handle_model_operation(operation_name: str, timeout: Optional[float] = None):
    """
    Decorator for language-model calls.

    Provider failures are classified with ``classify_model_exception``; an
    optional ``timeout`` (seconds) bounds async calls.
    """
    logger = get_logger(f"docu_assistant.llm.{operation_name}")

    def translate(e: Exception) -> Exception:
        error = classify_model_exception(e, operation_name)
        logger.error(f"{operation_name} failed ({error.error_type}): {e}")
        return error

    def decorator(func: Callable) -> Callable:
        return _wrap(
            func, operation_name, logger, (ModelServiceError,), translate,
            timeout=timeout, announce_success=True,
        )

    return decorator


def handle_configuration_operation(operation_name: str):
    """Decorator mapping file and value errors raised while handling configuration to ``ConfigurationError``."""
    logger = get_logger(f"docu_assistant.config.{operation_name}")

    def translate(e: Exception) -> Exception:
        if isinstance(e, (FileNotFoundError, PermissionError)):
            kind = "file_access"
        elif isinstance(e, (ValueError, TypeError)):
            kind = "validation"
        else:
            kind = "unexpected"
        logger.error(f"{operation_name} failed ({kind}): {e}", exc_info=(kind == "unexpected"))
        return ConfigurationError(
            f"{operation_name} failed: {e}",
            details={"error_type": kind, "original_error": str(e)}
        )

    def decorator(func: Callable) -> Callable:
        return _wrap(func, operation_name, logger, (ConfigurationError,), translate)

    return decorator


def validate_input(
    data: Any,
    field_name: str,
    expected_type: Type = None,
    required: bool = True,
    validator: Optional[Callable] = None
) -> Any:
    """
    Standardized input validation utility.

    Args:
        data: The data to validate
        field_name: Name of the field being validated
        expected_type: Expected type of the data
        required: Whether the field is required
        validator: Optional custom validator function

    Returns:
        The validated data

    Raises:
        ValidationError: If validation fails
    """
    if required and (data is None or (isinstance(data, str) and not data.strip())):
        raise ValidationError(f"{field_name} is required")

    if data is not None and expected_type and not isinstance(data, expected_type):
        raise ValidationError(
            f"{field_name} must be of type {expected_type.__name__}, got {type(data).__name__}"
        )

    if validator:
        try:
            return validator(data)
        except Exception as e:
            raise ValidationError(f"{field_name} validation failed: {e}") from e

    return data
