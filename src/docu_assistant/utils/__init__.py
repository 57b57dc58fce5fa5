"""
Document Assistant Utilities

Logging setup and the shared error hierarchy used throughout the package.
"""

from .logging import (
    setup_logging,
    get_logger,
    log_performance,
    performance_timer,
    log_startup,
    log_config_info,
    log_shutdown,
)

from .error_handling import (
    DocuAssistantError,
    ConfigurationError,
    ValidationError,
    CommandError,
    ToolExecutionError,
    StateStoreError,
    ModelServiceError,
    ModelConnectionError,
    ModelTimeoutError,
    ModelCancelledError,
    ModelRateLimitError,
    ModelAuthError,
    classify_model_exception,
    handle_tool_execution,
    handle_model_operation,
    handle_configuration_operation,
    validate_input,
)

__all__ = [
    # Logging utilities
    "setup_logging",
    "get_logger",
    "log_performance",
    "performance_timer",
    "log_startup",
    "log_config_info",
    "log_shutdown",

    # Error handling utilities
    "DocuAssistantError",
    "ConfigurationError",
    "ValidationError",
    "CommandError",
    "ToolExecutionError",
    "StateStoreError",
    "ModelServiceError",
    "ModelConnectionError",
    "ModelTimeoutError",
    "ModelCancelledError",
    "ModelRateLimitError",
    "ModelAuthError",
    "classify_model_exception",
    "handle_tool_execution",
    "handle_model_operation",
    "handle_configuration_operation",
    "validate_input",
]
