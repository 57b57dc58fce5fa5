"""
Document Assistant Configuration System

    from docu_assistant.config import get_config, load_config

    config = get_config()
    print(config.auto_chat.timeout_minutes)   # 30.0
    print(config.commands.prefix)             # "/"
"""

from .loader import (
    ConfigLoader,
    load_config,
    get_config,
    reload_config,
    validate_config_file,
)

from .models import (
    DocuAssistantConfig,
    AppConfig,
    LLMConfig,
    AutoChatConfig,
    CommandsConfig,
    DocumentsConfig,
    RecoveryConfig,
    StorageConfig,
    LogLevel,
    Provider,
)

from ..utils.error_handling import ConfigurationError

__all__ = [
    "ConfigLoader",
    "get_config",
    "load_config",
    "reload_config",
    "validate_config_file",
    "ConfigurationError",
    "DocuAssistantConfig",
    "AppConfig",
    "LLMConfig",
    "AutoChatConfig",
    "CommandsConfig",
    "DocumentsConfig",
    "RecoveryConfig",
    "StorageConfig",
    "LogLevel",
    "Provider",
]
