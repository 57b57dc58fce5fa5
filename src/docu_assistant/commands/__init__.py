"""
Slash-command parsing, validation and routing.

    router = CommandRouter()
    register_builtin_commands(router)
    result = await router.route_command('/new "Checkout Revamp" --template prd', context)
"""

from .handlers import PREFERRED_AGENT_KEY, builtin_commands, register_builtin_commands
from .normalizer import derive_command_input
from .parser import CommandParser, DEFAULT_PREFIX
from .router import CommandRouter
from .types import (
    CommandContext,
    CommandDefinition,
    CommandHandler,
    CommandResult,
    FlagDefinition,
    FlagType,
    ParsedCommand,
    SubcommandDefinition,
    ValidationResult,
)

__all__ = [
    "PREFERRED_AGENT_KEY",
    "builtin_commands",
    "register_builtin_commands",
    "derive_command_input",
    "CommandParser",
    "DEFAULT_PREFIX",
    "CommandRouter",
    "CommandContext",
    "CommandDefinition",
    "CommandHandler",
    "CommandResult",
    "FlagDefinition",
    "FlagType",
    "ParsedCommand",
    "SubcommandDefinition",
    "ValidationResult",
]
