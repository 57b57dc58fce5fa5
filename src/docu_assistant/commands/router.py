"""
Command routing for the document assistant.

The router owns the command registry, validates each parsed command against
its definition and only then hands it to the registered handler. Every
failure comes back as a ``CommandResult`` with ``success=False``; nothing in
here raises to the caller.
"""

from typing import List, Optional

from .parser import CommandParser, DEFAULT_PREFIX
from .types import CommandContext, CommandDefinition, CommandResult, ParsedCommand
from ..utils.error_handling import CommandError
from ..utils.logging import get_logger


class CommandRouter:
    """Dispatches slash-commands to registered handlers."""

    def __init__(self, parser: Optional[CommandParser] = None, prefix: str = DEFAULT_PREFIX):
        self.logger = get_logger(__name__)
        self.parser = parser or CommandParser(prefix=prefix)

    @property
    def prefix(self) -> str:
        return self.parser.prefix

    def register_command(self, definition: CommandDefinition) -> None:
        self.parser.register_command(definition)
        self.logger.debug(f"Registered command: {self.prefix}{definition.name}")

    def get_registered_commands(self) -> List[CommandDefinition]:
        return self.parser.get_commands()

    def is_command(self, text) -> bool:
        return self.parser.is_command(text)

    def is_known_command(self, candidate: str) -> bool:
        """True for a prefixed name of a registered command, e.g. ``/new``."""
        return candidate.startswith(self.prefix) and self.parser.has_command(candidate[len(self.prefix):])

    def parse_command(self, text) -> ParsedCommand:
        return self.parser.parse_command(text)

    def get_command_help(self, command_name: str, subcommand: Optional[str] = None) -> str:
        return self.parser.get_command_help(command_name, subcommand)

    async def route_command(self, text, context: Optional[CommandContext] = None) -> CommandResult:
        """Parse, validate and execute one command line."""
        context = context or CommandContext()

        if not self.is_command(text):
            return CommandResult.failure(
                "Input is not a command",
                metadata={"suggested_actions": [f"Commands start with '{self.prefix}'. Try {self.prefix}help"]},
            )

        parsed = self.parser.parse_command(text)
        definition = self.parser.get_command(parsed.command)

        if not definition:
            self.logger.info(f"Unknown command: {parsed.command}")
            return CommandResult.failure(
                f"Command '{parsed.command}' not found",
                data={"parsed_command": parsed},
                metadata={"suggested_actions": [f"Type {self.prefix}help to see available commands"]},
            )

        validation = self.parser.validate_command(parsed)
        if not validation.valid:
            self.logger.info(f"Command validation failed for {parsed.command}: {validation.errors}")
            return CommandResult.failure(
                f"Command validation failed: {'; '.join(validation.errors)}",
                data={"parsed_command": parsed, "validation_errors": validation.errors},
                metadata={"suggested_actions": [f"Type {self.prefix}help {parsed.command} for usage"]},
            )

        parsed = self.parser.normalize_flags(parsed)

        try:
            result = await definition.handler(parsed, context)
        except CommandError as e:
            self.logger.warning(f"Command {parsed.command} could not run: {e.message}")
            return CommandResult.failure(
                e.message,
                data={"parsed_command": parsed, **e.details},
                metadata={"suggested_actions": [f"{self.prefix}help {parsed.command}"]},
            )
        except Exception as e:
            self.logger.error(f"Command handler for {parsed.command} failed: {e}", exc_info=True)
            return CommandResult.failure(
                f"Command '{parsed.command}' failed: {e}",
                data={"parsed_command": parsed},
                metadata={"suggested_actions": ["retry", f"{self.prefix}help {parsed.command}"]},
            )

        self.logger.info(
            f"Command {self.prefix}{parsed.command} finished "
            f"({'success' if result.success else 'failure'})"
        )
        return result
