"""
Slash-command parsing for the document assistant.

Turns a line such as ``/update --file "my doc.md" --mode append "text"`` into a
``ParsedCommand``. Parsing never raises: text that is not command syntax
yields a ``ParsedCommand`` with an empty ``command``.
"""

from typing import Dict, List, Optional, Tuple

from .types import (
    CommandDefinition,
    FlagDefinition,
    FlagType,
    FlagValue,
    ParsedCommand,
    ValidationResult,
)
from ..utils.logging import get_logger


# (text, quoted) pairs; quoted tokens are never read as flags
Token = Tuple[str, bool]

DEFAULT_PREFIX = "/"


class CommandParser:
    """Tokenizes command lines and validates them against registered definitions."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.logger = get_logger(__name__)
        self.prefix = prefix
        self._commands: Dict[str, CommandDefinition] = {}

    def register_command(self, definition: CommandDefinition) -> None:
        if definition.name in self._commands:
            self.logger.debug(f"Replacing command definition: {definition.name}")
        self._commands[definition.name] = definition

    def get_command(self, name: str) -> Optional[CommandDefinition]:
        return self._commands.get(name)

    def get_commands(self) -> List[CommandDefinition]:
        return list(self._commands.values())

    def has_command(self, name: str) -> bool:
        return name in self._commands

    def is_command(self, text) -> bool:
        """True when ``text`` is the prefix followed by at least one visible character.

        ``"/"``, ``"/ "`` and a doubled prefix such as ``"//"`` are not commands.
        """
        if not isinstance(text, str):
            return False

        trimmed = text.strip()
        if not trimmed.startswith(self.prefix):
            return False

        remainder = trimmed[len(self.prefix):]
        if not remainder or remainder[0].isspace():
            return False

        return not remainder.startswith(self.prefix)

    def parse_command(self, text) -> ParsedCommand:
        raw = text.strip() if isinstance(text, str) else ""

        if not self.is_command(raw):
            return ParsedCommand(command="", raw_input=raw)

        tokens = self._tokenize(raw[len(self.prefix):])
        command = tokens[0][0].strip() if tokens else ""
        if not command:
            return ParsedCommand(command="", raw_input=raw)
        definition = self._commands.get(command)

        subcommand = None
        argument_start = 1
        if definition and definition.subcommands and len(tokens) > 1:
            candidate, quoted = tokens[1]
            if not quoted and definition.get_subcommand(candidate):
                subcommand = candidate
                argument_start = 2

        known_flags = definition.flags_for(subcommand) if definition else []
        flags, arguments = self._parse_flags(tokens[argument_start:], known_flags)

        parsed = ParsedCommand(
            command=command,
            subcommand=subcommand,
            arguments=arguments,
            flags=flags,
            raw_input=raw,
        )
        self.logger.debug(
            f"Parsed command: {command} subcommand={subcommand} "
            f"args={len(arguments)} flags={sorted(flags)}"
        )
        return parsed

    def _tokenize(self, text: str) -> List[Token]:
        """Split on whitespace outside quotes; quotes are stripped, content kept verbatim."""
        tokens: List[Token] = []
        current: List[str] = []
        quote_char = ""
        quoted = False
        in_token = False

        for char in text:
            if quote_char:
                if char == quote_char:
                    quote_char = ""
                else:
                    current.append(char)
            elif char in ('"', "'"):
                quote_char = char
                # A quote inside a token (--name="a b") keeps the token a flag
                if not in_token:
                    quoted = True
                in_token = True
            elif char.isspace():
                if in_token:
                    tokens.append(("".join(current), quoted))
                current, quoted, in_token = [], False, False
            else:
                current.append(char)
                in_token = True

        # An unterminated quote runs to the end of the line
        if in_token:
            tokens.append(("".join(current), quoted))

        return tokens

    def _parse_flags(
        self,
        tokens: List[Token],
        known_flags: List[FlagDefinition],
    ) -> Tuple[Dict[str, FlagValue], List[str]]:
        flags: Dict[str, FlagValue] = {}
        arguments: List[str] = []
        boolean_flags = set()
        for flag in known_flags:
            if flag.type == FlagType.BOOLEAN:
                boolean_flags.add(flag.name)
                if flag.short_name:
                    boolean_flags.add(flag.short_name)

        def takes_value(name: str, index: int) -> bool:
            if name in boolean_flags or index + 1 >= len(tokens):
                return False
            next_text, next_quoted = tokens[index + 1]
            return next_quoted or not next_text.startswith("-")

        i = 0
        while i < len(tokens):
            text, quoted = tokens[i]

            if not quoted and text.startswith("--") and len(text) > 2:
                name, sep, inline_value = text[2:].partition("=")
                if sep:
                    flags[name] = inline_value
                elif takes_value(name, i):
                    flags[name] = tokens[i + 1][0]
                    i += 1
                else:
                    flags[name] = True

            elif not quoted and text.startswith("-") and len(text) > 1 and text != "--":
                letters = text[1:]
                for letter in letters[:-1]:
                    flags[letter] = True
                last = letters[-1]
                if takes_value(last, i):
                    flags[last] = tokens[i + 1][0]
                    i += 1
                else:
                    flags[last] = True

            else:
                arguments.append(text)

            i += 1

        return flags, arguments

    def validate_command(self, parsed: ParsedCommand) -> ValidationResult:
        errors: List[str] = []
        definition = self._commands.get(parsed.command)

        if not definition:
            return ValidationResult(valid=False, errors=[f"Unknown command: {parsed.command}"])

        if parsed.subcommand and not definition.get_subcommand(parsed.subcommand):
            if not definition.subcommands:
                errors.append(f"Command '{parsed.command}' does not support subcommands")
            else:
                available = ", ".join(sc.name for sc in definition.subcommands)
                errors.append(
                    f"Unknown subcommand '{parsed.subcommand}' for command "
                    f"'{parsed.command}'. Available: {available}"
                )

        applicable = definition.flags_for(parsed.subcommand)

        for flag_name, flag_value in parsed.flags.items():
            flag_def = self._find_flag(applicable, flag_name)

            if not flag_def:
                errors.append(f"Unknown flag: {self._display_flag(flag_name)}")
                continue

            if flag_def.type == FlagType.BOOLEAN and not isinstance(flag_value, bool):
                errors.append(f"Flag --{flag_def.name} should be a boolean")
            elif flag_def.type == FlagType.STRING and not isinstance(flag_value, str):
                errors.append(f"Flag --{flag_def.name} requires a value")
            elif flag_def.type == FlagType.NUMBER and not self._is_number(flag_value):
                errors.append(f"Flag --{flag_def.name} should be a number")

        for flag_def in applicable:
            if flag_def.required and not self._flag_present(parsed, flag_def):
                errors.append(f"Required flag --{flag_def.name} is missing")

        return ValidationResult(valid=not errors, errors=errors)

    def normalize_flags(self, parsed: ParsedCommand) -> ParsedCommand:
        """Rename short flags to their long names and fill in declared defaults."""
        definition = self._commands.get(parsed.command)
        if not definition:
            return parsed

        applicable = definition.flags_for(parsed.subcommand)
        flags: Dict[str, FlagValue] = {}
        for name, value in parsed.flags.items():
            flag_def = self._find_flag(applicable, name)
            flags[flag_def.name if flag_def else name] = value

        for flag_def in applicable:
            if flag_def.name not in flags and flag_def.default_value is not None:
                flags[flag_def.name] = flag_def.default_value

        parsed.flags = flags
        return parsed

    def get_command_help(self, command_name: str, subcommand: Optional[str] = None) -> str:
        """Render markdown help for a command (and optionally one subcommand)."""
        definition = self._commands.get(command_name)
        if not definition:
            return f"Unknown command: {command_name}"

        lines = [f"**{self.prefix}{command_name}** - {definition.description}", ""]
        lines += [f"**Usage:** {definition.usage}", ""]

        sub_def = definition.get_subcommand(subcommand)
        if sub_def:
            lines += [f"**Subcommand:** {sub_def.name} - {sub_def.description}"]
            if sub_def.usage:
                lines += [f"**Usage:** {sub_def.usage}"]
            lines.append("")

        applicable = definition.flags_for(subcommand)
        if applicable:
            lines.append("**Flags:**")
            for flag in applicable:
                short = f", -{flag.short_name}" if flag.short_name else ""
                required = " (required)" if flag.required else ""
                default = f" [default: {flag.default_value}]" if flag.default_value is not None else ""
                lines.append(f"- --{flag.name}{short} ({flag.type.value}){required}: {flag.description}{default}")
            lines.append("")

        if not sub_def and definition.subcommands:
            lines.append("**Subcommands:**")
            lines += [f"- **{sc.name}**: {sc.description}" for sc in definition.subcommands]
            lines.append("")

        examples = sub_def.examples if sub_def else definition.examples
        if examples:
            lines.append("**Examples:**")
            lines += [f"- {example}" for example in examples]

        return "\n".join(lines).rstrip() + "\n"

    @staticmethod
    def _find_flag(flags: List[FlagDefinition], name: str) -> Optional[FlagDefinition]:
        for flag in flags:
            if flag.name == name or flag.short_name == name:
                return flag
        return None

    @staticmethod
    def _flag_present(parsed: ParsedCommand, flag_def: FlagDefinition) -> bool:
        if flag_def.name in parsed.flags:
            return True
        return bool(flag_def.short_name) and flag_def.short_name in parsed.flags

    @staticmethod
    def _display_flag(name: str) -> str:
        return f"-{name}" if len(name) == 1 else f"--{name}"

    @staticmethod
    def _is_number(value: FlagValue) -> bool:
        if isinstance(value, bool):
            return False
        try:
            float(value)
        except (TypeError, ValueError):
            return False
        return True
