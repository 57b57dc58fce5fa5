"""
Shared types for slash-command parsing, validation and dispatch.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Union

if TYPE_CHECKING:
    from ..agents.registry import AgentRegistry
    from ..config.models import DocuAssistantConfig
    from ..core.auto_chat import AutoChatStateManager
    from ..core.document_update import DocumentUpdateEngine
    from ..templates.registry import TemplateRegistry
    from ..tools.invoker import ToolInvoker
    from .router import CommandRouter


FlagValue = Union[str, bool]


class FlagType(Enum):
    """Value types a flag definition can declare."""
    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"


@dataclass
class ParsedCommand:
    """A command line broken into its parts.

    ``command`` is empty when the raw input was not command syntax.
    """
    command: str
    subcommand: Optional[str] = None
    arguments: List[str] = field(default_factory=list)
    flags: Dict[str, FlagValue] = field(default_factory=dict)
    raw_input: str = ""

    def get_flag(self, *names: str, default: Any = None) -> Any:
        """Return the first flag present under any of ``names``."""
        for name in names:
            if name in self.flags:
                return self.flags[name]
        return default

    def has_flag(self, *names: str) -> bool:
        return any(name in self.flags for name in names)


@dataclass
class FlagDefinition:
    name: str
    description: str
    type: FlagType = FlagType.STRING
    short_name: Optional[str] = None
    required: bool = False
    default_value: Optional[FlagValue] = None


@dataclass
class SubcommandDefinition:
    name: str
    description: str
    usage: str = ""
    examples: List[str] = field(default_factory=list)
    flags: List[FlagDefinition] = field(default_factory=list)


@dataclass
class CommandResult:
    """Outcome of a command handler.

    Handlers always set ``success``; the remaining fields are filled in as
    far as they apply to the command.
    """
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    file_path: Optional[str] = None
    template_used: Optional[str] = None
    agent_name: Optional[str] = None
    auto_chat_enabled: bool = False
    should_continue_conversation: Optional[bool] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, **kwargs) -> "CommandResult":
        return cls(success=False, error=error, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "error": self.error,
            "data": self.data,
            "file_path": self.file_path,
            "template_used": self.template_used,
            "agent_name": self.agent_name,
            "auto_chat_enabled": self.auto_chat_enabled,
            "should_continue_conversation": self.should_continue_conversation,
            "metadata": self.metadata,
        }


@dataclass
class CommandContext:
    """Typed handles a command handler may use.

    Every field is optional so handlers can be exercised in isolation; a
    handler that needs a missing collaborator reports a failed result.
    """
    config: Optional["DocuAssistantConfig"] = None
    router: Optional["CommandRouter"] = None
    tools: Optional["ToolInvoker"] = None
    templates: Optional["TemplateRegistry"] = None
    agents: Optional["AgentRegistry"] = None
    auto_chat: Optional["AutoChatStateManager"] = None
    documents: Optional["DocumentUpdateEngine"] = None
    workspace_root: str = "."
    preferences: Dict[str, Any] = field(default_factory=dict)


CommandHandler = Callable[[ParsedCommand, CommandContext], Awaitable[CommandResult]]


@dataclass
class CommandDefinition:
    name: str
    description: str
    usage: str
    handler: CommandHandler
    examples: List[str] = field(default_factory=list)
    subcommands: List[SubcommandDefinition] = field(default_factory=list)
    flags: List[FlagDefinition] = field(default_factory=list)

    def get_subcommand(self, name: Optional[str]) -> Optional[SubcommandDefinition]:
        if not name:
            return None
        for subcommand in self.subcommands:
            if subcommand.name == name:
                return subcommand
        return None

    def flags_for(self, subcommand: Optional[str]) -> List[FlagDefinition]:
        """Command flags plus the flags of ``subcommand`` if it is defined."""
        definition = self.get_subcommand(subcommand)
        return list(self.flags) + (list(definition.flags) if definition else [])


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
