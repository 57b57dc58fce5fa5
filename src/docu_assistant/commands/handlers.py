"""
Built-in command handlers.

Handlers are thin: they read flags and arguments, call the template
registry, tool invoker or session manager from the ``CommandContext`` and
describe the outcome in a ``CommandResult``. Whether a conversation follows a
command is decided elsewhere.
"""

import re
from typing import List

from .types import (
    CommandContext,
    CommandDefinition,
    CommandResult,
    FlagDefinition,
    FlagType,
    ParsedCommand,
    SubcommandDefinition,
)
from ..core.types import UpdateMode
from ..utils.error_handling import CommandError
from ..utils.logging import get_logger

logger = get_logger(__name__)

PREFERRED_AGENT_KEY = "preferred_agent"


def _missing(collaborator: str) -> CommandError:
    return CommandError(
        f"{collaborator} is not available in this session",
        details={"missing": collaborator},
    )


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") or "document"


async def help_command(parsed: ParsedCommand, context: CommandContext) -> CommandResult:
    if context.router is None:
        raise _missing("Command router")

    if parsed.arguments:
        name = parsed.arguments[0].lstrip(context.router.prefix)
        if context.router.parser.get_command(name) is None:
            return CommandResult.failure(f"No help available for unknown command '{name}'")
        subcommand = parsed.arguments[1] if len(parsed.arguments) > 1 else None
        return CommandResult(success=True, message=context.router.get_command_help(name, subcommand))

    prefix = context.router.prefix
    lines = ["## Available commands", ""]
    for definition in sorted(context.router.get_registered_commands(), key=lambda d: d.name):
        lines.append(f"- `{prefix}{definition.name}` {definition.description}")
    lines.extend(["", f"Type `{prefix}help <command>` for details."])
    return CommandResult(success=True, message="\n".join(lines))


async def templates_command(parsed: ParsedCommand, context: CommandContext) -> CommandResult:
    if context.templates is None:
        raise _missing("Template registry")

    if parsed.subcommand == "show":
        if not parsed.arguments:
            return CommandResult.failure("Usage: /templates show <template-id>")
        template = context.templates.get(parsed.arguments[0])
        if template is None:
            available = ", ".join(t.template_id for t in context.templates.list_templates())
            return CommandResult.failure(f"Unknown template '{parsed.arguments[0]}'. Available: {available}")

        lines = [f"## {template.name} (`{template.template_id}`)", "", template.description, ""]
        for section_name in template.ordered_sections():
            marker = " (required)" if template.sections[section_name].required else ""
            lines.append(f"{template.sections[section_name].order}. {section_name}{marker}")
        return CommandResult(
            success=True,
            message="\n".join(lines),
            template_used=template.template_id,
            data={"sections": template.ordered_sections()},
        )

    templates = context.templates.list_templates()
    lines = ["## Templates", ""]
    lines.extend(f"- `{t.template_id}` {t.name}: {t.description}" for t in templates)
    return CommandResult(success=True, message="\n".join(lines), data={"templates": [t.template_id for t in templates]})


async def agent_command(parsed: ParsedCommand, context: CommandContext) -> CommandResult:
    if context.agents is None:
        raise _missing("Agent registry")

    if parsed.subcommand == "set":
        if not parsed.arguments:
            return CommandResult.failure("Usage: /agent set <agent-name>")
        name = parsed.arguments[0]
        profile = context.agents.get(name)
        if profile is None:
            available = ", ".join(a.name for a in context.agents.list_agents())
            return CommandResult.failure(f"Unknown agent '{name}'. Available: {available}")
        context.preferences[PREFERRED_AGENT_KEY] = name
        return CommandResult(
            success=True,
            message=f"{profile.display_name} will lead the next conversation",
            agent_name=name,
            data={PREFERRED_AGENT_KEY: name},
        )

    if parsed.subcommand == "current":
        active = context.auto_chat.get_auto_chat_context() if context.auto_chat else None
        name = active.agent_name if active else context.preferences.get(PREFERRED_AGENT_KEY)
        if not name:
            return CommandResult(success=True, message="No agent selected")
        source = "in conversation" if active else "preferred"
        return CommandResult(success=True, message=f"Current agent: {name} ({source})", agent_name=name)

    lines = ["## Agents", ""]
    lines.extend(
        f"- `{a.name}` {a.display_name} ({a.workflow_phase})" for a in context.agents.list_agents()
    )
    return CommandResult(success=True, message="\n".join(lines), data={"agents": [a.name for a in context.agents.list_agents()]})


async def new_command(parsed: ParsedCommand, context: CommandContext) -> CommandResult:
    """Create a document from a template: ``/new <title> --template prd``."""
    if context.templates is None:
        raise _missing("Template registry")
    if context.tools is None:
        raise _missing("Tool invoker")

    title = " ".join(parsed.arguments).strip()
    if not title:
        return CommandResult.failure("Usage: /new <title> [--template <id>] [--path <file>]")

    with_conversation = bool(parsed.get_flag("with-conversation", default=False))
    no_conversation = bool(parsed.get_flag("no-conversation", default=False))
    if with_conversation and no_conversation:
        return CommandResult.failure("--with-conversation and --no-conversation cannot be combined")

    documents_config = context.config.documents if context.config else None
    template_id = parsed.get_flag("template") or (documents_config.default_template if documents_config else "basic")
    template = context.templates.get(str(template_id))
    if template is None:
        available = ", ".join(t.template_id for t in context.templates.list_templates())
        return CommandResult.failure(f"Unknown template '{template_id}'. Available: {available}")

    agent_name = parsed.get_flag("agent")
    if agent_name is not None and context.agents is not None and context.agents.get(str(agent_name)) is None:
        available = ", ".join(a.name for a in context.agents.list_agents())
        return CommandResult.failure(f"Unknown agent '{agent_name}'. Available: {available}")

    output_dir = documents_config.output_dir if documents_config else "docs"
    path = str(parsed.get_flag("path") or f"{output_dir}/{slugify(title)}.md")

    result = await context.tools.execute("write_file", {
        "path": path,
        "content": context.templates.render(template.template_id, title),
        "overwrite": False,
    })
    if not result.success:
        return CommandResult.failure(
            result.message,
            file_path=path,
            template_used=template.template_id,
            metadata={"suggested_actions": result.suggested_next_actions},
        )

    should_continue = True if with_conversation else False if no_conversation else None
    logger.info(f"Created {path} from template {template.template_id}")
    return CommandResult(
        success=True,
        message=f"Created {template.name} \"{title}\" at {path}",
        file_path=path,
        template_used=template.template_id,
        should_continue_conversation=should_continue,
        data={"title": title, "template": template.template_id, "path": path},
    )


async def update_command(parsed: ParsedCommand, context: CommandContext) -> CommandResult:
    """Edit one section: ``/update --file f.md --section "Goals" --mode append <content>``."""
    if context.tools is None:
        raise _missing("Tool invoker")
    if context.documents is None:
        raise _missing("Document update engine")

    path = str(parsed.get_flag("file"))
    section = str(parsed.get_flag("section"))
    body = " ".join(parsed.arguments).strip()
    if not body:
        return CommandResult.failure("Usage: /update --file <path> --section <name> [--mode append] <content>")

    try:
        mode = UpdateMode(str(parsed.get_flag("mode", default="append")).lower())
    except ValueError:
        return CommandResult.failure(
            f"Invalid mode '{parsed.get_flag('mode')}'. Use one of: {', '.join(m.value for m in UpdateMode)}"
        )

    read = await context.tools.execute("read_file", {"path": path})
    if not read.success:
        return CommandResult.failure(read.message, file_path=path)

    updated = context.documents.apply_section_update(read.output, section, body, mode)
    if updated == read.output:
        return CommandResult(success=True, message=f"{section} already contains that content", file_path=path)

    written = await context.tools.execute("write_file", {"path": path, "content": updated})
    if not written.success:
        return CommandResult.failure(written.message, file_path=path)

    return CommandResult(
        success=True,
        message=f"Updated {section} in {path} ({mode.value})",
        file_path=path,
        data={"file": path, "section": section, "mode": mode.value},
    )


async def chat_command(parsed: ParsedCommand, context: CommandContext) -> CommandResult:
    if context.auto_chat is None:
        raise _missing("Auto-chat session")

    if parsed.subcommand == "off":
        was_active = context.auto_chat.is_auto_chat_active()
        context.auto_chat.disable_auto_chat()
        message = "Auto-chat turned off" if was_active else "Auto-chat was not active"
        return CommandResult(success=True, message=message, auto_chat_enabled=False)

    stats = context.auto_chat.get_session_stats()
    if not stats["is_active"]:
        return CommandResult(success=True, message="Auto-chat is off", data=stats)

    message = (
        f"Auto-chat with {stats['agent_name']}"
        f"{' on ' + stats['document_path'] if stats['document_path'] else ''}: "
        f"{stats['message_count']} message(s), idle {int(stats['idle_seconds'])}s"
    )
    return CommandResult(
        success=True,
        message=message,
        agent_name=stats["agent_name"],
        auto_chat_enabled=True,
        data=stats,
    )


def builtin_commands() -> List[CommandDefinition]:
    return [
        CommandDefinition(
            name="help",
            description="Show available commands or help for one command",
            usage="/help [command]",
            handler=help_command,
            examples=["/help", "/help new"],
        ),
        CommandDefinition(
            name="templates",
            description="List document templates or show one",
            usage="/templates list | /templates show <id>",
            handler=templates_command,
            examples=["/templates list", "/templates show prd"],
            subcommands=[
                SubcommandDefinition("list", "List available templates", "/templates list"),
                SubcommandDefinition("show", "Show the sections of a template", "/templates show <id>"),
            ],
        ),
        CommandDefinition(
            name="agent",
            description="List agents, choose one, or show the current agent",
            usage="/agent list | /agent set <name> | /agent current",
            handler=agent_command,
            examples=["/agent list", "/agent set solution-architect"],
            subcommands=[
                SubcommandDefinition("list", "List agents", "/agent list"),
                SubcommandDefinition("set", "Prefer an agent for the next conversation", "/agent set <name>"),
                SubcommandDefinition("current", "Show the current agent", "/agent current"),
            ],
        ),
        CommandDefinition(
            name="new",
            description="Create a document from a template",
            usage="/new <title> [--template <id>] [--path <file>] [--agent <name>] [-w | -n]",
            handler=new_command,
            examples=['/new "Checkout Revamp" --template prd', "/new API Design --template design -n"],
            flags=[
                FlagDefinition("template", "Template id", FlagType.STRING, short_name="t"),
                FlagDefinition("path", "Output file path", FlagType.STRING, short_name="p"),
                FlagDefinition("with-conversation", "Start a conversation afterwards", FlagType.BOOLEAN, short_name="w"),
                FlagDefinition("no-conversation", "Do not start a conversation", FlagType.BOOLEAN, short_name="n"),
                FlagDefinition("agent", "Agent to hold the follow-up conversation", FlagType.STRING, short_name="a"),
            ],
        ),
        CommandDefinition(
            name="update",
            description="Replace, append or prepend content in a document section",
            usage="/update --file <path> --section <name> [--mode replace|append|prepend] <content>",
            handler=update_command,
            examples=['/update --file docs/prd.md --section "Goals and Objectives" "Cut checkout time in half"'],
            flags=[
                FlagDefinition("file", "Document path", FlagType.STRING, short_name="f", required=True),
                FlagDefinition("section", "Section title", FlagType.STRING, short_name="s", required=True),
                FlagDefinition("mode", "replace, append or prepend", FlagType.STRING, short_name="m", default_value="append"),
                FlagDefinition("with-conversation", "Review the document in a conversation afterwards", FlagType.BOOLEAN, short_name="w"),
            ],
        ),
        CommandDefinition(
            name="chat",
            description="Show or stop the current auto-chat conversation",
            usage="/chat status | /chat off",
            handler=chat_command,
            examples=["/chat status", "/chat off"],
            subcommands=[
                SubcommandDefinition("status", "Show the conversation state", "/chat status"),
                SubcommandDefinition("off", "End the conversation", "/chat off"),
            ],
        ),
    ]


def register_builtin_commands(router) -> None:
    for definition in builtin_commands():
        router.register_command(definition)
