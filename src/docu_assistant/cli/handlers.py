"""
CLI command handlers for Docu Assistant.

Replies are rendered as markdown with rich. After a failed turn the words
``retry``, ``fallback`` and ``modify`` apply the matching recovery action.
"""

import asyncio
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from ..config import ConfigurationError, load_config
from ..commands.normalizer import derive_command_input
from ..config.models import DocuAssistantConfig
from ..core.orchestrator import ChatOrchestrator, ChatReply, create_orchestrator
from ..core.types import RecoveryAction
from ..templates.registry import TemplateRegistry
from ..utils.error_handling import handle_configuration_operation
from ..utils.logging import get_logger, log_config_info, log_shutdown, log_startup, setup_logging

EXIT_WORDS = {"exit", "quit", "bye"}
RECOVERY_WORDS = {action.value for action in RecoveryAction}


def handle_cli_command(args, console: Optional[Console] = None) -> int:
    """
    Run the CLI for parsed arguments.

    Returns:
        int: Exit code (0 for success, non-zero for error)
    """
    console = console or Console()
    try:
        config = load_config(args.config)
        _apply_overrides(config, args)
        setup_logging(config, verbose=args.verbose)
        log_startup(args.config)
        log_config_info(config)

        if args.list_templates:
            return _handle_list_templates(console)

        orchestrator = create_orchestrator(config)
        if args.list_commands:
            return _handle_list_commands(orchestrator, console)
        if args.prompt or args.command:
            text = derive_command_input(
                args.prompt or "", args.command, orchestrator.router.is_known_command, orchestrator.router.prefix
            )
            return _handle_single_prompt(orchestrator, text, console)
        return _handle_interactive(orchestrator, config, console)

    except ConfigurationError as e:
        console.print(f"❌ Configuration error: {e}", style="red")
        return 1
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
        return 0
    except Exception as e:
        get_logger(__name__).error(f"Unexpected error: {e}", exc_info=args.verbose)
        console.print(f"❌ Unexpected error: {e}", style="red")
        return 1
    finally:
        log_shutdown()


@handle_configuration_operation("apply command-line overrides")
def _apply_overrides(config: DocuAssistantConfig, args) -> None:
    if args.workspace:
        config.documents.workspace_root = args.workspace
    if args.state_file:
        config.storage.state_file = args.state_file
    if args.model:
        config.llm.model = args.model


def _handle_list_templates(console: Console) -> int:
    console.print("📋 Document templates:")
    for template in TemplateRegistry().list_templates():
        console.print(f"  [bold]{template.template_id}[/bold]: {template.name} - {template.description}")
    return 0


def _handle_list_commands(orchestrator: ChatOrchestrator, console: Console) -> int:
    console.print("🔧 Commands:")
    prefix = orchestrator.router.prefix
    for definition in orchestrator.router.get_registered_commands():
        console.print(f"  [bold]{prefix}{definition.name}[/bold]: {definition.description}")
    return 0


def _handle_single_prompt(orchestrator: ChatOrchestrator, prompt: str, console: Console) -> int:
    reply = asyncio.run(orchestrator.handle_input(prompt))
    render_reply(reply, console)
    return 0 if reply.success else 1


def _handle_interactive(orchestrator: ChatOrchestrator, config: DocuAssistantConfig, console: Console) -> int:
    console.print(Panel.fit(
        f"{config.app.name}\nType {config.commands.prefix}help for commands, 'exit' to quit.",
        border_style="cyan",
    ))
    return asyncio.run(_chat_loop(orchestrator, console))


async def _chat_loop(orchestrator: ChatOrchestrator, console: Console) -> int:
    last_reply: Optional[ChatReply] = None
    while True:
        try:
            agent = orchestrator.auto_chat.get_auto_chat_context()
            label = f"👤 You ({agent.agent_name}): " if agent else "👤 You: "
            user_input = (await asyncio.to_thread(console.input, label)).strip()
        except (KeyboardInterrupt, EOFError):
            break

        if user_input.lower() in EXIT_WORDS:
            break
        if not user_input:
            continue

        if last_reply and last_reply.recovery and user_input.lower() in RECOVERY_WORDS:
            reply = await orchestrator.recover(user_input.lower())
        else:
            reply = await orchestrator.handle_input(user_input)

        render_reply(reply, console)
        last_reply = reply

    console.print("👋 Goodbye!")
    return 0


def render_reply(reply: ChatReply, console: Console) -> None:
    prefix = f"🤖 {reply.agent_name}" if reply.agent_name else "🤖 Assistant"
    style = None if reply.success else "red"
    console.print(prefix, style=style or "bold")
    console.print(Markdown(reply.message))

    if reply.suggested_actions:
        console.print("💡 Try: " + ", ".join(reply.suggested_actions), style="yellow")
    if reply.recovery:
        actions = [name for name, allowed in (
            ("retry", reply.recovery.can_retry),
            ("fallback", reply.recovery.can_fallback),
            ("modify", reply.recovery.can_modify),
        ) if allowed]
        if actions:
            console.print(f"↩️  Type {' / '.join(actions)} to recover", style="yellow")
    console.print()
