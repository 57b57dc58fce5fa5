"""
Test suite for command routing and the built-in command handlers.
"""

import pytest
from unittest.mock import AsyncMock

from docu_assistant.agents.registry import AgentRegistry
from docu_assistant.commands.handlers import PREFERRED_AGENT_KEY, register_builtin_commands, slugify
from docu_assistant.commands.router import CommandRouter
from docu_assistant.commands.types import CommandContext, CommandDefinition, CommandResult
from docu_assistant.core.auto_chat import AutoChatStateManager
from docu_assistant.core.document_update import DocumentUpdateEngine
from docu_assistant.templates.registry import TemplateRegistry
from docu_assistant.tools.invoker import ToolInvoker
from docu_assistant.utils.error_handling import CommandError

from .fixtures.doubles import FailingWriteFileSystem, InMemoryFileSystem


@pytest.fixture
def router():
    router = CommandRouter()
    register_builtin_commands(router)
    return router


@pytest.fixture
def fs():
    return InMemoryFileSystem()


@pytest.fixture
def context(router, fs, clock, memory_store):
    return CommandContext(
        router=router,
        tools=ToolInvoker.with_file_tools(fs),
        templates=TemplateRegistry(),
        agents=AgentRegistry(),
        auto_chat=AutoChatStateManager(memory_store, clock=clock),
        documents=DocumentUpdateEngine(fs, clock=clock),
    )


class TestRouteCommand:
    """Test routing outcomes that do not depend on a particular handler."""

    @pytest.mark.parametrize("candidate, known", [
        ("/new", True),
        ("/update", True),
        ("/dance", False),
        ("new", False),
    ])
    def test_is_known_command(self, router, candidate, known):
        assert router.is_known_command(candidate) is known

    @pytest.mark.asyncio
    async def test_not_a_command(self, router):
        result = await router.route_command("hello there")

        assert result.success is False
        assert result.error == "Input is not a command"
        assert result.metadata["suggested_actions"]

    @pytest.mark.asyncio
    async def test_unknown_command(self, router):
        result = await router.route_command("/dance")

        assert result.success is False
        assert result.error == "Command 'dance' not found"

    @pytest.mark.asyncio
    async def test_validation_failure_skips_handler(self):
        handler = AsyncMock(return_value=CommandResult(success=True))
        router = CommandRouter()
        router.register_command(CommandDefinition("ping", "Ping", "/ping", handler))

        result = await router.route_command("/ping --loud")

        assert result.success is False
        assert result.error.startswith("Command validation failed:")
        assert "Unknown flag: --loud" in result.error
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failure(self):
        handler = AsyncMock(side_effect=RuntimeError("boom"))
        router = CommandRouter()
        router.register_command(CommandDefinition("ping", "Ping", "/ping", handler))

        result = await router.route_command("/ping")

        assert result.success is False
        assert result.error == "Command 'ping' failed: boom"

    @pytest.mark.asyncio
    async def test_command_error_keeps_its_message(self):
        handler = AsyncMock(side_effect=CommandError("Nothing to export yet", details={"missing": "document"}))
        router = CommandRouter()
        router.register_command(CommandDefinition("export", "Export", "/export", handler))

        result = await router.route_command("/export")

        assert result.success is False
        assert result.error == "Nothing to export yet"
        assert result.data["missing"] == "document"
        assert "retry" not in result.metadata["suggested_actions"]

    @pytest.mark.asyncio
    async def test_handler_sees_normalized_flags(self, router, context):
        seen = {}

        async def handler(parsed, ctx):
            seen.update(parsed.flags)
            return CommandResult(success=True)

        router.register_command(CommandDefinition(
            "patch", "Patch", "/patch", handler,
            flags=router.parser.get_command("update").flags,
        ))

        result = await router.route_command('/patch -f a.md -s Goals', context)

        assert result.success is True
        assert seen == {"file": "a.md", "section": "Goals", "mode": "append"}

    def test_registered_commands(self, router):
        names = {d.name for d in router.get_registered_commands()}
        assert names == {"help", "templates", "agent", "new", "update", "chat"}


class TestHelpCommand:

    @pytest.mark.asyncio
    async def test_lists_commands(self, router, context):
        result = await router.route_command("/help", context)

        assert result.success is True
        assert "`/new`" in result.message
        assert "`/update`" in result.message

    @pytest.mark.asyncio
    async def test_help_for_one_command(self, router, context):
        result = await router.route_command("/help update", context)

        assert result.success is True
        assert result.message.startswith("**/update**")

    @pytest.mark.asyncio
    async def test_help_for_unknown_command(self, router, context):
        result = await router.route_command("/help dance", context)
        assert result.success is False


class TestTemplatesCommand:

    @pytest.mark.asyncio
    async def test_list(self, router, context):
        result = await router.route_command("/templates list", context)

        assert result.success is True
        assert result.data["templates"] == ["prd", "requirements", "design", "specification", "basic"]

    @pytest.mark.asyncio
    async def test_show(self, router, context):
        result = await router.route_command("/templates show prd", context)

        assert result.success is True
        assert result.template_used == "prd"
        assert result.data["sections"][0] == "Problem Statement"

    @pytest.mark.asyncio
    async def test_show_unknown(self, router, context):
        result = await router.route_command("/templates show memo", context)

        assert result.success is False
        assert "Unknown template 'memo'" in result.error


class TestAgentCommand:

    @pytest.mark.asyncio
    async def test_set_records_preference(self, router, context):
        result = await router.route_command("/agent set solution-architect", context)

        assert result.success is True
        assert result.agent_name == "solution-architect"
        assert context.preferences[PREFERRED_AGENT_KEY] == "solution-architect"

    @pytest.mark.asyncio
    async def test_set_unknown_agent(self, router, context):
        result = await router.route_command("/agent set wizard", context)

        assert result.success is False
        assert PREFERRED_AGENT_KEY not in context.preferences

    @pytest.mark.asyncio
    async def test_current_prefers_active_session(self, router, context):
        context.preferences[PREFERRED_AGENT_KEY] = "brainstormer"
        context.auto_chat.enable_auto_chat("prd-creator")

        result = await router.route_command("/agent current", context)

        assert result.agent_name == "prd-creator"
        assert "in conversation" in result.message

    @pytest.mark.asyncio
    async def test_current_without_selection(self, router, context):
        result = await router.route_command("/agent current", context)

        assert result.success is True
        assert result.agent_name is None


class TestNewCommand:

    @pytest.mark.asyncio
    async def test_creates_document_from_template(self, router, context, fs):
        result = await router.route_command('/new "Checkout Revamp" --template prd', context)

        assert result.success is True
        assert result.file_path == "docs/checkout-revamp.md"
        assert result.template_used == "prd"
        assert result.data == {"title": "Checkout Revamp", "template": "prd", "path": "docs/checkout-revamp.md"}
        assert result.should_continue_conversation is None

        content = fs.files["docs/checkout-revamp.md"]
        assert content.startswith("# Checkout Revamp")
        assert "## Problem Statement" in content
        assert "{{PROBLEM_STATEMENT}}" in content

    @pytest.mark.asyncio
    async def test_explicit_path_and_conversation_flag(self, router, context, fs):
        result = await router.route_command("/new API Design -t design -p specs/api.md -w", context)

        assert result.success is True
        assert result.file_path == "specs/api.md"
        assert result.should_continue_conversation is True
        assert "specs/api.md" in fs.files

    @pytest.mark.asyncio
    async def test_no_conversation_flag(self, router, context):
        result = await router.route_command("/new Notes -n", context)

        assert result.success is True
        assert result.template_used == "basic"
        assert result.should_continue_conversation is False

    @pytest.mark.asyncio
    async def test_conflicting_conversation_flags(self, router, context):
        result = await router.route_command("/new Notes -w -n", context)
        assert result.success is False

    @pytest.mark.asyncio
    async def test_missing_title(self, router, context):
        result = await router.route_command("/new --template prd", context)

        assert result.success is False
        assert result.error.startswith("Usage:")

    @pytest.mark.asyncio
    async def test_unknown_template(self, router, context):
        result = await router.route_command("/new Title --template memo", context)

        assert result.success is False
        assert "Available: prd" in result.error

    @pytest.mark.asyncio
    async def test_unknown_agent_flag(self, router, context, fs):
        result = await router.route_command("/new Notes -a ghostwriter", context)

        assert result.success is False
        assert result.error.startswith("Unknown agent 'ghostwriter'")
        assert fs.files == {}

    @pytest.mark.asyncio
    async def test_existing_file_is_not_overwritten(self, router, context, fs):
        fs.files["docs/notes.md"] = "keep me"

        result = await router.route_command("/new Notes", context)

        assert result.success is False
        assert "already exists" in result.error
        assert fs.files["docs/notes.md"] == "keep me"

    @pytest.mark.asyncio
    async def test_missing_tools(self, router):
        context = CommandContext(router=router, templates=TemplateRegistry())

        result = await router.route_command("/new Notes", context)

        assert result.success is False
        assert result.error == "Tool invoker is not available in this session"
        assert result.data["missing"] == "Tool invoker"

    def test_slugify(self):
        assert slugify("Checkout Revamp: v2!") == "checkout-revamp-v2"
        assert slugify("???") == "document"


class TestUpdateCommand:

    @pytest.mark.asyncio
    async def test_appends_to_section(self, router, context, fs):
        fs.files["doc.md"] = "# Doc\n\n## Goals\n\nShip it.\n"

        result = await router.route_command('/update --file doc.md --section Goals "Measure it."', context)

        assert result.success is True
        assert result.data == {"file": "doc.md", "section": "Goals", "mode": "append"}
        assert fs.files["doc.md"] == "# Doc\n\n## Goals\n\nShip it.\n\nMeasure it.\n"

    @pytest.mark.asyncio
    async def test_replace_mode(self, router, context, fs):
        fs.files["doc.md"] = "# Doc\n\n## Goals\n\nOld.\n"

        await router.route_command('/update -f doc.md -s Goals -m replace "New."', context)

        assert fs.files["doc.md"] == "# Doc\n\n## Goals\n\nNew.\n"

    @pytest.mark.asyncio
    async def test_repeated_append_is_noop(self, router, context, fs):
        fs.files["doc.md"] = "# Doc\n\n## Goals\n\nShip it.\n"

        result = await router.route_command('/update -f doc.md -s Goals "Ship it."', context)

        assert result.success is True
        assert "already contains" in result.message
        assert fs.writes == []

    @pytest.mark.asyncio
    async def test_invalid_mode(self, router, context, fs):
        fs.files["doc.md"] = "# Doc\n"

        result = await router.route_command('/update -f doc.md -s Goals -m sideways "x"', context)

        assert result.success is False
        assert "Invalid mode 'sideways'" in result.error

    @pytest.mark.asyncio
    async def test_missing_document(self, router, context):
        result = await router.route_command('/update -f nope.md -s Goals "x"', context)

        assert result.success is False
        assert "not found" in result.error.lower()

    @pytest.mark.asyncio
    async def test_write_failure(self, router, context, clock):
        failing = FailingWriteFileSystem({"doc.md": "# Doc\n"})
        context.tools = ToolInvoker.with_file_tools(failing)

        result = await router.route_command('/update -f doc.md -s Goals "x"', context)

        assert result.success is False
        assert "disk full" in result.error


class TestChatCommand:

    @pytest.mark.asyncio
    async def test_status_inactive(self, router, context):
        result = await router.route_command("/chat status", context)

        assert result.success is True
        assert result.message == "Auto-chat is off"

    @pytest.mark.asyncio
    async def test_status_active(self, router, context):
        context.auto_chat.enable_auto_chat("prd-creator", document_path="docs/prd.md")

        result = await router.route_command("/chat", context)

        assert result.auto_chat_enabled is True
        assert result.agent_name == "prd-creator"
        assert "docs/prd.md" in result.message

    @pytest.mark.asyncio
    async def test_off(self, router, context):
        context.auto_chat.enable_auto_chat("prd-creator")

        result = await router.route_command("/chat off", context)

        assert result.success is True
        assert result.message == "Auto-chat turned off"
        assert context.auto_chat.is_auto_chat_active() is False
