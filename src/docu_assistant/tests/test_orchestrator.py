"""
Integration tests for the chat orchestrator.

These wire the real router, session manager, document engine and agents
against a temporary workspace, an in-memory state store, a frozen clock and
a scripted language model.
"""

import pytest

from docu_assistant.config.models import DocuAssistantConfig, LLMConfig, Provider, StorageConfig
from docu_assistant.core.orchestrator import create_orchestrator
from docu_assistant.core.recovery import OFFLINE_GUIDANCE

from .fixtures.doubles import FailingWriteFileSystem, ScriptedLanguageModel

pytestmark = pytest.mark.integration


@pytest.fixture
def build(test_config, tmp_path, memory_store, clock, scripted_model):
    def _build(config=None, model=None):
        return create_orchestrator(
            config or test_config,
            workspace_root=str(tmp_path),
            state_store=memory_store,
            language_model=model or scripted_model,
            clock=clock,
        )
    return _build


@pytest.fixture
def orchestrator(build):
    return build()


class TestInputRouting:

    @pytest.mark.asyncio
    async def test_empty_input(self, orchestrator):
        reply = await orchestrator.handle_input("   ")

        assert reply.success is False
        assert "/help" in reply.message

    @pytest.mark.asyncio
    async def test_chat_without_session(self, orchestrator):
        reply = await orchestrator.handle_input("Let's write a PRD")

        assert reply.success is False
        assert reply.message.startswith("No conversation is active")
        assert reply.suggested_actions == ["/new", "/help"]

    @pytest.mark.asyncio
    async def test_failed_command_carries_suggestions(self, orchestrator):
        reply = await orchestrator.handle_input("/dance")

        assert reply.success is False
        assert reply.message == "Command 'dance' not found"
        assert reply.suggested_actions

    @pytest.mark.asyncio
    async def test_command_usage_error(self, orchestrator):
        reply = await orchestrator.handle_input("/new")

        assert reply.success is False
        assert reply.message.startswith("Usage:")
        assert orchestrator.auto_chat.is_auto_chat_active() is False


class TestCommandContinuation:

    @pytest.mark.asyncio
    async def test_new_prd_opens_conversation(self, orchestrator, tmp_path):
        reply = await orchestrator.handle_input('/new "Checkout Revamp" --template prd')

        assert reply.success is True
        assert reply.agent_name == "prd-creator"
        assert reply.command_result.auto_chat_enabled is True
        assert "Let's fill it in together." in reply.message
        assert (tmp_path / "docs" / "checkout-revamp.md").exists()

        session = orchestrator.auto_chat.get_auto_chat_context()
        assert session.agent_name == "prd-creator"
        assert session.document_path == "docs/checkout-revamp.md"
        assert session.template_id == "prd"
        assert session.conversation_session_id

    @pytest.mark.asyncio
    async def test_no_conversation_flag(self, orchestrator):
        reply = await orchestrator.handle_input("/new Checkout --template prd -n")

        assert reply.success is True
        assert reply.agent_name is None
        assert orchestrator.auto_chat.is_auto_chat_active() is False

    @pytest.mark.asyncio
    async def test_basic_template_does_not_auto_start(self, orchestrator):
        await orchestrator.handle_input("/new Notes")
        assert orchestrator.auto_chat.is_auto_chat_active() is False

    @pytest.mark.asyncio
    async def test_preferred_agent(self, orchestrator):
        await orchestrator.handle_input("/agent set brainstormer")

        reply = await orchestrator.handle_input("/new Checkout --template prd")

        assert reply.agent_name == "brainstormer"

    @pytest.mark.asyncio
    async def test_agent_flag_beats_stored_preference(self, orchestrator):
        await orchestrator.handle_input("/agent set brainstormer")

        reply = await orchestrator.handle_input("/new Checkout --template prd --agent solution-architect")

        assert reply.agent_name == "solution-architect"
        assert orchestrator.auto_chat.get_auto_chat_context().agent_name == "solution-architect"

    @pytest.mark.asyncio
    async def test_second_document_replaces_session(self, orchestrator):
        await orchestrator.handle_input("/new Checkout --template prd")
        await orchestrator.handle_input("/new Payments API --template design")

        session = orchestrator.auto_chat.get_auto_chat_context()
        assert session.agent_name == "solution-architect"
        assert session.document_path == "docs/payments-api.md"

    @pytest.mark.asyncio
    async def test_update_with_conversation_starts_review(self, orchestrator):
        await orchestrator.handle_input("/new Notes -n")

        reply = await orchestrator.handle_input('/update -f docs/notes.md -s Overview -w "Meeting notes."')

        assert reply.success is True
        assert reply.agent_name == "quality-reviewer"

    @pytest.mark.asyncio
    async def test_auto_chat_disabled_in_config(self, build, tmp_path):
        config = DocuAssistantConfig(
            llm=LLMConfig(provider=Provider.FAKE),
            storage=StorageConfig(state_file=None),
            documents={"workspace_root": str(tmp_path)},
            auto_chat={"enabled": False},
        )
        orchestrator = build(config=config)

        await orchestrator.handle_input("/new Checkout --template prd")

        assert orchestrator.auto_chat.is_auto_chat_active() is False


class TestConversationTurns:

    @pytest.mark.asyncio
    async def test_turn_updates_document(self, orchestrator, tmp_path, scripted_model):
        await orchestrator.handle_input("/new Checkout --template prd")

        reply = await orchestrator.handle_input("Small shops struggle with invoicing.")

        assert reply.success is True
        assert reply.agent_name == "prd-creator"
        assert reply.message.startswith("Thanks, noted.")
        assert "(1/8 sections)" in reply.message
        assert reply.document_update.updated_sections == ["Problem Statement"]

        content = (tmp_path / "docs" / "checkout.md").read_text(encoding="utf-8")
        assert "## Problem Statement\n\nSmall shops struggle with invoicing.\n" in content
        assert "User: Small shops struggle with invoicing." in scripted_model.prompts[0]
        assert orchestrator.auto_chat.message_count == 1

    @pytest.mark.asyncio
    async def test_later_turns_append(self, orchestrator, tmp_path):
        await orchestrator.handle_input("/new Checkout --template prd")
        await orchestrator.handle_input("Small shops struggle with invoicing.")

        await orchestrator.handle_input("Freelancers struggle with late payments.")

        content = (tmp_path / "docs" / "checkout.md").read_text(encoding="utf-8")
        assert (
            "Small shops struggle with invoicing.\n\nFreelancers struggle with late payments.\n"
            in content
        )

    @pytest.mark.asyncio
    async def test_history_reaches_the_prompt(self, orchestrator, scripted_model):
        await orchestrator.handle_input("/new Checkout --template prd")
        await orchestrator.handle_input("hello")
        await orchestrator.handle_input("again")

        assert "Assistant: Thanks, noted." in scripted_model.prompts[1]

    @pytest.mark.asyncio
    async def test_completion_ends_session(self, orchestrator):
        await orchestrator.handle_input("/new Checkout --template prd")

        reply = await orchestrator.handle_input("done")

        assert "Auto-chat is now off" in reply.message
        assert orchestrator.auto_chat.is_auto_chat_active() is False

    @pytest.mark.asyncio
    async def test_expired_session(self, orchestrator, clock):
        await orchestrator.handle_input("/new Checkout --template prd")
        clock.advance(minutes=31)

        reply = await orchestrator.handle_input("Small shops struggle with invoicing.")

        assert reply.message.startswith("No conversation is active")

    @pytest.mark.asyncio
    async def test_session_survives_restart(self, build, tmp_path):
        await build().handle_input("/new Checkout --template prd")

        reply = await build().handle_input("Small shops struggle with invoicing.")

        assert reply.success is True
        assert reply.agent_name == "prd-creator"

    @pytest.mark.asyncio
    async def test_document_write_failure(self, orchestrator):
        await orchestrator.handle_input("/new Checkout --template prd")
        orchestrator.documents.file_system = FailingWriteFileSystem()

        reply = await orchestrator.handle_input("Small shops struggle with invoicing.")

        assert reply.success is False
        assert "Could not update docs/checkout.md" in reply.message
        assert "retry" in reply.suggested_actions
        assert orchestrator.documents.get_update_progress("docs/checkout.md").completed_sections == 0

    @pytest.mark.asyncio
    async def test_unknown_session_agent(self, orchestrator):
        orchestrator.auto_chat.enable_auto_chat("wizard")

        reply = await orchestrator.handle_input("hello")

        assert reply.success is False
        assert "Agent 'wizard' is not available" in reply.message
        assert reply.recovery.can_modify is True


class TestRecovery:

    @pytest.mark.asyncio
    async def test_model_failure_then_retry(self, build):
        model = ScriptedLanguageModel(["Back again."], error=ConnectionError("refused"), fail_times=1)
        orchestrator = build(model=model)
        await orchestrator.handle_input("/new Checkout --template prd")

        failed = await orchestrator.handle_input("Small shops struggle with invoicing.")

        assert failed.success is False
        assert failed.recovery.can_retry is True
        assert failed.recovery.can_fallback is True
        assert "retry" in failed.suggested_actions

        retried = await orchestrator.recover("retry")

        assert retried.success is True
        assert retried.message.startswith("Back again.")
        assert len(model.prompts) == 2

    @pytest.mark.asyncio
    async def test_failed_retry_stays_retryable(self, build):
        model = ScriptedLanguageModel(["Back again."], error=ConnectionError("refused"), fail_times=1)
        orchestrator = build(model=model)
        await orchestrator.handle_input("/new Checkout --template prd")
        await orchestrator.handle_input("Small shops struggle with invoicing.")
        working_fs = orchestrator.documents.file_system
        orchestrator.documents.file_system = FailingWriteFileSystem()

        first = await orchestrator.recover("retry")

        assert first.success is False
        assert "Could not update docs/checkout.md" in first.message

        orchestrator.documents.file_system = working_fs
        second = await orchestrator.recover("retry")

        assert second.success is True
        assert len(model.prompts) == 3
        assert (await orchestrator.recover("retry")).message == "There is no failed operation to recover from"

    @pytest.mark.asyncio
    async def test_fallback_guidance(self, build):
        model = ScriptedLanguageModel(error=ConnectionError("refused"), fail_times=1)
        orchestrator = build(model=model)
        await orchestrator.handle_input("/new Checkout --template prd")
        await orchestrator.handle_input("hello")

        reply = await orchestrator.recover("fallback")

        assert reply.success is True
        assert reply.message == OFFLINE_GUIDANCE["prd"]

    @pytest.mark.asyncio
    async def test_nothing_to_recover(self, orchestrator):
        reply = await orchestrator.recover("retry")

        assert reply.success is False
        assert reply.message == "There is no failed operation to recover from"

    @pytest.mark.asyncio
    async def test_validation_failure_cannot_be_retried(self, orchestrator):
        orchestrator.auto_chat.enable_auto_chat("wizard")
        await orchestrator.handle_input("hello")

        reply = await orchestrator.recover("retry")

        assert reply.success is False
        assert "cannot be retried" in reply.message
