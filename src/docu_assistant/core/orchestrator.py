"""
Chat orchestration.

``ChatOrchestrator.handle_input`` is the single entry point for user text.
Commands are routed and their results handed to the continuation engine,
which may open an auto-chat session. While a session is active, plain text is
a conversational turn: the session's agent answers and extracted content is
merged into the session's document. Failures at any stage come back as a
``ChatReply`` carrying recovery guidance from the classifier.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .auto_chat import AutoChatStateManager
from .continuation import ContinuationDecisionEngine
from .document_update import DocumentUpdateEngine
from .recovery import ErrorRecoveryClassifier
from .types import (
    AutoChatContext,
    ConversationContext,
    ErrorContext,
    ErrorType,
    RecoveryAction,
    RecoveryOptions,
    UpdateResult,
)
from ..agents.registry import AgentRegistry, ConversationalAgent
from ..commands.handlers import PREFERRED_AGENT_KEY, register_builtin_commands
from ..commands.router import CommandRouter
from ..commands.types import CommandContext, CommandResult
from ..config.models import DocuAssistantConfig
from ..llm.fallback import create_selector
from ..llm.model import LanguageModel, create_language_model
from ..llm.service import LanguageModelService
from ..storage.state_store import StateStore, create_state_store
from ..templates.registry import TemplateRegistry
from ..tools.file_system import LocalFileSystem
from ..tools.invoker import ToolInvoker
from ..utils.logging import get_logger

DEFAULT_SESSION = "default"
MAX_REMEMBERED_RESPONSES = 5


@dataclass
class ChatReply:
    message: str
    success: bool = True
    suggested_actions: List[str] = field(default_factory=list)
    command_result: Optional[CommandResult] = None
    agent_name: Optional[str] = None
    document_update: Optional[UpdateResult] = None
    recovery: Optional[RecoveryOptions] = None


class ChatOrchestrator:
    """Routes user input between commands and the active conversation."""

    def __init__(
        self,
        router: CommandRouter,
        auto_chat: AutoChatStateManager,
        documents: DocumentUpdateEngine,
        recovery: ErrorRecoveryClassifier,
        agents: AgentRegistry,
        templates: TemplateRegistry,
        language_service: LanguageModelService,
        tools: ToolInvoker,
        config: Optional[DocuAssistantConfig] = None,
        decision_engine: Optional[ContinuationDecisionEngine] = None,
    ):
        self.logger = get_logger(__name__)
        self.router = router
        self.auto_chat = auto_chat
        self.documents = documents
        self.recovery = recovery
        self.agents = agents
        self.templates = templates
        self.language_service = language_service
        self.tools = tools
        self.config = config or DocuAssistantConfig()
        self.decision_engine = decision_engine or ContinuationDecisionEngine()

        self.preferences: Dict[str, Any] = {}
        self._previous_responses: List[str] = []
        self._last_error: Optional[ErrorContext] = None
        self._last_error_session: str = DEFAULT_SESSION
        self._last_operation: Optional[Callable[[], Awaitable[Any]]] = None

    async def handle_input(self, text: str) -> ChatReply:
        self.auto_chat.cleanup_expired_sessions()

        if not isinstance(text, str) or not text.strip():
            return ChatReply(
                message=f"Type a message, or {self.router.prefix}help to see commands",
                success=False,
            )

        try:
            if self.router.is_command(text):
                return await self._handle_command(text)
            if self.auto_chat.is_auto_chat_active():
                return await self._handle_turn(text)
        except Exception as e:
            self.logger.error(f"Unhandled error while processing input: {e}", exc_info=True)
            return self._failure_reply(self._session_id(), e)

        return ChatReply(
            message=(
                "No conversation is active. Create a document with "
                f"{self.router.prefix}new <title> --template prd, or type {self.router.prefix}help."
            ),
            success=False,
            suggested_actions=[f"{self.router.prefix}new", f"{self.router.prefix}help"],
        )

    async def recover(self, action: Union[str, RecoveryAction]) -> ChatReply:
        """Apply a recovery action to the most recent failure."""
        if self._last_error is None:
            return ChatReply(message="There is no failed operation to recover from", success=False)

        result = await self.recovery.attempt_recovery(self._last_error_session, self._last_error, action)
        if result.success:
            reply = result.data if isinstance(result.data, ChatReply) else None
            if result.action == RecoveryAction.RETRY.value:
                if reply is not None and not reply.success and self._last_operation is not None:
                    # The retried turn ran but failed again; keep it retryable
                    self.recovery.register_retryable_operation(self._last_error_session, self._last_operation)
                else:
                    self._last_error = None
                    self._last_operation = None
            if reply is not None:
                return reply
        return ChatReply(message=result.message, success=result.success)

    def command_context(self) -> CommandContext:
        return CommandContext(
            config=self.config,
            router=self.router,
            tools=self.tools,
            templates=self.templates,
            agents=self.agents,
            auto_chat=self.auto_chat,
            documents=self.documents,
            workspace_root=self.config.documents.workspace_root,
            preferences=self.preferences,
        )

    async def _handle_command(self, text: str) -> ChatReply:
        result = await self.router.route_command(text, self.command_context())
        if not result.success:
            return ChatReply(
                message=result.error or "Command failed",
                success=False,
                suggested_actions=list(result.metadata.get("suggested_actions", [])),
                command_result=result,
            )

        parsed = self.router.parser.normalize_flags(self.router.parse_command(text))
        user_context = self.decision_engine.build_user_context(parsed.command, parsed.flags, result)
        if user_context.preferred_agent is None:
            user_context.preferred_agent = self.preferences.get(PREFERRED_AGENT_KEY)

        decision = self.decision_engine.should_start_conversation(parsed.command, result, user_context)
        self.logger.debug(f"Continuation after /{parsed.command}: {decision.should_continue} ({decision.reason})")

        message = result.message or "Done"
        if decision.should_continue and self._auto_chat_allowed(parsed.command):
            self.auto_chat.enable_auto_chat(
                decision.agent_name,
                document_path=result.file_path,
                template_id=self.decision_engine.template_of(result),
                conversation_session_id=uuid.uuid4().hex,
            )
            self._previous_responses = []
            result.auto_chat_enabled = True
            result.agent_name = decision.agent_name
            if decision.initial_prompt:
                message = f"{message}\n\n{decision.initial_prompt}"
                self._previous_responses.append(decision.initial_prompt)

        return ChatReply(
            message=message,
            command_result=result,
            agent_name=result.agent_name,
        )

    def _auto_chat_allowed(self, command_name: str) -> bool:
        settings = self.config.auto_chat
        if not settings.enabled:
            return False
        if command_name == "new" and not settings.enable_after_document_creation:
            return False
        return True

    async def _handle_turn(self, text: str) -> ChatReply:
        session = self.auto_chat.get_auto_chat_context()
        self.auto_chat.update_activity(text)
        session_id = self._session_id(session)

        template = self.templates.get(session.template_id) if session.template_id else None
        profile = self.agents.get(session.agent_name)
        if profile is None:
            return self._failure_reply(session_id, ErrorContext(
                type=ErrorType.VALIDATION,
                message=f"Agent '{session.agent_name}' is not available",
                details={"agent_name": session.agent_name},
            ))

        agent = ConversationalAgent(profile, self.language_service, template, timeout=self.config.llm.timeout_seconds)
        conversation = ConversationContext(
            agent_name=session.agent_name,
            current_turn=self.auto_chat.message_count,
            template_id=session.template_id,
            document_path=session.document_path,
            previous_responses=list(self._previous_responses),
        )

        async def run_turn() -> ChatReply:
            return await self._run_turn(agent, text, conversation, session, template)

        try:
            return await run_turn()
        except Exception as e:
            return self._failure_reply(session_id, e, operation=run_turn, template_id=session.template_id)

    async def _run_turn(self, agent, text, conversation, session: AutoChatContext, template) -> ChatReply:
        response = await agent.respond(text, conversation)
        self._previous_responses = (self._previous_responses + [response.agent_message])[-MAX_REMEMBERED_RESPONSES:]

        parts = [response.agent_message]
        suggested: List[str] = []
        update = None

        if session.document_path and template and self.config.auto_chat.enable_document_updates:
            update = await self.documents.update_document_from_conversation(
                session.document_path, response, template, conversation
            )
            if not update.success:
                options = self.recovery.handle_error(self._session_id(session), ErrorContext(
                    type=ErrorType.EXECUTION,
                    message=update.error or "Document update failed",
                    recoverable=True,
                    details={"document_path": session.document_path},
                ))
                parts.append(f"_Could not update {session.document_path}: {update.error}_")
                suggested = list(options.suggested_actions)
            elif update.updated_sections and self.config.auto_chat.show_progress_indicators and update.progress:
                progress = update.progress
                parts.append(
                    f"_Updated {', '.join(update.updated_sections)}. "
                    f"Progress: {progress.progress_percentage:.0f}% "
                    f"({progress.completed_sections}/{progress.total_sections} sections)_"
                )

        if response.conversation_complete:
            self.auto_chat.disable_auto_chat()
            parts.append("Conversation finished. Auto-chat is now off.")

        return ChatReply(
            message="\n\n".join(parts),
            success=update is None or update.success,
            suggested_actions=suggested,
            agent_name=session.agent_name,
            document_update=update,
        )

    def _failure_reply(
        self,
        session_id: str,
        error: Union[Exception, ErrorContext],
        operation: Optional[Callable[[], Awaitable[Any]]] = None,
        template_id: Optional[str] = None,
    ) -> ChatReply:
        context = error if isinstance(error, ErrorContext) else ErrorContext.from_exception(error)
        if template_id:
            context.details.setdefault("template_id", template_id)

        options = self.recovery.handle_error(session_id, context)
        if operation is not None and options.can_retry:
            self.recovery.register_retryable_operation(session_id, operation)

        self._last_error = context
        self._last_error_session = session_id
        self._last_operation = operation

        message = context.message
        if options.message:
            message = f"{message}\n\n{options.message}"
        return ChatReply(
            message=message,
            success=False,
            suggested_actions=list(options.suggested_actions),
            recovery=options,
        )

    def _session_id(self, session: Optional[AutoChatContext] = None) -> str:
        session = session or self.auto_chat.get_auto_chat_context()
        if session and session.conversation_session_id:
            return session.conversation_session_id
        return DEFAULT_SESSION


def create_orchestrator(
    config: DocuAssistantConfig,
    workspace_root: Optional[str] = None,
    state_store: Optional[StateStore] = None,
    language_model: Optional[LanguageModel] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ChatOrchestrator:
    """Wire every collaborator from configuration."""
    file_system = LocalFileSystem(workspace_root or config.documents.workspace_root)

    router = CommandRouter(prefix=config.commands.prefix)
    register_builtin_commands(router)

    service = LanguageModelService(
        language_model or create_language_model(config.llm),
        selector=create_selector(config.llm.fallback_seed),
        default_timeout=config.llm.timeout_seconds,
        offline_fallback=config.llm.offline_fallback,
    )

    return ChatOrchestrator(
        router=router,
        auto_chat=AutoChatStateManager(
            state_store if state_store is not None else create_state_store(config.storage.state_file),
            timeout_minutes=config.auto_chat.timeout_minutes,
            clock=clock,
        ),
        documents=DocumentUpdateEngine(file_system, clock=clock),
        recovery=ErrorRecoveryClassifier(
            network_retry_delay_seconds=config.recovery.network_retry_delay_seconds,
            rate_limit_retry_delay_seconds=config.recovery.rate_limit_retry_delay_seconds,
        ),
        agents=AgentRegistry(),
        templates=TemplateRegistry(),
        language_service=service,
        tools=ToolInvoker.with_file_tools(file_system),
        config=config,
    )
