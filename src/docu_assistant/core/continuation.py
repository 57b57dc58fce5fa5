"""
Continuation decisions: should a finished command hand off into a conversation,
and if so with which agent and which opening question.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .types import ContinuationDecision, UserContext
from ..utils.logging import get_logger


@dataclass
class TemplateAgentMapping:
    agent_name: str
    auto_start: bool = False
    workflow_phase: Optional[str] = None


@dataclass
class CommandConversationMapping:
    command: str
    default_agent: str
    template_mappings: Dict[str, TemplateAgentMapping] = field(default_factory=dict)


EXACT_MATCH_CONFIDENCE = 0.9
COMMAND_MATCH_CONFIDENCE = 0.6

WITH_CONVERSATION_FLAGS = ("with-conversation", "w")
NO_CONVERSATION_FLAGS = ("no-conversation", "n")


def default_command_mappings() -> Dict[str, CommandConversationMapping]:
    return {
        "new": CommandConversationMapping(
            command="new",
            default_agent="prd-creator",
            template_mappings={
                "prd": TemplateAgentMapping("prd-creator", auto_start=True, workflow_phase="planning"),
                "requirements": TemplateAgentMapping("requirements-gatherer", auto_start=True, workflow_phase="requirements"),
                "design": TemplateAgentMapping("solution-architect", auto_start=True, workflow_phase="design"),
                "specification": TemplateAgentMapping("specification-writer", auto_start=True, workflow_phase="implementation"),
                "basic": TemplateAgentMapping("brainstormer", auto_start=False, workflow_phase="planning"),
            },
        ),
        "update": CommandConversationMapping(command="update", default_agent="quality-reviewer"),
    }


OPENING_QUESTIONS = {
    "prd": "What problem is this product solving, and for whom?",
    "requirements": "Who are the main users, and what must the system let them do?",
    "design": "What are the main components you have in mind, and how do they talk to each other?",
    "specification": "Which part of the design should we specify first?",
    "basic": "What is this document about?",
}


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a dataclass-like object or a mapping."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


class ContinuationDecisionEngine:
    """Decides whether a command result should open an auto-chat conversation."""

    def __init__(self, mappings: Optional[Dict[str, CommandConversationMapping]] = None):
        self.logger = get_logger(__name__)
        self.mappings = mappings if mappings is not None else default_command_mappings()

    def should_start_conversation(self, command_name, command_result, user_context) -> ContinuationDecision:
        """Never raises; malformed input produces a negative decision with a reason."""
        try:
            decision = self._decide(command_name, command_result, user_context)
        except Exception as e:
            self.logger.error(f"Continuation decision failed: {e}", exc_info=True)
            decision = ContinuationDecision(
                should_continue=False,
                reason=f"could not evaluate command result: {e}",
            )

        self.logger.debug(
            f"Continuation for {command_name!r}: {decision.should_continue} ({decision.reason})"
        )
        return decision

    def _decide(self, command_name, command_result, user_context) -> ContinuationDecision:
        if not isinstance(command_name, str) or not command_name.strip():
            return ContinuationDecision(False, reason="invalid command name")

        name = command_name.strip().lstrip("/")
        mapping = self.mappings.get(name)
        if mapping is None:
            return ContinuationDecision(False, reason="no conversation mapping found for command")

        if command_result is None:
            return ContinuationDecision(False, reason="no command result to continue from")

        if not _field(command_result, "success", False):
            return ContinuationDecision(False, reason="command failed; conversations only follow successful commands")

        if user_context is None:
            return ContinuationDecision(False, reason="no user context provided")

        if not _field(user_context, "requests_assistance", False):
            return ContinuationDecision(False, reason="user did not request assistance")

        template_id = self.template_of(command_result)
        template_mapping = mapping.template_mappings.get(template_id) if template_id else None

        preferred = _field(user_context, "preferred_agent")
        if isinstance(preferred, str) and preferred.strip():
            agent_name, confidence = preferred.strip(), EXACT_MATCH_CONFIDENCE
            reason = f"user preferred agent {agent_name}"
        elif template_mapping:
            agent_name, confidence = template_mapping.agent_name, EXACT_MATCH_CONFIDENCE
            reason = f"template '{template_id}' maps to {agent_name}"
        else:
            agent_name, confidence = mapping.default_agent, COMMAND_MATCH_CONFIDENCE
            reason = f"command '{name}' defaults to {agent_name}"

        return ContinuationDecision(
            should_continue=True,
            agent_name=agent_name,
            confidence=confidence,
            reason=reason,
            initial_prompt=self._initial_prompt(command_result, template_id),
            workflow_phase=template_mapping.workflow_phase if template_mapping else None,
        )

    def should_continue_with_conversation(self, flags: Optional[Mapping[str, Any]], template_id: Optional[str]) -> bool:
        """Turn ``/new`` flags and the chosen template into an assistance request.

        ``--no-conversation`` wins over everything, ``--with-conversation``
        asks for one explicitly, otherwise templates marked auto-start do.
        """
        flags = flags or {}
        if any(flags.get(name) for name in NO_CONVERSATION_FLAGS):
            return False
        if any(flags.get(name) for name in WITH_CONVERSATION_FLAGS):
            return True

        mapping = self.mappings.get("new")
        template_mapping = mapping.template_mappings.get(template_id) if mapping and template_id else None
        return bool(template_mapping and template_mapping.auto_start)

    def build_user_context(self, command_name: str, parsed_flags: Optional[Mapping[str, Any]], command_result) -> UserContext:
        """User context for a routed command, derived from its flags."""
        flags = parsed_flags or {}
        if command_name == "new":
            wants = self.should_continue_with_conversation(flags, self.template_of(command_result))
        else:
            wants = any(flags.get(name) for name in WITH_CONVERSATION_FLAGS) and not any(
                flags.get(name) for name in NO_CONVERSATION_FLAGS
            )
        agent = flags.get("agent")
        return UserContext(
            requests_assistance=bool(wants),
            preferred_agent=agent if isinstance(agent, str) else None,
        )

    @staticmethod
    def template_of(command_result) -> Optional[str]:
        template = _field(command_result, "template_used")
        if not template:
            data = _field(command_result, "data")
            template = data.get("template") if isinstance(data, Mapping) else None
        return template if isinstance(template, str) else None

    @staticmethod
    def _initial_prompt(command_result, template_id: Optional[str]) -> str:
        data = _field(command_result, "data") or {}
        title = data.get("title") if isinstance(data, Mapping) else None
        file_path = _field(command_result, "file_path")

        label = "PRD" if template_id == "prd" else (template_id or "new")
        artifact = f"your {label} document"
        if title:
            artifact += f" \"{title}\""
        created = f"I've created {artifact}" + (f" at {file_path}" if file_path else "") + "."

        question = OPENING_QUESTIONS.get(template_id or "", "How would you like to build it out?")
        return f"{created} Let's fill it in together. {question}"
