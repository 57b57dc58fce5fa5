"""
Conversational agents that help fill in documents.

Each ``AgentProfile`` describes a persona for one workflow phase. A
``ConversationalAgent`` turns a user message into a ``ConversationResponse``:
the model's reply plus content extracted from the message for the document.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from langchain_core.prompts import PromptTemplate

from ..core.document_update import extract_structured_content
from ..core.types import ConversationContext, ConversationResponse
from ..llm.service import LanguageModelService
from ..templates.registry import TemplateStructure
from ..utils.logging import get_logger

COMPLETION_PHRASES = ("done", "that's all", "that is all", "finish", "we're done", "/done")

AGENT_PROMPT = PromptTemplate.from_template(
    "You are the {display_name}, an assistant who {persona}\n"
    "{document_line}"
    "{sections_line}"
    "{history}"
    "User: {message}\n"
    "Reply briefly, acknowledge what the user said and ask one follow-up question."
)


@dataclass
class AgentProfile:
    name: str
    display_name: str
    persona: str
    workflow_phase: str
    canned_responses: List[str] = field(default_factory=list)


def builtin_agents() -> List[AgentProfile]:
    return [
        AgentProfile(
            "prd-creator", "PRD Creator",
            "turns product ideas into a product requirements document.",
            "planning",
            [
                "Got it. Who will use this product day to day?",
                "Thanks. What would success look like six months after launch?",
                "Noted. Which features are essential for a first release?",
            ],
        ),
        AgentProfile(
            "requirements-gatherer", "Requirements Gatherer",
            "collects precise functional and non-functional requirements.",
            "requirements",
            [
                "Understood. What must the system do when that happens?",
                "Thanks. Are there performance or security expectations we should record?",
            ],
        ),
        AgentProfile(
            "solution-architect", "Solution Architect",
            "designs system architecture, components and data flow.",
            "design",
            [
                "Makes sense. Which component owns that data?",
                "Noted. How should the components communicate?",
            ],
        ),
        AgentProfile(
            "specification-writer", "Specification Writer",
            "breaks a design into implementable tasks and interfaces.",
            "implementation",
            ["Thanks. What is the next task an engineer would pick up?"],
        ),
        AgentProfile(
            "quality-reviewer", "Quality Reviewer",
            "reviews documents for gaps, ambiguity and consistency.",
            "review",
            ["Noted. Is there any section you want me to look at more closely?"],
        ),
        AgentProfile(
            "brainstormer", "Brainstormer",
            "explores ideas freely before they become a document.",
            "planning",
            ["Interesting. What else comes to mind?"],
        ),
    ]


class AgentRegistry:

    def __init__(self, profiles: Optional[List[AgentProfile]] = None):
        self._profiles: Dict[str, AgentProfile] = {
            profile.name: profile for profile in (profiles if profiles is not None else builtin_agents())
        }

    def get(self, name: str) -> Optional[AgentProfile]:
        return self._profiles.get(name)

    def has_agent(self, name: str) -> bool:
        return name in self._profiles

    def list_agents(self) -> List[AgentProfile]:
        return list(self._profiles.values())


class ConversationalAgent:
    """One agent persona backed by the language model service."""

    def __init__(
        self,
        profile: AgentProfile,
        service: LanguageModelService,
        template: Optional[TemplateStructure] = None,
        timeout: Optional[float] = None,
    ):
        self.logger = get_logger(__name__)
        self.profile = profile
        self.service = service
        self.template = template
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.profile.name

    def build_prompt(self, message: str, context: ConversationContext) -> str:
        sections = self.template.ordered_sections() if self.template else []
        history = "".join(f"Assistant: {reply}\n" for reply in context.previous_responses[-3:])
        return AGENT_PROMPT.format(
            display_name=self.profile.display_name,
            persona=self.profile.persona,
            document_line=f"The document being written is {context.document_path}.\n" if context.document_path else "",
            sections_line=f"Its sections are: {', '.join(sections)}.\n" if sections else "",
            history=history,
            message=message,
        )

    async def respond(self, message: str, context: ConversationContext) -> ConversationResponse:
        """Answer ``message``; model failures propagate as ``ModelServiceError``."""
        extracted = extract_structured_content(message, self.profile.name)
        complete = message.strip().lower().rstrip(".!") in COMPLETION_PHRASES

        reply = await self.service.generate(
            self.build_prompt(message, context),
            timeout=self.timeout,
            fallback_responses=self.profile.canned_responses or None,
        )

        suggested = []
        if self.template:
            lowered = reply.text.lower()
            suggested = [s for s in self.template.ordered_sections() if s.lower() in lowered]

        self.logger.debug(
            f"{self.profile.name} turn {context.current_turn}: extracted {sorted(extracted)}"
        )
        return ConversationResponse(
            agent_message=reply.text,
            extracted_content=extracted,
            suggested_sections=suggested,
            conversation_complete=complete,
            from_fallback=reply.from_fallback,
        )
