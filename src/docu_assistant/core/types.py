"""
Shared types for the conversation orchestration core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorType(Enum):
    """Failure taxonomy used by the recovery classifier."""
    NETWORK = "network"
    VALIDATION = "validation"
    EXECUTION = "execution"
    AUTH = "auth"
    RATE_LIMIT = "rate-limit"
    OFFLINE = "offline"

    @classmethod
    def parse(cls, value: Any) -> Optional["ErrorType"]:
        """Lenient lookup: accepts members, values and ``rate_limit`` style names."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        return None


@dataclass
class ErrorContext:
    type: ErrorType
    message: str
    recoverable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, error: Exception) -> "ErrorContext":
        """Build a context from any exception, honoring ``error_type``/``recoverable`` attributes."""
        error_type = ErrorType.parse(getattr(error, "error_type", None)) or ErrorType.EXECUTION
        return cls(
            type=error_type,
            message=getattr(error, "message", None) or str(error) or type(error).__name__,
            recoverable=bool(getattr(error, "recoverable", error_type in (ErrorType.NETWORK, ErrorType.RATE_LIMIT))),
            details=dict(getattr(error, "details", {}) or {}),
        )


@dataclass
class RecoveryOptions:
    can_retry: bool
    can_modify: bool
    can_fallback: bool
    suggested_actions: List[str]
    fallback_options: Optional[List[str]] = None
    retry_delay_seconds: Optional[float] = None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_retry": self.can_retry,
            "can_modify": self.can_modify,
            "can_fallback": self.can_fallback,
            "suggested_actions": list(self.suggested_actions),
            "fallback_options": list(self.fallback_options) if self.fallback_options is not None else None,
            "retry_delay_seconds": self.retry_delay_seconds,
            "message": self.message,
        }


class RecoveryAction(Enum):
    RETRY = "retry"
    FALLBACK = "fallback"
    MODIFY = "modify"


@dataclass
class RecoveryResult:
    success: bool
    action: str
    message: str
    data: Any = None


@dataclass
class UserContext:
    """Hints about what the user wants after a command finishes."""
    requests_assistance: bool = False
    experience_level: Optional[str] = None
    preferred_agent: Optional[str] = None


@dataclass
class ContinuationDecision:
    should_continue: bool
    reason: str
    agent_name: Optional[str] = None
    initial_prompt: Optional[str] = None
    confidence: float = 0.0
    workflow_phase: Optional[str] = None


@dataclass
class AutoChatContext:
    agent_name: str
    enabled_at: datetime
    last_activity: datetime
    document_path: Optional[str] = None
    template_id: Optional[str] = None
    conversation_session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_name": self.agent_name,
            "document_path": self.document_path,
            "template_id": self.template_id,
            "conversation_session_id": self.conversation_session_id,
            "enabled_at": self.enabled_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutoChatContext":
        return cls(
            agent_name=data["agent_name"],
            document_path=data.get("document_path"),
            template_id=data.get("template_id"),
            conversation_session_id=data.get("conversation_session_id"),
            enabled_at=datetime.fromisoformat(data["enabled_at"]),
            last_activity=datetime.fromisoformat(data["last_activity"]),
        )


@dataclass
class ConversationContext:
    """What an agent turn knows about the conversation so far."""
    agent_name: str
    current_turn: int = 1
    template_id: Optional[str] = None
    document_path: Optional[str] = None
    previous_responses: List[str] = field(default_factory=list)


@dataclass
class ConversationResponse:
    agent_message: str
    extracted_content: Dict[str, Any] = field(default_factory=dict)
    suggested_sections: List[str] = field(default_factory=list)
    conversation_complete: bool = False
    from_fallback: bool = False


class UpdateMode(Enum):
    REPLACE = "replace"
    APPEND = "append"
    PREPEND = "prepend"


@dataclass
class SectionUpdate:
    section: str
    content: str
    mode: UpdateMode
    order: int


@dataclass
class DocumentUpdateRecord:
    turn: int
    sections: List[str]
    timestamp: datetime
    update_type: str
    characters_added: int = 0


@dataclass
class DocumentUpdateProgress:
    document_path: str
    total_sections: int = 0
    completed_sections: int = 0
    progress_percentage: float = 0.0
    template_id: Optional[str] = None
    completed_section_names: List[str] = field(default_factory=list)
    update_history: List[DocumentUpdateRecord] = field(default_factory=list)
    last_updated: Optional[datetime] = None


@dataclass
class UpdateResult:
    success: bool
    updated_sections: List[str] = field(default_factory=list)
    added_sections: List[str] = field(default_factory=list)
    newly_completed: List[str] = field(default_factory=list)
    progress: Optional[DocumentUpdateProgress] = None
    error: Optional[str] = None
