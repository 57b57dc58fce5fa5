"""
Conversation orchestration core: continuation decisions, the auto-chat
session, error recovery and incremental document updates.

The orchestrator that wires these together lives in
``docu_assistant.core.orchestrator`` and is imported from there directly.
"""

from .auto_chat import AUTO_CHAT_STATE_KEY, AutoChatStateManager
from .continuation import (
    CommandConversationMapping,
    ContinuationDecisionEngine,
    TemplateAgentMapping,
    default_command_mappings,
)
from .document_update import DocumentUpdateEngine, extract_structured_content
from .recovery import ErrorRecoveryClassifier
from .types import (
    AutoChatContext,
    ContinuationDecision,
    ConversationContext,
    ConversationResponse,
    DocumentUpdateProgress,
    ErrorContext,
    ErrorType,
    RecoveryAction,
    RecoveryOptions,
    RecoveryResult,
    UpdateMode,
    UpdateResult,
    UserContext,
)

__all__ = [
    "AUTO_CHAT_STATE_KEY",
    "AutoChatStateManager",
    "CommandConversationMapping",
    "ContinuationDecisionEngine",
    "TemplateAgentMapping",
    "default_command_mappings",
    "DocumentUpdateEngine",
    "extract_structured_content",
    "ErrorRecoveryClassifier",
    "AutoChatContext",
    "ContinuationDecision",
    "ConversationContext",
    "ConversationResponse",
    "DocumentUpdateProgress",
    "ErrorContext",
    "ErrorType",
    "RecoveryAction",
    "RecoveryOptions",
    "RecoveryResult",
    "UpdateMode",
    "UpdateResult",
    "UserContext",
]
