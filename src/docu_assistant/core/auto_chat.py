"""
Auto-chat session state machine.

One session exists per process. Enabling a session overwrites whatever was
there before, activity keeps it alive, and a session idle for longer than
the timeout is treated as gone the next time anyone asks. Every transition
is written to the state store immediately so a restarted process picks up
where the previous one stopped.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from .types import AutoChatContext
from ..storage.state_store import MemoryStateStore, StateStore
from ..utils.error_handling import StateStoreError, validate_input
from ..utils.logging import get_logger

AUTO_CHAT_STATE_KEY = "auto_chat_state"
DEFAULT_TIMEOUT_MINUTES = 30.0


class AutoChatStateManager:
    """Owns the single auto-chat session and its persisted snapshot."""

    def __init__(
        self,
        store: Optional[StateStore] = None,
        timeout_minutes: float = DEFAULT_TIMEOUT_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.logger = get_logger(__name__)
        self.store = store if store is not None else MemoryStateStore()
        self.timeout = timedelta(minutes=timeout_minutes)
        self._clock = clock or datetime.now

        self._is_active = False
        self._context: Optional[AutoChatContext] = None
        self._message_count = 0
        self._session_start_time: Optional[datetime] = None
        self._last_user_input: Optional[str] = None

        self._load_state()

    # Transitions

    def enable_auto_chat(
        self,
        agent_name: str,
        document_path: Optional[str] = None,
        template_id: Optional[str] = None,
        conversation_session_id: Optional[str] = None,
    ) -> AutoChatContext:
        """Start a session for ``agent_name``, replacing any current one."""
        validate_input(agent_name, "agent_name", str)
        now = self._clock()

        if self._is_active and self._context:
            self.logger.info(
                f"Replacing auto-chat session for {self._context.agent_name} with {agent_name}"
            )

        self._context = AutoChatContext(
            agent_name=agent_name,
            document_path=document_path,
            template_id=template_id,
            conversation_session_id=conversation_session_id,
            enabled_at=now,
            last_activity=now,
        )
        self._is_active = True
        self._message_count = 0
        self._session_start_time = now
        self._last_user_input = None
        self._persist()

        self.logger.info(
            f"Auto-chat enabled for {agent_name}",
            extra={"document_path": document_path, "template_id": template_id},
        )
        return self._context

    def update_activity(self, user_input: Optional[str] = None) -> bool:
        """Record a conversational turn. Returns False when no session is active."""
        if not self.is_auto_chat_active():
            self.logger.debug("Ignoring activity update, auto-chat is not active")
            return False

        self._context.last_activity = self._clock()
        self._message_count += 1
        if user_input is not None:
            self._last_user_input = user_input
        self._persist()
        return True

    def disable_auto_chat(self) -> None:
        was_active = self._is_active
        self._deactivate()
        if was_active:
            self.logger.info("Auto-chat disabled")

    def cleanup_expired_sessions(self) -> bool:
        """Expire a stale session now. Returns True if one was expired."""
        if self._is_active and self._is_stale():
            self.logger.info(f"Auto-chat session for {self._agent_name()} expired after inactivity")
            self._deactivate()
            return True
        return False

    def set_conversation_session_id(self, session_id: str) -> None:
        if self._is_active and self._context:
            self._context.conversation_session_id = session_id
            self._persist()

    # Queries

    def is_auto_chat_active(self) -> bool:
        """Active and not idle past the timeout; a stale session is expired on the spot."""
        if not self._is_active or self._context is None:
            return False

        if self._is_stale():
            self.logger.info(f"Auto-chat session for {self._agent_name()} timed out")
            self._deactivate()
            return False

        return True

    def get_auto_chat_context(self) -> Optional[AutoChatContext]:
        if not self.is_auto_chat_active():
            return None
        return self._context

    @property
    def message_count(self) -> int:
        return self._message_count

    @property
    def last_user_input(self) -> Optional[str]:
        return self._last_user_input

    def get_session_stats(self) -> Dict[str, Any]:
        active = self.is_auto_chat_active()
        now = self._clock()
        stats: Dict[str, Any] = {
            "is_active": active,
            "agent_name": self._context.agent_name if active else None,
            "document_path": self._context.document_path if active else None,
            "message_count": self._message_count if active else 0,
            "session_duration_seconds": 0.0,
            "idle_seconds": 0.0,
        }
        if active and self._session_start_time:
            stats["session_duration_seconds"] = (now - self._session_start_time).total_seconds()
            stats["idle_seconds"] = (now - self._context.last_activity).total_seconds()
        return stats

    # Internals

    def _agent_name(self) -> str:
        return self._context.agent_name if self._context else "<none>"

    def _is_stale(self) -> bool:
        try:
            return self._clock() - self._context.last_activity > self.timeout
        except TypeError:
            # naive/aware mismatch from a hand-edited snapshot
            self.logger.warning("Auto-chat timestamps are not comparable, treating session as expired")
            return True

    def _deactivate(self) -> None:
        self._is_active = False
        self._context = None
        self._message_count = 0
        self._session_start_time = None
        self._last_user_input = None
        self._persist()

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "is_active": self._is_active,
            "context": self._context.to_dict() if self._context else None,
            "message_count": self._message_count,
            "session_start_time": self._session_start_time.isoformat() if self._session_start_time else None,
            "last_user_input": self._last_user_input,
        }

    def _persist(self) -> None:
        try:
            self.store.set(AUTO_CHAT_STATE_KEY, self._snapshot())
        except StateStoreError as e:
            self.logger.error(f"Failed to persist auto-chat state: {e}")

    def _load_state(self) -> None:
        try:
            data = self.store.get(AUTO_CHAT_STATE_KEY)
        except StateStoreError as e:
            self.logger.error(f"Failed to read auto-chat state: {e}")
            return

        if not data:
            return

        try:
            context_data = data.get("context")
            context = AutoChatContext.from_dict(context_data) if context_data else None
            start = data.get("session_start_time")
            self._session_start_time = datetime.fromisoformat(start) if start else None
            self._message_count = max(0, int(data.get("message_count", 0)))
            self._last_user_input = data.get("last_user_input")
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Discarding unreadable auto-chat state: {e}")
            self._session_start_time = None
            self._message_count = 0
            return

        self._context = context
        # Staleness is judged when the session is queried, not here
        self._is_active = bool(data.get("is_active")) and context is not None
        if self._is_active:
            self.logger.debug(f"Restored auto-chat session for {context.agent_name}")
