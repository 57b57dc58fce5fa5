"""
Tests for the auto-chat session state machine and its persistence.
"""

import json

import pytest

from docu_assistant.core.auto_chat import AUTO_CHAT_STATE_KEY, AutoChatStateManager
from docu_assistant.storage.state_store import JsonFileStateStore, MemoryStateStore
from docu_assistant.utils.error_handling import StateStoreError, ValidationError


@pytest.fixture
def manager(memory_store, clock):
    return AutoChatStateManager(memory_store, clock=clock)


class TestTransitions:

    def test_starts_inactive(self, manager):
        assert manager.is_auto_chat_active() is False
        assert manager.get_auto_chat_context() is None
        assert manager.message_count == 0

    def test_enable(self, manager, clock):
        context = manager.enable_auto_chat("prd-creator", document_path="docs/prd.md", template_id="prd")

        assert manager.is_auto_chat_active() is True
        assert context.agent_name == "prd-creator"
        assert context.enabled_at == clock.now
        assert context.last_activity == clock.now
        assert manager.get_auto_chat_context() is context

    def test_enable_requires_agent_name(self, manager):
        with pytest.raises(ValidationError):
            manager.enable_auto_chat("")

    def test_switching_agents_keeps_one_session(self, manager, memory_store):
        """Enabling B while A is active replaces A."""
        manager.enable_auto_chat("prd-creator", document_path="a.md")
        manager.update_activity("hello")

        manager.enable_auto_chat("solution-architect", document_path="b.md")

        context = manager.get_auto_chat_context()
        assert context.agent_name == "solution-architect"
        assert context.document_path == "b.md"
        assert manager.message_count == 0
        assert memory_store.get(AUTO_CHAT_STATE_KEY)["context"]["agent_name"] == "solution-architect"

    def test_update_activity(self, manager, clock):
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=5)

        assert manager.update_activity("what about goals?") is True

        assert manager.message_count == 1
        assert manager.last_user_input == "what about goals?"
        assert manager.get_auto_chat_context().last_activity == clock.now

    def test_update_activity_while_inactive(self, manager, memory_store):
        assert manager.update_activity("hi") is False
        assert manager.message_count == 0
        assert memory_store.get(AUTO_CHAT_STATE_KEY) is None

    def test_disable(self, manager):
        manager.enable_auto_chat("prd-creator")

        manager.disable_auto_chat()

        assert manager.is_auto_chat_active() is False
        assert manager.get_session_stats()["is_active"] is False

    def test_set_conversation_session_id(self, manager):
        manager.enable_auto_chat("prd-creator")
        manager.set_conversation_session_id("abc")

        assert manager.get_auto_chat_context().conversation_session_id == "abc"


class TestExpiry:

    def test_29_minutes_idle_is_active(self, manager, clock):
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=29)

        assert manager.is_auto_chat_active() is True

    def test_31_minutes_idle_is_expired(self, manager, clock, memory_store):
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=31)

        assert manager.is_auto_chat_active() is False
        assert memory_store.get(AUTO_CHAT_STATE_KEY)["is_active"] is False

    def test_exactly_at_timeout_is_active(self, manager, clock):
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=30)

        assert manager.is_auto_chat_active() is True

    def test_activity_refreshes_the_window(self, manager, clock):
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=20)
        manager.update_activity()
        clock.advance(minutes=20)

        assert manager.is_auto_chat_active() is True

    def test_expired_session_rejects_activity(self, manager, clock):
        manager.enable_auto_chat("prd-creator")
        clock.advance(hours=1)

        assert manager.update_activity() is False

    def test_cleanup_expired_sessions(self, manager, clock):
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=31)

        assert manager.cleanup_expired_sessions() is True
        assert manager.cleanup_expired_sessions() is False

    def test_cleanup_leaves_fresh_session(self, manager, clock):
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=10)

        assert manager.cleanup_expired_sessions() is False
        assert manager.is_auto_chat_active() is True

    def test_custom_timeout(self, memory_store, clock):
        manager = AutoChatStateManager(memory_store, timeout_minutes=5, clock=clock)
        manager.enable_auto_chat("prd-creator")
        clock.advance(minutes=6)

        assert manager.is_auto_chat_active() is False


class TestPersistence:

    def test_restart_restores_session(self, memory_store, clock):
        first = AutoChatStateManager(memory_store, clock=clock)
        first.enable_auto_chat("prd-creator", document_path="docs/prd.md", template_id="prd")
        first.update_activity("hi")

        second = AutoChatStateManager(memory_store, clock=clock)

        assert second.is_auto_chat_active() is True
        assert second.message_count == 1
        assert second.get_auto_chat_context().document_path == "docs/prd.md"

    def test_stale_snapshot_is_inactive_on_query(self, memory_store, clock):
        first = AutoChatStateManager(memory_store, clock=clock)
        first.enable_auto_chat("prd-creator")
        clock.advance(minutes=45)

        second = AutoChatStateManager(memory_store, clock=clock)

        assert memory_store.get(AUTO_CHAT_STATE_KEY)["is_active"] is True
        assert second.is_auto_chat_active() is False
        assert memory_store.get(AUTO_CHAT_STATE_KEY)["is_active"] is False

    def test_json_file_round_trip(self, tmp_path, clock):
        path = tmp_path / "state.json"
        AutoChatStateManager(JsonFileStateStore(path), clock=clock).enable_auto_chat("brainstormer")

        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved[AUTO_CHAT_STATE_KEY]["context"]["agent_name"] == "brainstormer"

        restored = AutoChatStateManager(JsonFileStateStore(path), clock=clock)
        assert restored.get_auto_chat_context().agent_name == "brainstormer"

    def test_unreadable_snapshot_is_discarded(self, clock):
        store = MemoryStateStore({AUTO_CHAT_STATE_KEY: {"is_active": True, "context": {"agent_name": "x"}}})

        manager = AutoChatStateManager(store, clock=clock)

        assert manager.is_auto_chat_active() is False

    def test_store_failures_are_logged_not_raised(self, clock):
        class BrokenStore(MemoryStateStore):
            def set(self, key, value):
                raise StateStoreError("read-only")

        manager = AutoChatStateManager(BrokenStore(), clock=clock)
        manager.enable_auto_chat("prd-creator")

        assert manager.is_auto_chat_active() is True


class TestSessionStats:

    def test_stats_for_active_session(self, manager, clock):
        manager.enable_auto_chat("prd-creator", document_path="docs/prd.md")
        clock.advance(minutes=2)
        manager.update_activity()
        clock.advance(seconds=30)

        stats = manager.get_session_stats()

        assert stats["is_active"] is True
        assert stats["agent_name"] == "prd-creator"
        assert stats["message_count"] == 1
        assert stats["session_duration_seconds"] == 150.0
        assert stats["idle_seconds"] == 30.0
