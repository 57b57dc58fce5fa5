"""Key-value persistence for the auto-chat session snapshot."""

from .state_store import StateStore, MemoryStateStore, JsonFileStateStore, create_state_store

__all__ = ["StateStore", "MemoryStateStore", "JsonFileStateStore", "create_state_store"]
