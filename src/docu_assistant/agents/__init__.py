"""Conversational agent profiles and the agent turn."""

from .registry import AgentProfile, AgentRegistry, ConversationalAgent, builtin_agents

__all__ = ["AgentProfile", "AgentRegistry", "ConversationalAgent", "builtin_agents"]
