"""Docu Assistant - slash-command document authoring with conversational agents."""

__version__ = "0.1.0"
