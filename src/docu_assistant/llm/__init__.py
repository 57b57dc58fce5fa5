"""
Language model access for conversational agents.

    service = LanguageModelService(create_language_model(config.llm))
    response = await service.generate("Summarize the problem statement", timeout=30)
"""

from .cancellation import CancellationToken, CancellationTokenSource
from .fallback import ResponseSelector, RoundRobinSelector, SeededRandomSelector, create_selector
from .model import ChatModelLanguageModel, LanguageModel, create_language_model
from .service import DEFAULT_FALLBACK_RESPONSES, LanguageModelService, ModelResponse

__all__ = [
    "CancellationToken",
    "CancellationTokenSource",
    "ResponseSelector",
    "RoundRobinSelector",
    "SeededRandomSelector",
    "create_selector",
    "ChatModelLanguageModel",
    "LanguageModel",
    "create_language_model",
    "DEFAULT_FALLBACK_RESPONSES",
    "LanguageModelService",
    "ModelResponse",
]
