"""
Language model collaborator.

``LanguageModel.send`` streams text chunks for a prompt and honors a
cancellation token between chunks. ``ChatModelLanguageModel`` adapts any
langchain-core chat model; ``create_language_model`` builds the configured one.
"""

from typing import Any, AsyncIterator, Protocol

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import HumanMessage

from .cancellation import CancellationToken
from ..config.models import LLMConfig, Provider
from ..utils.error_handling import ConfigurationError, ModelCancelledError
from ..utils.logging import get_logger


class LanguageModel(Protocol):
    def send(self, prompt: str, token: CancellationToken) -> AsyncIterator[str]: ...


def _chunk_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return ""


class ChatModelLanguageModel:
    """Streams a single-turn prompt through a langchain-core chat model."""

    def __init__(self, chat_model: BaseChatModel, name: str = ""):
        self.logger = get_logger(__name__)
        self.chat_model = chat_model
        self.name = name or type(chat_model).__name__

    async def send(self, prompt: str, token: CancellationToken) -> AsyncIterator[str]:
        if token.is_cancellation_requested:
            raise ModelCancelledError(f"{self.name} call cancelled before start")

        async for chunk in self.chat_model.astream([HumanMessage(content=prompt)]):
            if token.is_cancellation_requested:
                raise ModelCancelledError(f"{self.name} call cancelled")
            text = _chunk_text(getattr(chunk, "content", ""))
            if text:
                yield text


def create_language_model(config: LLMConfig) -> ChatModelLanguageModel:
    """Build the chat model named by ``config.provider``."""
    logger = get_logger(__name__)

    if config.provider == Provider.FAKE:
        logger.debug(f"Using fake chat model with {len(config.fake_responses)} response(s)")
        return ChatModelLanguageModel(FakeListChatModel(responses=list(config.fake_responses)), name="fake")

    if config.provider == Provider.OLLAMA:
        from langchain_community.chat_models import ChatOllama

        logger.debug(f"Using Ollama model {config.model} at {config.base_url}")
        chat_model = ChatOllama(
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
        )
        return ChatModelLanguageModel(chat_model, name=f"ollama:{config.model}")

    raise ConfigurationError(f"Unsupported model provider: {config.provider}")
