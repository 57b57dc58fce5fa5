"""
Language model service used by conversational agents.

``generate`` concatenates the streamed chunks of one model call. Every call
gets a fresh cancellation token source which is disposed on all exit paths.
Timeouts cancel the token and surface as ``ModelTimeoutError``; an empty
result is answered with a canned response instead of an error.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .cancellation import CancellationToken, CancellationTokenSource
from .fallback import ResponseSelector, RoundRobinSelector
from .model import LanguageModel
from ..utils.error_handling import ModelTimeoutError, handle_model_operation
from ..utils.logging import get_logger, log_performance

DEFAULT_FALLBACK_RESPONSES = [
    "I couldn't reach the language model just now. Tell me more about what this document should cover.",
    "The model didn't answer. You can keep describing your project and I'll capture it in the document.",
]


@dataclass
class ModelResponse:
    text: str
    finish_reason: str = "stop"
    from_fallback: bool = False


class LanguageModelService:

    def __init__(
        self,
        model: LanguageModel,
        selector: Optional[ResponseSelector] = None,
        fallback_responses: Optional[List[str]] = None,
        default_timeout: Optional[float] = None,
        offline_fallback: bool = True,
    ):
        self.logger = get_logger(__name__)
        self.model = model
        self.selector = selector or RoundRobinSelector()
        self.fallback_responses = list(fallback_responses or DEFAULT_FALLBACK_RESPONSES)
        self.default_timeout = default_timeout
        self.offline_fallback = offline_fallback
        self.last_source: Optional[CancellationTokenSource] = None

    async def generate(
        self,
        prompt: str,
        timeout: Optional[float] = None,
        fallback_responses: Optional[Sequence[str]] = None,
        source: Optional[CancellationTokenSource] = None,
    ) -> ModelResponse:
        """Run one model call.

        Args:
            prompt: Text sent to the model
            timeout: Seconds before the call is cancelled, defaults to ``default_timeout``
            fallback_responses: Canned responses to choose from when the result is empty
            source: Token source to cancel through, created when omitted

        Raises:
            ModelServiceError: The call failed, timed out or was cancelled
        """
        source = source or CancellationTokenSource()
        self.last_source = source
        timeout = timeout if timeout is not None else self.default_timeout

        try:
            with log_performance("language model call"):
                if timeout:
                    text = await asyncio.wait_for(self._collect(prompt, source.token), timeout=timeout)
                else:
                    text = await self._collect(prompt, source.token)
        except asyncio.TimeoutError as e:
            source.cancel()
            raise ModelTimeoutError(
                f"Language model did not answer within {timeout:g}s",
                details={"timeout_seconds": timeout},
            ) from e
        finally:
            source.dispose()

        if text.strip():
            return ModelResponse(text=text)

        self.logger.warning("Language model returned an empty response")
        if not self.offline_fallback:
            return ModelResponse(text="", finish_reason="empty")

        canned = self.selector.select(list(fallback_responses or self.fallback_responses))
        return ModelResponse(text=canned, finish_reason="fallback", from_fallback=True)

    @handle_model_operation("language model call")
    async def _collect(self, prompt: str, token: CancellationToken) -> str:
        chunks = []
        async for chunk in self.model.send(prompt, token):
            chunks.append(chunk)
        return "".join(chunks)
