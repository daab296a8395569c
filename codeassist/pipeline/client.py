"""Model client: streams a chat completion from the DeepSeek API.

The client yields ``StreamChunk`` objects lazily, one per streamed delta,
until the endpoint closes the stream. Connection failures and non-2xx
answers surface as ``UpstreamError``; nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import openai
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_deepseek import ChatDeepSeek

from codeassist.errors import UpstreamError

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

    from codeassist.config import AppConfig
    from codeassist.pipeline.prompts import PromptMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamChunk:
    """One streamed delta: either reasoning text or answer text."""

    reasoning: str | None = None
    content: str | None = None


class ModelClient(Protocol):
    def stream(self, messages: list[PromptMessage]) -> AsyncIterator[StreamChunk]:
        ...


def _to_langchain(messages: list[PromptMessage]) -> list[BaseMessage]:
    converted: list[BaseMessage] = []
    for m in messages:
        if m.role == "system":
            converted.append(SystemMessage(content=m.content))
        else:
            converted.append(HumanMessage(content=m.content))
    return converted


def _to_chunk(message_chunk) -> StreamChunk:
    """Map a langchain ``AIMessageChunk`` onto a ``StreamChunk``."""
    reasoning = message_chunk.additional_kwargs.get("reasoning_content")
    content = message_chunk.content
    if not isinstance(content, str):
        # Content blocks: keep only their text parts
        content = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return StreamChunk(reasoning=reasoning or None, content=content)


class DeepSeekClient:
    """Streaming chat client for the configured DeepSeek model."""

    def __init__(self, config: AppConfig, llm: BaseChatModel | None = None):
        self._config = config
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        """Create the chat model. The API key is read from the environment."""
        if self._llm is not None:
            return self._llm
        api_key = self._config.api_key()
        if not api_key:
            raise UpstreamError(
                f"{self._config.model.api_key_env} environment variable is not set"
            )
        self._llm = ChatDeepSeek(
            model=self._config.model.name,
            api_key=api_key,
            base_url=self._config.model.base_url,
            streaming=True,
            max_retries=0,
        )
        return self._llm

    async def stream(self, messages: list[PromptMessage]) -> AsyncIterator[StreamChunk]:
        llm = self._get_llm()
        logger.debug(f"Opening stream: model={self._config.model.name}")
        try:
            async for message_chunk in llm.astream(_to_langchain(messages)):
                yield _to_chunk(message_chunk)
        except openai.APIStatusError as e:
            raise UpstreamError(
                f"Model API returned status {e.status_code}: {e.message}"
            ) from e
        except openai.APIError as e:
            raise UpstreamError(f"Model API request failed: {e}") from e
