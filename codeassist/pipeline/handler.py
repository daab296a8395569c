"""Request handler: runs one /api/process request through the pipeline.

    Received -> PromptBuilt -> Streaming -> Aggregated -> Formatted
             -> Recorded -> Responded

Any exception moves the request to Failed: it propagates to the route,
and nothing is formatted or recorded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from codeassist.errors import CodeAssistError, InternalError, UpstreamError
from codeassist.pipeline.actions import Action
from codeassist.pipeline.aggregator import AggregatedResult, aggregate
from codeassist.pipeline.formatter import format_response
from codeassist.pipeline.prompts import build_messages
from codeassist.schemas import HistoryEntry

if TYPE_CHECKING:
    from codeassist.history import HistoryStore
    from codeassist.pipeline.client import ModelClient
    from codeassist.pipeline.prompts import PromptMessage
    from codeassist.schemas import ProcessRequest

logger = logging.getLogger(__name__)


class ProcessHandler:
    def __init__(
        self,
        client: ModelClient,
        history: HistoryStore,
        locale: str = "Chinese",
        timeout: float | None = None,
    ):
        self.client = client
        self.history = history
        self.locale = locale
        self.timeout = timeout

    async def _stream(self, messages: list[PromptMessage]) -> AggregatedResult:
        try:
            return await asyncio.wait_for(
                aggregate(self.client.stream(messages)), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise UpstreamError(f"Model stream did not finish within {self.timeout}s") from e

    async def process(self, request: ProcessRequest) -> str:
        """Return the formatted answer for ``request`` and record it in history."""
        try:
            action = Action.parse(request.action)
            messages = build_messages(
                action,
                request.code,
                request.language,
                request.description,
                locale=self.locale,
            )
            logger.debug(f"Prompt built: action={action.value}")

            result = await self._stream(messages)
            logger.debug(
                f"Stream aggregated: reasoning={len(result.reasoning_content)} chars, "
                f"answer={len(result.final_content)} chars"
            )

            formatted = format_response(action, result.final_content)

            await self.history.append(
                request.username,
                HistoryEntry(code=request.code, action=request.action),
            )
            logger.debug(f"History recorded for '{request.username}'")
            return formatted
        except CodeAssistError:
            raise
        except Exception as e:
            raise InternalError(f"Unexpected error while processing request: {e}") from e
