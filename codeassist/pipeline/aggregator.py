"""Stream aggregator: folds streamed deltas into two complete strings."""

from __future__ import annotations

from collections.abc import AsyncIterable
from dataclasses import dataclass

from codeassist.pipeline.client import StreamChunk


@dataclass
class AggregatedResult:
    reasoning_content: str = ""
    final_content: str = ""


async def aggregate(chunks: AsyncIterable[StreamChunk]) -> AggregatedResult:
    """Consume ``chunks`` to the end, keeping arrival order in each channel.

    A chunk with reasoning text counts as reasoning only; every other chunk
    contributes its content (possibly empty) to the final answer.
    """
    reasoning: list[str] = []
    final: list[str] = []
    async for chunk in chunks:
        if chunk.reasoning:
            reasoning.append(chunk.reasoning)
        else:
            final.append(chunk.content or "")
    return AggregatedResult(
        reasoning_content="".join(reasoning),
        final_content="".join(final),
    )
