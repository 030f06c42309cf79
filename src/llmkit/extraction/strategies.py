"""Structured-output strategies used by the chunked extractor.

Two ways of obtaining a :class:`ChunkExtraction` from the model exist:
asking for a JSON-schema constrained object in one buffered call, or
streaming plain text that is expected to contain the JSON object and
validating it once the stream ends.  Both raise
:class:`~llmkit.core.errors.GenerationError` or
:class:`~llmkit.core.errors.ParseError` so the extractor can retry them
the same way.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ..llm.client import GenerationClient, validate_json
from ..utils.logging import get_logger
from .models import ChunkExtraction

logger = get_logger(__name__)

EXTRACTION_SYSTEM_PROMPT = (
    "You extract structured information from documents. "
    "Answer with a single JSON object and nothing else."
)

STREAMING_FORMAT_HINT = """Respond with a JSON object of this exact shape:
{"keyTakeaway": "...", "companies": ["..."], "concepts": {"business": ["..."], "technical": ["..."]}, "quotes": [{"quote": "...", "speaker": "... or null"}], "summary": "..."}"""


class StructuredOutputStrategy(ABC):
    """Turn an extraction prompt into a validated :class:`ChunkExtraction`."""

    name = "base"

    def __init__(self, client: GenerationClient, model: Optional[str] = None) -> None:
        self.client = client
        self.model = model

    @abstractmethod
    async def extract(self, prompt: str) -> ChunkExtraction:
        raise NotImplementedError


class ObjectGenerationStrategy(StructuredOutputStrategy):
    """Buffered call with the payload schema sent as the response format."""

    name = "object"

    async def extract(self, prompt: str) -> ChunkExtraction:
        return await self.client.generate_object(
            prompt,
            ChunkExtraction,
            model=self.model,
            system_prompt=EXTRACTION_SYSTEM_PROMPT,
            task="extraction",
        )


class StreamingJSONStrategy(StructuredOutputStrategy):
    """Stream the answer, then parse and validate the accumulated JSON.

    ``on_delta`` is called with the number of characters received so far,
    which lets a progress display show that a slow chunk is still alive.
    """

    name = "streaming"

    def __init__(
        self,
        client: GenerationClient,
        model: Optional[str] = None,
        on_delta: Optional[Callable[[int], None]] = None,
    ) -> None:
        super().__init__(client, model)
        self.on_delta = on_delta

    async def extract(self, prompt: str) -> ChunkExtraction:
        parts: List[str] = []
        received = 0
        async for delta in self.client.stream_text(
            f"{prompt}\n\n{STREAMING_FORMAT_HINT}",
            model=self.model,
            system_prompt=EXTRACTION_SYSTEM_PROMPT,
            task="extraction",
        ):
            parts.append(delta)
            received += len(delta)
            if self.on_delta is not None:
                self.on_delta(received)
        logger.debug(f"Streamed {received} characters")
        return validate_json("".join(parts), ChunkExtraction)


def build_strategy(
    client: GenerationClient,
    use_streaming: bool = False,
    model: Optional[str] = None,
    on_delta: Optional[Callable[[int], None]] = None,
) -> StructuredOutputStrategy:
    """Pick the strategy matching the ``use_streaming`` flag."""
    if use_streaming:
        return StreamingJSONStrategy(client, model=model, on_delta=on_delta)
    return ObjectGenerationStrategy(client, model=model)
