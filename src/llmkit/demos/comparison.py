"""Run one prompt against several models and compare latency and cost.

Every call goes through the generation client, so each run leaves a
telemetry entry behind and later routing decisions can use the observed
latencies.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..core.errors import GenerationError, ParseError
from ..llm.client import GenerationClient
from ..utils.logging import get_logger

logger = get_logger(__name__)

COMPLEX_PROBLEM = """
A company has 150 employees. They want to organize them into teams where:
- Each team has between 8-12 people
- No team should have exactly 10 people
- Teams should be as equal in size as possible
How should they organize the teams?
"""

DEFAULT_MODELS = ("openai/gpt-5.1-thinking", "openai/gpt-5-mini")


@dataclass
class ComparisonRun:
    """Outcome of one model on the comparison prompt."""

    model: str
    success: bool
    latency_ms: float
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    text: str = ""
    error: Optional[str] = None

    @property
    def preview(self) -> str:
        return self.text[:200]


async def compare_models(
    client: GenerationClient,
    models: Sequence[str] = DEFAULT_MODELS,
    prompt: str = COMPLEX_PROBLEM,
    task: str = "reasoning",
) -> List[ComparisonRun]:
    """Run ``prompt`` on each model in turn; failures are captured per run."""
    runs: List[ComparisonRun] = []
    for model in models:
        logger.info(f"Testing {model}")
        started = time.perf_counter()
        try:
            result = await client.generate_text(prompt, model=model, task=task)
        except (GenerationError, ParseError) as exc:
            logger.error(f"Error with {model}: {exc}")
            runs.append(
                ComparisonRun(
                    model=model,
                    success=False,
                    latency_ms=(time.perf_counter() - started) * 1000.0,
                    error=str(exc),
                )
            )
            continue
        runs.append(
            ComparisonRun(
                model=model,
                success=True,
                latency_ms=result.latency_ms,
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                cost=result.cost,
                text=result.text,
            )
        )
    return runs
