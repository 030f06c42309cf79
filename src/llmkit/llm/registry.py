"""Static registry of the models the router can choose from.

Each :class:`ModelDescriptor` records pricing, typical latency and a
per-task capability score between 0 and 1.  The registry is defined once
at import time and never mutated; registry order is significant because
the router breaks score ties in favour of the earlier entry.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Literal, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field


class TaskType(str, Enum):
    """Task families a model can be routed for."""

    CLASSIFICATION = "classification"
    SUMMARIZATION = "summarization"
    REASONING = "reasoning"
    EXTRACTION = "extraction"


CapabilityTier = Literal["basic", "standard", "advanced", "reasoning"]


class TaskCapabilities(BaseModel):
    """Per-task capability scores (0 = unusable, 1 = best in class)."""

    model_config = ConfigDict(frozen=True)

    classification: float = Field(..., ge=0.0, le=1.0)
    summarization: float = Field(..., ge=0.0, le=1.0)
    reasoning: float = Field(..., ge=0.0, le=1.0)
    extraction: float = Field(..., ge=0.0, le=1.0)


class ModelDescriptor(BaseModel):
    """Immutable description of a routable model."""

    model_config = ConfigDict(frozen=True)

    provider: str
    model: str
    input_cost_per_1k: float = Field(..., ge=0.0, description="USD per 1k input tokens")
    output_cost_per_1k: float = Field(..., ge=0.0, description="USD per 1k output tokens")
    avg_latency_ms: float = Field(..., ge=0.0)
    capability_tier: CapabilityTier
    supports_streaming: bool = True
    max_tokens: int = Field(128_000, gt=0)
    task_capabilities: TaskCapabilities

    @property
    def full_name(self) -> str:
        """Model id used throughout llmkit, e.g. ``openai/gpt-4o-mini``."""
        return f"{self.provider}/{self.model}"

    def capability_for(self, task: TaskType | str) -> float:
        return getattr(self.task_capabilities, TaskType(task).value)

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens / 1000.0) * self.input_cost_per_1k + (
            output_tokens / 1000.0
        ) * self.output_cost_per_1k


DEFAULT_REGISTRY: Tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        provider="openai",
        model="gpt-5-mini",
        input_cost_per_1k=0.15,
        output_cost_per_1k=0.60,
        avg_latency_ms=500,
        capability_tier="standard",
        supports_streaming=True,
        task_capabilities=TaskCapabilities(
            classification=0.9, summarization=0.85, reasoning=0.6, extraction=0.9
        ),
    ),
    ModelDescriptor(
        provider="openai",
        model="gpt-5",
        input_cost_per_1k=2.50,
        output_cost_per_1k=10.00,
        avg_latency_ms=1500,
        capability_tier="advanced",
        supports_streaming=True,
        task_capabilities=TaskCapabilities(
            classification=0.95, summarization=0.95, reasoning=0.85, extraction=0.95
        ),
    ),
    ModelDescriptor(
        provider="openai",
        model="gpt-5.1-thinking",
        input_cost_per_1k=3.00,
        output_cost_per_1k=12.00,
        # Reasoning models are slower
        avg_latency_ms=5000,
        capability_tier="reasoning",
        supports_streaming=False,
        task_capabilities=TaskCapabilities(
            classification=0.9, summarization=0.85, reasoning=0.98, extraction=0.9
        ),
    ),
    ModelDescriptor(
        provider="openai",
        model="gpt-4o-mini",
        input_cost_per_1k=0.15,
        output_cost_per_1k=0.60,
        avg_latency_ms=400,
        capability_tier="basic",
        supports_streaming=True,
        task_capabilities=TaskCapabilities(
            classification=0.85, summarization=0.8, reasoning=0.5, extraction=0.85
        ),
    ),
)

# Pricing used for models outside the registry
_FALLBACK_MODEL = "openai/gpt-4o-mini"


def get_model(full_name: str, registry: Sequence[ModelDescriptor] = DEFAULT_REGISTRY) -> ModelDescriptor:
    """Look up a descriptor by full name; raises ``KeyError`` when unknown."""
    for descriptor in registry:
        if descriptor.full_name == full_name:
            return descriptor
    raise KeyError(f"Unknown model: {full_name}")


def registry_by_name(registry: Sequence[ModelDescriptor] = DEFAULT_REGISTRY) -> Dict[str, ModelDescriptor]:
    return {descriptor.full_name: descriptor for descriptor in registry}


def estimate_call_cost(
    model_id: str,
    input_tokens: int,
    output_tokens: int,
    registry: Sequence[ModelDescriptor] = DEFAULT_REGISTRY,
) -> float:
    """Estimate the USD cost of a call, pricing unknown models like gpt-4o-mini."""
    try:
        descriptor = get_model(model_id, registry)
    except KeyError:
        descriptor = get_model(_FALLBACK_MODEL, DEFAULT_REGISTRY)
    return descriptor.estimate_cost(input_tokens, output_tokens)
