"""Model routing by weighted task, latency and cost scores.

This module defines a ``ModelRouter`` that chooses a model from a static
registry for a declared task.  Each viable model receives three
normalised scores:

* ``capability`` - the registry's task-specific capability value;
* ``latency`` - ``max(0, 1 - effective_latency / max_latency_ms)``;
* ``cost`` - ``1 / (1 + estimated_cost * 100)``.

The scores are combined with weights that depend on the requested
priority (``cost``, ``quality`` or ``balanced``) and the highest total
wins.  Effective latency comes from the telemetry log once a model has
enough recorded calls and from the registry otherwise, so routing adapts
to how models actually behave.

When no model satisfies the latency bound the router degrades the
requirement and returns the fastest model, logging a warning.  Callers
that prefer an explicit failure construct the router with
``strict_latency=True`` and receive :class:`NoViableModelError`; callers
that want to know whether the bound was honoured use :meth:`ModelRouter.route`
and inspect ``fallback_used``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config.settings import settings
from ..core.errors import ConfigValidationError, NoViableModelError
from ..utils.logging import get_logger
from .registry import DEFAULT_REGISTRY, ModelDescriptor, TaskType
from .telemetry import TelemetryStore, get_default_store


logger = get_logger(__name__)

DEFAULT_ESTIMATED_TOKENS = 1000
OUTPUT_TOKEN_RATIO = 0.5


class Priority(str, Enum):
    """What the caller cares about most."""

    COST = "cost"
    QUALITY = "quality"
    BALANCED = "balanced"


@dataclass(frozen=True)
class ScoreWeights:
    capability: float
    latency: float
    cost: float


PRIORITY_WEIGHTS: Dict[Priority, ScoreWeights] = {
    Priority.COST: ScoreWeights(capability=0.3, latency=0.2, cost=0.5),
    Priority.QUALITY: ScoreWeights(capability=0.6, latency=0.2, cost=0.2),
    Priority.BALANCED: ScoreWeights(capability=0.4, latency=0.3, cost=0.3),
}


class RouterConfig(BaseModel):
    """One routing request."""

    model_config = ConfigDict(frozen=True)

    task: TaskType
    max_latency_ms: float = Field(..., ge=0)
    priority: Priority
    estimated_tokens: Optional[int] = Field(None, gt=0, description="Estimated input tokens")

    @property
    def estimated_input_tokens(self) -> int:
        return self.estimated_tokens or DEFAULT_ESTIMATED_TOKENS

    @property
    def estimated_output_tokens(self) -> int:
        return int(self.estimated_input_tokens * OUTPUT_TOKEN_RATIO)


@dataclass(frozen=True)
class ModelScore:
    """Score breakdown for one model under one config."""

    model: str
    capability_score: float
    latency_score: float
    cost_score: float
    estimated_cost: float
    effective_latency_ms: float
    total: float


@dataclass(frozen=True)
class RoutingDecision:
    """Result of :meth:`ModelRouter.route`."""

    model: str
    config: RouterConfig
    fallback_used: bool = False
    ranking: List[ModelScore] = field(default_factory=list)


class ModelRouter:
    """Select the best registry model for a task configuration.

    The router is a pure function of its explicit inputs plus the
    telemetry log it reads; it never writes to the log.
    """

    def __init__(
        self,
        registry: Sequence[ModelDescriptor] = DEFAULT_REGISTRY,
        telemetry: Optional[TelemetryStore] = None,
        *,
        min_telemetry_calls: Optional[int] = None,
        strict_latency: bool = False,
    ) -> None:
        """Create a new ``ModelRouter``.

        Parameters
        ----------
        registry:
            Ordered model descriptors.  Order breaks score ties.
        telemetry:
            Store consulted for observed latencies.  If ``None`` the
            process-wide store from :func:`get_default_store` is used.
        min_telemetry_calls:
            A model's observed mean latency is used once it has *more*
            than this many recorded calls.  If ``None``,
            ``settings.telemetry_min_calls`` is used.
        strict_latency:
            Raise :class:`NoViableModelError` instead of falling back to
            the fastest model when nothing meets the latency bound.
        """
        if not registry:
            raise ValueError("registry must contain at least one model")
        self.registry = tuple(registry)
        self.telemetry = telemetry if telemetry is not None else get_default_store()
        self.min_telemetry_calls = (
            min_telemetry_calls if min_telemetry_calls is not None else settings.telemetry_min_calls
        )
        self.strict_latency = strict_latency

    # ------------------------------------------------------------------
    # Public API
    def select_model(self, config: Union[RouterConfig, Mapping[str, Any]]) -> str:
        """Return the full name of the best model for ``config``."""
        return self.route(config).model

    def route(self, config: Union[RouterConfig, Mapping[str, Any]]) -> RoutingDecision:
        """Validate ``config``, score the viable models and pick the best.

        Raises
        ------
        ConfigValidationError
            If ``config`` is a mapping that does not validate.
        NoViableModelError
            If no model meets the latency bound and ``strict_latency`` is set.
        """
        validated = self.validate_config(config)
        ranking = self.rank(validated)
        if ranking:
            return RoutingDecision(model=ranking[0].model, config=validated, ranking=ranking)

        if self.strict_latency:
            raise NoViableModelError(
                f"No model meets latency requirement ({validated.max_latency_ms:g}ms)"
            )
        fastest = self.fastest_model()
        logger.warning(
            f"No model meets latency requirement ({validated.max_latency_ms:g}ms). "
            f"Using fastest available: {fastest.full_name}"
        )
        return RoutingDecision(model=fastest.full_name, config=validated, fallback_used=True)

    def rank(self, config: RouterConfig) -> List[ModelScore]:
        """Score every viable model, best first; ties keep registry order."""
        viable = [
            model
            for model in self.registry
            if self.effective_latency(model) <= config.max_latency_ms
        ]
        scored = [self.score_model(model, config) for model in viable]
        # sorted() is stable, so equal totals stay in registry order
        return sorted(scored, key=lambda score: score.total, reverse=True)

    def score_model(self, model: ModelDescriptor, config: RouterConfig) -> ModelScore:
        latency = self.effective_latency(model)
        cost = model.estimate_cost(config.estimated_input_tokens, config.estimated_output_tokens)

        capability_score = model.capability_for(config.task)
        if config.max_latency_ms > 0:
            latency_score = max(0.0, 1.0 - latency / config.max_latency_ms)
        else:
            latency_score = 1.0 if latency == 0 else 0.0
        cost_score = 1.0 / (1.0 + cost * 100.0)

        weights = PRIORITY_WEIGHTS[config.priority]
        total = (
            capability_score * weights.capability
            + latency_score * weights.latency
            + cost_score * weights.cost
        )
        return ModelScore(
            model=model.full_name,
            capability_score=capability_score,
            latency_score=latency_score,
            cost_score=cost_score,
            estimated_cost=cost,
            effective_latency_ms=latency,
            total=total,
        )

    def effective_latency(self, model: ModelDescriptor) -> float:
        """Observed mean latency when there is enough telemetry, else the static value."""
        stats = self.telemetry.stats(model.full_name)
        if stats is not None and stats.call_count > self.min_telemetry_calls:
            return stats.avg_latency_ms
        return model.avg_latency_ms

    def fastest_model(self) -> ModelDescriptor:
        fastest = self.registry[0]
        for model in self.registry[1:]:
            if self.effective_latency(model) < self.effective_latency(fastest):
                fastest = model
        return fastest

    @staticmethod
    def validate_config(config: Union[RouterConfig, Mapping[str, Any]]) -> RouterConfig:
        if isinstance(config, RouterConfig):
            return config
        try:
            return RouterConfig.model_validate(dict(config))
        except (ValidationError, TypeError) as exc:
            raise ConfigValidationError(f"Invalid router config: {exc}") from exc


def select_model(
    config: Union[RouterConfig, Mapping[str, Any]],
    telemetry: Optional[TelemetryStore] = None,
) -> str:
    """Convenience wrapper around ``ModelRouter(...).select_model``."""
    return ModelRouter(telemetry=telemetry).select_model(config)
