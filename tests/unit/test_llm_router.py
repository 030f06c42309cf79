"""Unit tests for the model router."""

import itertools

import pytest

from llmkit.core.errors import ConfigValidationError, NoViableModelError
from llmkit.llm.registry import DEFAULT_REGISTRY, ModelDescriptor, TaskCapabilities, TaskType, get_model
from llmkit.llm.router import ModelRouter, Priority, RouterConfig
from llmkit.llm.telemetry import CallTelemetry, TelemetryStore


@pytest.fixture
def store():
    return TelemetryStore(capacity=1000)


@pytest.fixture
def router(store):
    return ModelRouter(telemetry=store, min_telemetry_calls=5)


def record_calls(store, model, latency, count):
    for _ in range(count):
        store.record(CallTelemetry(model=model, task="classification", latency_ms=latency))


class TestRouterConfig:
    """Tests for config validation."""

    def test_mapping_is_validated(self, router):
        selected = router.select_model(
            {"task": "classification", "max_latency_ms": 2000, "priority": "cost"}
        )
        assert selected in {m.full_name for m in DEFAULT_REGISTRY}

    @pytest.mark.parametrize(
        "config",
        [
            {"task": "poetry", "max_latency_ms": 2000, "priority": "cost"},
            {"task": "classification", "max_latency_ms": -1, "priority": "cost"},
            {"task": "classification", "max_latency_ms": 2000, "priority": "cheap"},
            {"task": "classification", "max_latency_ms": 2000},
            {"task": "classification", "max_latency_ms": 2000, "priority": "cost", "estimated_tokens": 0},
        ],
    )
    def test_invalid_config_rejected(self, router, config):
        with pytest.raises(ConfigValidationError):
            router.select_model(config)

    def test_config_error_is_a_value_error(self, router):
        with pytest.raises(ValueError):
            router.select_model({"task": "poetry", "max_latency_ms": 1, "priority": "cost"})

    def test_non_mapping_rejected(self, router):
        with pytest.raises(ConfigValidationError):
            router.select_model(42)  # type: ignore[arg-type]

    def test_output_tokens_default_to_half_of_input(self):
        config = RouterConfig(task=TaskType.SUMMARIZATION, max_latency_ms=1000, priority=Priority.BALANCED)
        assert config.estimated_input_tokens == 1000
        assert config.estimated_output_tokens == 500

        config = RouterConfig(task="summarization", max_latency_ms=1000, priority="balanced", estimated_tokens=333)
        assert config.estimated_output_tokens == 166


class TestModelSelection:
    """Tests for scoring and selection against the default registry."""

    def test_cost_optimized_classification(self, router):
        """gpt-5-mini and gpt-4o-mini cost the same; gpt-5-mini scores higher."""
        config = {"task": "classification", "max_latency_ms": 2000, "priority": "cost"}
        decision = router.route(config)

        assert decision.model == "openai/gpt-5-mini"
        assert not decision.fallback_used
        viable_costs = [s.estimated_cost for s in decision.ranking]
        assert decision.ranking[0].estimated_cost == min(viable_costs)
        # gpt-5.1-thinking is too slow for a 2s bound
        assert "openai/gpt-5.1-thinking" not in [s.model for s in decision.ranking]

    def test_quality_optimized_reasoning(self, router):
        selected = router.select_model({"task": "reasoning", "max_latency_ms": 10000, "priority": "quality"})
        assert selected == "openai/gpt-5.1-thinking"

    def test_fast_extraction(self, router):
        selected = router.select_model({"task": "extraction", "max_latency_ms": 1000, "priority": "balanced"})
        assert selected == "openai/gpt-4o-mini"

    def test_score_breakdown(self, router):
        config = RouterConfig(task="classification", max_latency_ms=2000, priority="cost")
        score = router.score_model(get_model("openai/gpt-4o-mini"), config)

        assert score.capability_score == pytest.approx(0.85)
        assert score.latency_score == pytest.approx(0.8)
        assert score.estimated_cost == pytest.approx(0.45)
        assert score.cost_score == pytest.approx(1 / 46)
        assert score.total == pytest.approx(0.85 * 0.3 + 0.8 * 0.2 + (1 / 46) * 0.5)

    def test_zero_latency_bound(self, store):
        instant = ModelDescriptor(
            provider="local",
            model="instant",
            input_cost_per_1k=0,
            output_cost_per_1k=0,
            avg_latency_ms=0,
            capability_tier="basic",
            task_capabilities=TaskCapabilities(
                classification=0.1, summarization=0.1, reasoning=0.1, extraction=0.1
            ),
        )
        router = ModelRouter(registry=[*DEFAULT_REGISTRY, instant], telemetry=store)
        decision = router.route({"task": "classification", "max_latency_ms": 0, "priority": "cost"})

        assert decision.model == "local/instant"
        assert decision.ranking[0].latency_score == 1.0

    def test_deterministic(self, router, store):
        record_calls(store, "openai/gpt-5", 900.0, 10)
        config = {"task": "summarization", "max_latency_ms": 3000, "priority": "balanced"}
        first = router.select_model(config)
        assert all(router.select_model(config) == first for _ in range(20))

    def test_ties_keep_registry_order(self, store):
        twin = dict(
            input_cost_per_1k=1.0,
            output_cost_per_1k=1.0,
            avg_latency_ms=100,
            capability_tier="standard",
            task_capabilities=TaskCapabilities(
                classification=0.5, summarization=0.5, reasoning=0.5, extraction=0.5
            ),
        )
        registry = [
            ModelDescriptor(provider="p", model="first", **twin),
            ModelDescriptor(provider="p", model="second", **twin),
        ]
        router = ModelRouter(registry=registry, telemetry=store)
        assert router.select_model({"task": "reasoning", "max_latency_ms": 500, "priority": "cost"}) == "p/first"
        router = ModelRouter(registry=list(reversed(registry)), telemetry=store)
        assert router.select_model({"task": "reasoning", "max_latency_ms": 500, "priority": "cost"}) == "p/second"

    @pytest.mark.parametrize(
        "task,max_latency",
        list(itertools.product(list(TaskType), [600, 1000, 2000, 6000, 10000])),
    )
    def test_cost_priority_prefers_cheapest_comparable_model(self, router, task, max_latency):
        """No viable model within 0.05 capability of the winner is cheaper."""
        config = RouterConfig(task=task, max_latency_ms=max_latency, priority="cost")
        ranking = router.rank(config)
        winner = ranking[0]
        for other in ranking[1:]:
            if abs(other.capability_score - winner.capability_score) <= 0.05:
                assert winner.estimated_cost <= other.estimated_cost


class TestLatencyFallback:
    """Tests for the empty viable set."""

    def test_falls_back_to_fastest_model(self, router, caplog):
        decision = router.route({"task": "reasoning", "max_latency_ms": 100, "priority": "quality"})

        assert decision.model == "openai/gpt-4o-mini"
        assert decision.fallback_used
        assert decision.ranking == []
        assert "No model meets latency requirement" in caplog.text

    def test_strict_mode_raises(self, store):
        router = ModelRouter(telemetry=store, strict_latency=True)
        with pytest.raises(NoViableModelError):
            router.select_model({"task": "reasoning", "max_latency_ms": 100, "priority": "quality"})

    def test_fastest_model_uses_registry_order_on_ties(self, store):
        caps = TaskCapabilities(classification=0.5, summarization=0.5, reasoning=0.5, extraction=0.5)
        registry = [
            ModelDescriptor(provider="p", model=name, input_cost_per_1k=1, output_cost_per_1k=1,
                            avg_latency_ms=300, capability_tier="basic", task_capabilities=caps)
            for name in ("a", "b")
        ]
        router = ModelRouter(registry=registry, telemetry=store)
        assert router.select_model({"task": "reasoning", "max_latency_ms": 10, "priority": "cost"}) == "p/a"


class TestTelemetryAwareRouting:
    """Tests for observed latencies replacing static ones."""

    def test_observed_latency_used_after_enough_calls(self, router, store):
        config = {"task": "classification", "max_latency_ms": 2000, "priority": "cost"}
        record_calls(store, "openai/gpt-5-mini", 2500.0, 6)

        assert router.effective_latency(get_model("openai/gpt-5-mini")) == pytest.approx(2500.0)
        assert router.select_model(config) == "openai/gpt-4o-mini"

    def test_static_latency_until_threshold_exceeded(self, router, store):
        config = {"task": "classification", "max_latency_ms": 2000, "priority": "cost"}
        record_calls(store, "openai/gpt-5-mini", 2500.0, 5)

        assert router.effective_latency(get_model("openai/gpt-5-mini")) == 500
        assert router.select_model(config) == "openai/gpt-5-mini"

    def test_router_does_not_write_telemetry(self, router, store):
        router.select_model({"task": "extraction", "max_latency_ms": 2000, "priority": "quality"})
        assert len(store) == 0

    def test_fast_observed_latency_makes_model_viable(self, router, store):
        record_calls(store, "openai/gpt-5.1-thinking", 800.0, 6)
        selected = router.select_model({"task": "reasoning", "max_latency_ms": 1000, "priority": "quality"})
        assert selected == "openai/gpt-5.1-thinking"
