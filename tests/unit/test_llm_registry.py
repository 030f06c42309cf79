"""Unit tests for the static model registry."""

import pytest
from pydantic import ValidationError

from llmkit.llm.registry import (
    DEFAULT_REGISTRY,
    TaskType,
    estimate_call_cost,
    get_model,
    registry_by_name,
)


class TestModelRegistry:
    """Tests for the default registry contents and lookups."""

    def test_registry_order(self):
        """Registry order is significant for tie-breaking."""
        assert [m.full_name for m in DEFAULT_REGISTRY] == [
            "openai/gpt-5-mini",
            "openai/gpt-5",
            "openai/gpt-5.1-thinking",
            "openai/gpt-4o-mini",
        ]

    def test_capabilities_in_unit_interval(self):
        for model in DEFAULT_REGISTRY:
            for task in TaskType:
                assert 0.0 <= model.capability_for(task) <= 1.0

    def test_capability_accepts_plain_string(self):
        model = get_model("openai/gpt-5.1-thinking")
        assert model.capability_for("reasoning") == pytest.approx(0.98)

    def test_descriptors_are_immutable(self):
        model = get_model("openai/gpt-5")
        with pytest.raises(ValidationError):
            model.avg_latency_ms = 1  # type: ignore[misc]

    def test_unknown_model_raises_key_error(self):
        with pytest.raises(KeyError):
            get_model("openai/does-not-exist")

    def test_registry_by_name(self):
        by_name = registry_by_name()
        assert set(by_name) == {m.full_name for m in DEFAULT_REGISTRY}
        assert by_name["openai/gpt-4o-mini"].capability_tier == "basic"

    def test_estimate_cost(self):
        model = get_model("openai/gpt-5")
        # 1000 in at $2.50/1k plus 500 out at $10/1k
        assert model.estimate_cost(1000, 500) == pytest.approx(7.5)

    def test_call_cost_for_unknown_model_uses_fallback_pricing(self):
        known = estimate_call_cost("openai/gpt-4o-mini", 2000, 1000)
        unknown = estimate_call_cost("acme/mystery", 2000, 1000)
        assert unknown == pytest.approx(known)
        assert known == pytest.approx(0.3 + 0.6)
