"""Model registry, telemetry, routing and the generation API client.

The public API exports the following:

* ``ModelRouter`` - scores registry models for a task by capability,
  latency and cost and picks the best one.
* ``TelemetryStore`` - bounded log of call outcomes that the router reads
  for observed latencies.
* ``GenerationClient`` - async client for an OpenAI-compatible chat
  completions endpoint that records telemetry for every call.
"""

from .registry import DEFAULT_REGISTRY, ModelDescriptor, TaskType, get_model  # noqa: F401
from .telemetry import CallTelemetry, TelemetryStore, get_default_store  # noqa: F401
from .router import ModelRouter, Priority, RouterConfig, RoutingDecision, select_model  # noqa: F401
from .client import GenerationClient, GenerationResult  # noqa: F401
