"""Bounded in-memory log of generation call outcomes.

Callers append one :class:`CallTelemetry` per completed or failed
generation call.  The router reads the log to replace static latency
figures with observed ones, and the stats endpoint aggregates it for
display.  The log keeps at most ``capacity`` entries and evicts the
oldest first, so insertion order always equals arrival order.

A process-wide store is available through :func:`get_default_store` for
the CLI and the web app; everything else takes a store as a constructor
argument so tests can use an isolated instance.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional

from pydantic import Field

from ..config.settings import settings
from ..core.models import CamelModel


class CallTelemetry(CamelModel):
    """Outcome of a single generation call."""

    model: str
    task: str
    latency_ms: float = Field(..., ge=0.0)
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    cost: float = Field(0.0, ge=0.0)
    timestamp: float = Field(default_factory=time.time, description="Unix seconds")
    success: bool = True


class ModelStats(CamelModel):
    """Aggregate view of the recent calls made to one model."""

    model: str
    call_count: int
    avg_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float
    avg_cost: float
    total_cost: float
    success_rate: float


class ModelSummary(CamelModel):
    model: str
    call_count: int
    avg_latency_ms: float
    total_cost: float
    success_rate: float


class TaskSummary(CamelModel):
    task: str
    call_count: int
    model_distribution: Dict[str, int] = Field(default_factory=dict)


class RoutingStats(CamelModel):
    """Payload of the router stats endpoint."""

    total_calls: int
    model_stats: List[ModelSummary] = Field(default_factory=list)
    task_stats: List[TaskSummary] = Field(default_factory=list)
    recent_calls: List[CallTelemetry] = Field(default_factory=list)


class TelemetryStore:
    """FIFO-bounded telemetry log guarded by a lock."""

    def __init__(self, capacity: Optional[int] = None) -> None:
        self.capacity = capacity if capacity is not None else settings.telemetry_capacity
        if self.capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._entries: Deque[CallTelemetry] = deque(maxlen=self.capacity)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entry: CallTelemetry) -> None:
        """Append an entry, evicting the oldest one when full."""
        with self._lock:
            self._entries.append(entry)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> List[CallTelemetry]:
        """All entries in arrival order (oldest first)."""
        with self._lock:
            return list(self._entries)

    def query(self, model: str, limit: int = 100) -> List[CallTelemetry]:
        """Return up to ``limit`` entries for ``model``, most recent first."""
        matching = [entry for entry in self.snapshot() if entry.model == model]
        return list(reversed(matching[-limit:])) if limit > 0 else []

    def recent(self, limit: int = 100) -> List[CallTelemetry]:
        """Return up to ``limit`` entries across all models, most recent first."""
        entries = self.snapshot()
        return list(reversed(entries[-limit:])) if limit > 0 else []

    def stats(self, model: str, limit: int = 100) -> Optional[ModelStats]:
        """Aggregate the last ``limit`` calls of ``model``; ``None`` without data."""
        entries = self.query(model, limit)
        if not entries:
            return None
        latencies = [entry.latency_ms for entry in entries]
        costs = [entry.cost for entry in entries]
        count = len(entries)
        return ModelStats(
            model=model,
            call_count=count,
            avg_latency_ms=sum(latencies) / count,
            min_latency_ms=min(latencies),
            max_latency_ms=max(latencies),
            avg_cost=sum(costs) / count,
            total_cost=sum(costs),
            success_rate=sum(1 for entry in entries if entry.success) / count,
        )

    def routing_stats(self, limit: int = 100, recent_limit: int = 20) -> RoutingStats:
        """Group the last ``limit`` calls by model and by task."""
        entries = self.recent(limit)

        by_model: Dict[str, List[CallTelemetry]] = {}
        by_task: Dict[str, List[CallTelemetry]] = {}
        for entry in entries:
            by_model.setdefault(entry.model, []).append(entry)
            by_task.setdefault(entry.task, []).append(entry)

        model_stats = [
            ModelSummary(
                model=model,
                call_count=len(group),
                avg_latency_ms=sum(e.latency_ms for e in group) / len(group),
                total_cost=sum(e.cost for e in group),
                success_rate=sum(1 for e in group if e.success) / len(group),
            )
            for model, group in by_model.items()
        ]

        task_stats: List[TaskSummary] = []
        for task, group in by_task.items():
            distribution: Dict[str, int] = {}
            for entry in group:
                distribution[entry.model] = distribution.get(entry.model, 0) + 1
            task_stats.append(
                TaskSummary(task=task, call_count=len(group), model_distribution=distribution)
            )

        return RoutingStats(
            total_calls=len(entries),
            model_stats=model_stats,
            task_stats=task_stats,
            recent_calls=entries[:recent_limit],
        )


_default_store: Optional[TelemetryStore] = None
_default_lock = threading.Lock()


def get_default_store() -> TelemetryStore:
    """Return the process-wide store, creating it on first use."""
    global _default_store
    with _default_lock:
        if _default_store is None:
            _default_store = TelemetryStore()
        return _default_store
