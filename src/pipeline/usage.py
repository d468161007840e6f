# src/pipeline/usage.py — v1
"""Usage accumulators — one per step plus one shared by the whole run.

The run-level tracker receives deltas from every concurrently running step,
so all mutation goes through a lock.
"""

from __future__ import annotations

import threading

from daftflow.core.models import ToolUsage, Usage


class UsageTracker:
    """Monotonic running totals of tokens, cost and tool duration."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens = 0
        self._cost = 0.0
        self._duration_ms = 0.0

    def add(self, tokens: int = 0, cost: float = 0.0, duration_ms: float = 0.0) -> None:
        if tokens < 0 or cost < 0 or duration_ms < 0:
            raise ValueError("Usage deltas must be non-negative")
        with self._lock:
            self._tokens += tokens
            self._cost += cost
            self._duration_ms += duration_ms

    def add_tool_usage(self, usage: ToolUsage | None) -> None:
        if usage is None:
            return
        self.add(
            tokens=usage.tokens or 0,
            cost=usage.cost or 0.0,
            duration_ms=usage.duration_ms or 0.0,
        )

    @property
    def tokens(self) -> int:
        return self._tokens

    @property
    def cost(self) -> float:
        return self._cost

    def snapshot(self, duration_ms: float | None = None) -> Usage:
        """Immutable copy; ``duration_ms`` overrides the summed tool durations."""
        with self._lock:
            return Usage(
                tokens=self._tokens,
                cost=self._cost,
                duration_ms=self._duration_ms if duration_ms is None else duration_ms,
            )
