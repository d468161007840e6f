# tests/conftest.py — v1
"""Shared test fixtures for all unit tests.

Provides small registries of deterministic predicates and tools, plus
helpers for building specs. No external dependencies: nothing touches
the network, and file I/O stays inside tmp_path.
"""

from __future__ import annotations

from typing import Any

import pytest

from daftflow.core.models import PredicateResult, Spec, Step, ToolOutput, ToolUsage
from daftflow.logging.context import clear_context
from daftflow.pipeline.registry import PredicateRegistry, ToolRegistry


# === HELPERS ===


def _make_step(
    name: str,
    until: str = "alwaysOk",
    max_iter: int = 3,
    tools: list[str] | None = None,
    depends_on: list[str] | None = None,
) -> Step:
    return Step(
        name=name,
        until=until,
        max_iter=max_iter,
        tools=tools or [],
        depends_on=depends_on or [],
    )


def _make_spec(steps: list[Step], initial: Any = None, **budget: Any) -> Spec:
    kwargs: dict[str, Any] = {"steps": steps}
    if initial is not None:
        kwargs["initial"] = initial
    if budget:
        kwargs["budget"] = budget
    return Spec(**kwargs)


# === FIXTURES: Builders ===


@pytest.fixture
def make_step():
    """Factory for Step with test-friendly defaults."""
    return _make_step


@pytest.fixture
def make_spec():
    """Factory for Spec; keyword arguments become the budget."""
    return _make_spec


# === FIXTURES: Registries ===


@pytest.fixture
def predicates() -> PredicateRegistry:
    """Predicates keyed on common fields of the test tools."""
    registry = PredicateRegistry()
    registry.register("alwaysOk", lambda data: PredicateResult(ok=True))
    registry.register(
        "neverOk", lambda data: PredicateResult(ok=False, reason="never satisfied"),
    )
    registry.register(
        "countAtLeast3",
        lambda data: PredicateResult(
            ok=data.get("count", 0) >= 3,
            reason=f"count={data.get('count', 0)}",
        ),
    )
    registry.register("hasDone", lambda data: bool(data.get("done")))
    return registry


@pytest.fixture
def tools() -> ToolRegistry:
    """Deterministic tools: counters, setters and a failing tool."""
    registry = ToolRegistry()

    @registry.tool("increment", "Add one to count")
    async def increment(data: Any) -> ToolOutput:
        return ToolOutput(patch={"count": data.get("count", 0) + 1})

    @registry.tool("markDone")
    async def mark_done(data: Any) -> ToolOutput:
        return ToolOutput(patch={"done": True})

    @registry.tool("costly")
    async def costly(data: Any) -> ToolOutput:
        return ToolOutput(
            patch={"spent": data.get("spent", 0) + 1},
            usage=ToolUsage(tokens=10, cost=0.006),
        )

    @registry.tool("boom")
    async def boom(data: Any) -> ToolOutput:
        raise RuntimeError("tool exploded")

    return registry


@pytest.fixture(autouse=True)
def _reset_log_context():
    yield
    clear_context()
