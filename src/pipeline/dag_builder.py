# src/pipeline/dag_builder.py — v2
"""DAG builder — order workflow steps so every step follows its dependencies.

Detects cycles, duplicate step names, and references to undefined steps.
Any failure here is fatal for the whole run: no step executes.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field

from daftflow.core.models import Step

logger = logging.getLogger(__name__)


class DAGError(Exception):
    """Raised when DAG construction fails (cycle, missing dep, duplicate)."""


@dataclass
class ExecutionPlan:
    """Topological order of a workflow's steps.

    Ties between ready steps keep declaration order. The orchestrator only
    uses the order to start tasks; each step waits on its own dependencies.
    """

    order: list[str] = field(default_factory=list)

    @property
    def total_steps(self) -> int:
        return len(self.order)


def build_dag(dependency_map: dict[str, list[str]]) -> ExecutionPlan:
    """Topologically sort step names with Kahn's algorithm.

    Args:
        dependency_map: step_name -> list of dependency step names, in
            declaration order.

    Raises:
        DAGError: If a cycle is detected or a dependency is missing.
    """
    for step, deps in dependency_map.items():
        for dep in deps:
            if dep not in dependency_map:
                raise DAGError(
                    f"Step '{step}' depends on '{dep}' which is not defined"
                )

    pending = {step: len(set(deps)) for step, deps in dependency_map.items()}
    dependents: dict[str, list[str]] = {step: [] for step in dependency_map}
    for step, deps in dependency_map.items():
        for dep in set(deps):
            dependents[dep].append(step)

    ready = deque(step for step, count in pending.items() if count == 0)
    order: list[str] = []
    while ready:
        step = ready.popleft()
        order.append(step)
        for dependent in dependents[step]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                ready.append(dependent)

    if len(order) != len(dependency_map):
        remaining = sorted(s for s, count in pending.items() if count > 0)
        raise DAGError(f"Cycle detected involving steps: {remaining}")

    logger.debug("DAG built: %d steps → %s", len(order), order)
    return ExecutionPlan(order=order)


def plan_steps(steps: Sequence[Step]) -> list[Step]:
    """Return ``steps`` reordered topologically.

    Raises:
        DAGError: On duplicate names, unknown dependencies, or cycles.
    """
    by_name: dict[str, Step] = {}
    for step in steps:
        if step.name in by_name:
            raise DAGError(f"Duplicate step name: '{step.name}'")
        by_name[step.name] = step

    plan = build_dag({s.name: list(s.depends_on) for s in steps})
    return [by_name[name] for name in plan.order]
