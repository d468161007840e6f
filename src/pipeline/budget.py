# src/pipeline/budget.py — v1
"""Budget monitor — enforce run-wide time, token and cost ceilings.

Checked after every tool invocation. Each configured dimension is checked
independently; reaching a ceiling exactly is allowed, exceeding it is not.
"""

from __future__ import annotations

import logging

from daftflow.core.models import Budget, Usage

logger = logging.getLogger(__name__)


class BudgetExceededError(Exception):
    """A budget dimension was strictly exceeded. Always fatal for the step."""

    def __init__(self, dimension: str, limit: float, actual: float) -> None:
        self.dimension = dimension
        self.limit = limit
        self.actual = actual
        self.overshoot = actual - limit
        super().__init__(
            f"Budget exceeded: {dimension} {_fmt(dimension, actual)} > "
            f"limit {_fmt(dimension, limit)} (over by {_fmt(dimension, self.overshoot)})"
        )


def _fmt(dimension: str, value: float) -> str:
    if dimension == "time":
        return f"{value:.0f}ms"
    if dimension == "tokens":
        return f"{int(value)}"
    return f"{value:.6g}"


def check_budget(budget: Budget | None, usage: Usage, elapsed_ms: float) -> None:
    """Raise BudgetExceededError if any configured ceiling is exceeded.

    Args:
        budget: Ceilings for the run (None = unbounded).
        usage: Current run-wide usage snapshot.
        elapsed_ms: Wall-clock milliseconds since the run started.
    """
    if budget is None:
        return

    if budget.max_time is not None and elapsed_ms > budget.max_time:
        raise BudgetExceededError("time", budget.max_time, elapsed_ms)

    if budget.max_tokens is not None and usage.tokens > budget.max_tokens:
        raise BudgetExceededError("tokens", budget.max_tokens, usage.tokens)

    if budget.max_cost is not None and usage.cost > budget.max_cost:
        raise BudgetExceededError("cost", budget.max_cost, usage.cost)
