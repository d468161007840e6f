# src/pipeline/step_runner.py — v1
"""Step runner — drive the iterate / apply / test loop for a single step.

Per iteration, every tool of the step runs in declared order, each one fed
the working data as left by the previous tool. The predicate is tested
before the first iteration and after every iteration, so a step whose
starting data already satisfies it runs zero iterations.

Iteration counting: an iteration is counted as soon as its tool batch
starts, including a batch aborted by a tool error or budget breach.

Tool errors, malformed tool output, predicate errors and budget breaches
end the step as a failure; the working data accumulated so far is still
returned so dependents and the final result can observe partial progress.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from daftflow.core.models import Budget, PredicateResult, Step, StepResult, ToolOutput
from daftflow.logging.context import set_step_context
from daftflow.pipeline.budget import BudgetExceededError, check_budget
from daftflow.pipeline.governor import ConcurrencyGovernor
from daftflow.pipeline.registry import (
    PredicateFunction,
    PredicateRegistry,
    RegistryError,
    Tool,
    ToolRegistry,
)
from daftflow.pipeline.state import merge_data
from daftflow.pipeline.usage import UsageTracker

logger = logging.getLogger(__name__)


class ToolExecutionError(Exception):
    """A tool raised, or returned something that is not a ToolOutput."""

    def __init__(self, tool: str, cause: Exception | str) -> None:
        self.tool = tool
        self.cause = cause
        super().__init__(f"Tool '{tool}' failed: {cause}")


class PredicateEvaluationError(Exception):
    """A predicate raised, or returned something that is not a result."""

    def __init__(self, predicate: str, cause: Exception | str) -> None:
        self.predicate = predicate
        self.cause = cause
        super().__init__(f"Predicate '{predicate}' failed: {cause}")


@dataclass(frozen=True)
class StepOutcome:
    """StepResult plus the step's final working data (published for dependents)."""

    result: StepResult
    data: Any


class StepRunner:
    """Execute steps of one run against shared registries, governor and budget.

    Args:
        predicates: Predicate registry.
        tools: Tool registry.
        governor: Concurrency governor shared by every step of the run.
        global_usage: Run-wide usage accumulator.
        budget: Run budget (None = unbounded).
        started_at: ``time.monotonic()`` at run start, for the time budget.
    """

    def __init__(
        self,
        predicates: PredicateRegistry,
        tools: ToolRegistry,
        governor: ConcurrencyGovernor,
        global_usage: UsageTracker,
        budget: Budget | None = None,
        started_at: float | None = None,
    ) -> None:
        self._predicates = predicates
        self._tools = tools
        self._governor = governor
        self._global_usage = global_usage
        self._budget = budget
        self._started_at = time.monotonic() if started_at is None else started_at

    async def run(self, step: Step, start_data: Any) -> StepOutcome:
        """Run ``step`` from ``start_data`` until it settles."""
        set_step_context(step.name)
        progress = _StepProgress(data=start_data)

        try:
            predicate = self._predicates.get_or_raise(step.until)
            tools = [self._tools.get_or_raise(name) for name in step.tools]
        except RegistryError as exc:
            logger.error("Step '%s' misconfigured: %s", step.name, exc)
            return progress.settle(step, str(exc))

        try:
            check = self._evaluate(step, predicate, progress.data)
            while not check.ok and progress.iterations < step.max_iter:
                async with self._governor.slot():
                    # Another step may already have exhausted the budget
                    self._check_budget()
                    progress.iterations += 1
                    logger.debug(
                        "Step '%s' iteration %d/%d: %s",
                        step.name, progress.iterations, step.max_iter,
                        check.reason or "predicate not satisfied",
                    )
                    for tool in tools:
                        progress.tool_calls += 1
                        output = await self._invoke(tool, progress.data)
                        progress.data = merge_data(progress.data, output.patch)
                        progress.usage.add_tool_usage(output.usage)
                        self._global_usage.add_tool_usage(output.usage)
                        self._check_budget()
                check = self._evaluate(step, predicate, progress.data)
        except (ToolExecutionError, PredicateEvaluationError, BudgetExceededError) as exc:
            logger.warning(
                "Step '%s' aborted at iteration %d: %s",
                step.name, progress.iterations, exc,
            )
            return progress.settle(step, str(exc))

        if check.ok:
            return progress.settle(step)

        reason = check.reason or (
            f"Predicate '{step.until}' not satisfied after "
            f"{progress.iterations} iterations"
        )
        logger.info(
            "Step '%s' not satisfied after %d iterations: %s",
            step.name, progress.iterations, reason,
        )
        return progress.settle(step, reason)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_budget(self) -> None:
        elapsed_ms = (time.monotonic() - self._started_at) * 1000.0
        check_budget(self._budget, self._global_usage.snapshot(), elapsed_ms)

    @staticmethod
    def _evaluate(step: Step, predicate: PredicateFunction, data: Any) -> PredicateResult:
        try:
            outcome = predicate(data)
        except Exception as exc:
            raise PredicateEvaluationError(step.until, exc) from exc
        return _coerce_predicate_result(step.until, outcome)

    @staticmethod
    async def _invoke(tool: Tool, data: Any) -> ToolOutput:
        try:
            raw = await tool.run(data)
        except Exception as exc:
            raise ToolExecutionError(tool.name, exc) from exc
        return _coerce_tool_output(tool.name, raw)


@dataclass
class _StepProgress:
    """Mutable state of one running step, owned by its runner."""

    data: Any
    iterations: int = 0
    tool_calls: int = 0
    usage: UsageTracker = field(default_factory=UsageTracker)
    started: float = field(default_factory=time.monotonic)

    def settle(self, step: Step, error: str | None = None) -> StepOutcome:
        duration_ms = (time.monotonic() - self.started) * 1000.0
        result = StepResult(
            name=step.name,
            iterations=self.iterations,
            success=error is None,
            error=error,
            usage=self.usage.snapshot(duration_ms=duration_ms),
            tool_calls=self.tool_calls,
        )
        if error is None:
            logger.info(
                "Step '%s' done: %d iterations, %d tokens, %.0fms",
                step.name, self.iterations, result.usage.tokens, duration_ms,
            )
        return StepOutcome(result=result, data=self.data)


def _coerce_predicate_result(name: str, outcome: Any) -> PredicateResult:
    """Normalize a predicate return value into a PredicateResult."""
    if isinstance(outcome, PredicateResult):
        return outcome
    if isinstance(outcome, bool):
        return PredicateResult(ok=outcome)
    if isinstance(outcome, Mapping) and "ok" in outcome:
        reason = outcome.get("reason", outcome.get("msg"))
        return PredicateResult(
            ok=bool(outcome["ok"]), reason=None if reason is None else str(reason),
        )
    raise PredicateEvaluationError(
        name, f"returned {type(outcome).__name__}, expected PredicateResult"
    )


def _coerce_tool_output(name: str, raw: Any) -> ToolOutput:
    """Validate a tool return value into a ToolOutput."""
    if isinstance(raw, ToolOutput):
        return raw
    if not isinstance(raw, Mapping) or "patch" not in raw:
        raise ToolExecutionError(
            name, f"malformed output ({type(raw).__name__}), expected a patch"
        )
    try:
        return ToolOutput.model_validate(dict(raw))
    except ValidationError as exc:
        raise ToolExecutionError(name, f"malformed output: {exc}") from exc
