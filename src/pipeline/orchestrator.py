# src/pipeline/orchestrator.py — v2
"""DAG orchestrator — run every step of a Spec and aggregate the Result.

Each step runs as its own asyncio task and waits only on its declared
dependencies, so independent branches progress in parallel (bounded by the
concurrency governor). Every failure is resolved into data: ``execute``
returns a Result and never raises for workflow-level problems.

A step whose dependency failed still runs, starting from whatever partial
output that dependency published.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from daftflow.core.models import Result, Spec, Step, StepResult
from daftflow.pipeline.dag_builder import DAGError, plan_steps
from daftflow.pipeline.governor import DEFAULT_CONCURRENCY, ConcurrencyGovernor
from daftflow.pipeline.registry import PredicateRegistry, ToolRegistry
from daftflow.pipeline.state import StepDataStore, seed_data
from daftflow.pipeline.step_runner import StepRunner
from daftflow.pipeline.usage import UsageTracker
from daftflow.tracking.event_recorder import StepObserver
from daftflow.tracking.models import StepEvent, StepEventError

logger = logging.getLogger(__name__)


class DAGOrchestrator:
    """Execute workflow specs with DAG parallelism and budget enforcement.

    Args:
        predicates: Registry resolving ``Step.until`` names.
        tools: Registry resolving ``Step.tools`` names.
        concurrency: Max steps running tool calls at once.
        observer: Optional StepObserver notified after each step settles.
    """

    def __init__(
        self,
        predicates: PredicateRegistry,
        tools: ToolRegistry,
        concurrency: int = DEFAULT_CONCURRENCY,
        observer: StepObserver | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._predicates = predicates
        self._tools = tools
        self._concurrency = concurrency
        self._observer = observer

    async def execute(self, spec: Spec) -> Result:
        """Run every step of ``spec`` and return the aggregated Result."""
        start = time.monotonic()
        usage = UsageTracker()

        try:
            ordered = plan_steps(spec.steps)
        except DAGError as exc:
            logger.error("Invalid workflow, no step executed: %s", exc)
            return Result(
                success=False,
                data=seed_data(spec.initial),
                usage=usage.snapshot(duration_ms=_elapsed_ms(start)),
                message=f"Failed: {exc}",
                error=str(exc),
            )

        logger.info(
            "Executing %d steps (concurrency=%d): %s",
            len(ordered), self._concurrency, [s.name for s in ordered],
        )

        store = StepDataStore()
        runner = StepRunner(
            predicates=self._predicates,
            tools=self._tools,
            governor=ConcurrencyGovernor(self._concurrency),
            global_usage=usage,
            budget=spec.budget,
            started_at=start,
        )
        settled: list[tuple[StepResult, Any]] = []

        tasks = [
            asyncio.create_task(
                self._run_step(step, spec, runner, store, settled),
                name=f"daftflow-step-{step.name}",
            )
            for step in ordered
        ]
        await asyncio.gather(*tasks)

        results = [result for result, _ in settled]
        success = all(r.success for r in results)
        result = Result(
            success=success,
            data=_final_data(settled, spec.initial),
            steps=results,
            usage=usage.snapshot(duration_ms=_elapsed_ms(start)),
            message=format_message(success, results),
        )
        log = logger.info if success else logger.warning
        log("%s (tokens=%d, cost=%.4f)", result.message, result.usage.tokens, result.usage.cost)
        return result

    async def _run_step(
        self,
        step: Step,
        spec: Spec,
        runner: StepRunner,
        store: StepDataStore,
        settled: list[tuple[StepResult, Any]],
    ) -> None:
        """Wait for dependencies, run the step, publish its output exactly once."""
        started = time.monotonic()
        data: Any = None
        try:
            if step.depends_on:
                data = await store.gather_inputs(step.depends_on)
            else:
                data = seed_data(spec.initial)
            outcome = await runner.run(step, data)
            result, data = outcome.result, outcome.data
        except Exception as exc:
            logger.exception("Step '%s' crashed", step.name)
            result = StepResult(
                name=step.name,
                success=False,
                error=str(exc) or type(exc).__name__,
            )
        finally:
            # Dependents must never wait forever, whatever happened above
            if not store.is_published(step.name):
                store.publish(step.name, data)

        settled.append((result, data))
        self._notify(step, result, _elapsed_ms(started))

    def _notify(self, step: Step, result: StepResult, duration_ms: float) -> None:
        if self._observer is None:
            return
        event = StepEvent(
            name=step.name,
            iterations=result.iterations,
            success=result.success,
            duration_ms=duration_ms,
            tokens_used=result.usage.tokens,
            cost_usd=result.usage.cost,
            tools_used=list(step.tools),
            predicate=step.until,
            error=(
                StepEventError(message=result.error or "", iteration=result.iterations)
                if not result.success
                else None
            ),
        )
        try:
            self._observer.on_step(event)
        except Exception as exc:
            logger.warning("Step observer failed for '%s': %s", step.name, exc)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000.0


def _final_data(settled: list[tuple[StepResult, Any]], initial: Any) -> Any:
    """Output of the most recently settled successful step, else the seed data."""
    for result, data in reversed(settled):
        if result.success:
            return data
    return seed_data(initial)


def format_message(success: bool, results: list[StepResult]) -> str:
    """One-line human-readable summary of a run."""
    if success:
        iterations = sum(r.iterations for r in results)
        return (
            f"Done in {iterations} {_plural(iterations, 'iteration')} "
            f"across {len(results)} {_plural(len(results), 'step')}"
        )
    failed = [r.name for r in results if not r.success]
    return (
        f"Failed: {len(failed)} {_plural(len(failed), 'step')} failed "
        f"({', '.join(failed)})"
    )


def _plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"
