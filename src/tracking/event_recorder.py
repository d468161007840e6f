# src/tracking/event_recorder.py — v1
"""Step observer hook and the per-run wide event recorder.

The orchestrator reports one StepEvent per settled step to an injected
StepObserver. EventRecorder is the stock observer: it accumulates step
events and emits a single RunEvent per execution as one JSON log record.
Every run is emitted; there is no sampling.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from daftflow.core.models import Result, Spec
from daftflow.tracking.models import (
    RunError,
    RunEvent,
    SpecSummary,
    StepEvent,
    UsageSummary,
)
from daftflow.version import __version__

event_logger = logging.getLogger("daftflow.events")


@runtime_checkable
class StepObserver(Protocol):
    """Receives telemetry for every settled step."""

    def on_step(self, event: StepEvent) -> None: ...


def generate_execution_id() -> str:
    """Unique, time-ordered identifier for one workflow execution."""
    return f"exec_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class EventRecorder:
    """Accumulates StepEvents during a run and builds the RunEvent."""

    def __init__(self, execution_id: str | None = None) -> None:
        self.execution_id = execution_id or generate_execution_id()
        self._steps: list[StepEvent] = []
        self._event = RunEvent(
            timestamp=datetime.now(timezone.utc),
            version=__version__,
            execution_id=self.execution_id,
        )
        self._emitted: RunEvent | None = None

    def on_step(self, event: StepEvent) -> None:
        self._steps.append(event)

    @property
    def steps(self) -> list[StepEvent]:
        return list(self._steps)

    def set_spec(self, spec: Spec, file: str | None = None) -> None:
        budget = spec.budget
        self._event.spec = SpecSummary(
            file=file,
            steps_count=len(spec.steps),
            predicates=spec.predicate_names,
            tools=spec.tool_names,
            max_time_ms=budget.max_time if budget else None,
            max_tokens=budget.max_tokens if budget else None,
            max_cost=budget.max_cost if budget else None,
        )

    def set_error(self, error_type: str, message: str, step: str | None = None) -> None:
        self._event.error = RunError(type=error_type, message=message, step=step)
        self._event.execution.outcome = "error"

    def record_result(self, result: Result) -> None:
        """Derive outcome and usage from a finished Result."""
        execution = self._event.execution
        execution.duration_ms = result.usage.duration_ms
        self._event.usage = UsageSummary(
            tokens=result.usage.tokens,
            cost_usd=result.usage.cost,
            tool_calls=sum(s.tool_calls for s in result.steps),
        )

        if result.success:
            execution.outcome = "success"
            return

        failed = result.failed_steps
        if any((s.error or "").startswith("Budget exceeded") for s in failed):
            execution.outcome = "budget_exceeded"
        elif failed and len(failed) < len(result.steps):
            execution.outcome = "partial"
        else:
            execution.outcome = "error"

        first = failed[0] if failed else None
        self._event.error = RunError(
            type="ExecutionError",
            message=result.error or result.message,
            step=first.name if first else None,
        )

    def finalize(self) -> RunEvent:
        """Fold step events into the run totals and return the RunEvent."""
        execution = self._event.execution
        execution.steps = list(self._steps)
        execution.total_iterations = sum(s.iterations for s in self._steps)
        if not execution.duration_ms:
            execution.duration_ms = sum(s.duration_ms for s in self._steps)

        usage = self._event.usage
        if not usage.tokens and not usage.cost_usd:
            self._event.usage = UsageSummary(
                tokens=sum(s.tokens_used for s in self._steps),
                cost_usd=sum(s.cost_usd for s in self._steps),
                tool_calls=usage.tool_calls,
            )
        return self._event

    def emit(self) -> RunEvent:
        """Log the RunEvent once; later calls return the same event."""
        if self._emitted is not None:
            return self._emitted
        event = self.finalize()
        event_logger.info(
            "run %s %s", event.execution_id, event.execution.outcome,
            extra={"data": json.loads(event.model_dump_json())},
        )
        self._emitted = event
        return event

    def save(self, path: Path) -> None:
        """Save all step events to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for step in self._steps:
                f.write(step.model_dump_json() + "\n")


class CompositeObserver:
    """Fan a StepEvent out to several observers, in order."""

    def __init__(self, *observers: StepObserver) -> None:
        self._observers = [o for o in observers if o is not None]

    def on_step(self, event: StepEvent) -> None:
        for observer in self._observers:
            observer.on_step(event)
