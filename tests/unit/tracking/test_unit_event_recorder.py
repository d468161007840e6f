# tests/unit/tracking/test_unit_event_recorder.py — v1
"""Tests for tracking/event_recorder.py — EventRecorder and CompositeObserver."""

from __future__ import annotations

import json
import logging
import re
from unittest.mock import MagicMock

import pytest

from daftflow.core.models import Budget, Result, Spec, Step, StepResult, Usage
from daftflow.tracking.event_recorder import (
    CompositeObserver,
    EventRecorder,
    StepObserver,
    generate_execution_id,
)
from daftflow.tracking.models import StepEvent


def _event(name: str, success: bool = True, tokens: int = 0, cost: float = 0.0) -> StepEvent:
    return StepEvent(
        name=name, iterations=1, success=success, duration_ms=10.0,
        tokens_used=tokens, cost_usd=cost,
    )


def _spec() -> Spec:
    return Spec(
        steps=[
            Step(name="a", until="p", max_iter=1, tools=["t1"]),
            Step(name="b", until="q", max_iter=1, tools=["t1", "t2"], depends_on=["a"]),
        ],
        budget=Budget(max_cost=2.0),
    )


class TestExecutionId:
    def test_format(self):
        assert re.fullmatch(r"exec_\d+_[0-9a-f]{9}", generate_execution_id())

    def test_unique(self):
        assert generate_execution_id() != generate_execution_id()


class TestEventRecorder:
    def test_is_step_observer(self):
        assert isinstance(EventRecorder(), StepObserver)

    def test_explicit_execution_id(self):
        assert EventRecorder("exec_x").finalize().execution_id == "exec_x"

    def test_collects_steps(self):
        recorder = EventRecorder()
        recorder.on_step(_event("a"))
        recorder.on_step(_event("b"))
        assert [s.name for s in recorder.steps] == ["a", "b"]

    def test_set_spec(self):
        recorder = EventRecorder()
        recorder.set_spec(_spec(), file="flow.yaml")
        summary = recorder.finalize().spec
        assert summary.file == "flow.yaml"
        assert summary.steps_count == 2
        assert summary.predicates == ["p", "q"]
        assert summary.tools == ["t1", "t2"]
        assert summary.max_cost == 2.0
        assert summary.max_tokens is None

    def test_finalize_sums_steps(self):
        recorder = EventRecorder()
        recorder.on_step(_event("a", tokens=5, cost=0.1))
        recorder.on_step(_event("b", tokens=7, cost=0.2))
        event = recorder.finalize()
        assert event.execution.total_iterations == 2
        assert event.execution.duration_ms == 20.0
        assert event.usage.tokens == 12
        assert event.usage.cost_usd == pytest.approx(0.3)

    def test_record_success(self):
        recorder = EventRecorder()
        recorder.record_result(Result(
            success=True,
            steps=[StepResult(name="a", success=True, tool_calls=3)],
            usage=Usage(tokens=4, cost=0.5, duration_ms=99.0),
        ))
        event = recorder.finalize()
        assert event.execution.outcome == "success"
        assert event.execution.duration_ms == 99.0
        assert event.usage.tool_calls == 3
        assert event.usage.tokens == 4
        assert event.error is None

    def test_record_partial(self):
        recorder = EventRecorder()
        recorder.record_result(Result(
            success=False,
            steps=[
                StepResult(name="a", success=True),
                StepResult(name="b", success=False, error="not satisfied"),
            ],
            message="Failed: 1 step failed (b)",
        ))
        event = recorder.finalize()
        assert event.execution.outcome == "partial"
        assert event.error.step == "b"
        assert event.error.message == "Failed: 1 step failed (b)"

    def test_record_budget_exceeded(self):
        recorder = EventRecorder()
        recorder.record_result(Result(
            success=False,
            steps=[StepResult(name="a", success=False, error="Budget exceeded: cost 2 > limit 1")],
        ))
        assert recorder.finalize().execution.outcome == "budget_exceeded"

    def test_record_invalid_workflow(self):
        recorder = EventRecorder()
        recorder.record_result(Result(success=False, error="Cycle detected involving steps: ['a']"))
        event = recorder.finalize()
        assert event.execution.outcome == "error"
        assert event.error.message.startswith("Cycle detected")
        assert event.error.step is None

    def test_set_error(self):
        recorder = EventRecorder()
        recorder.set_error("SpecLoadError", "bad file")
        event = recorder.finalize()
        assert event.execution.outcome == "error"
        assert event.error.type == "SpecLoadError"

    def test_emit_logs_once(self, caplog):
        recorder = EventRecorder("exec_1")
        recorder.on_step(_event("a"))
        with caplog.at_level(logging.INFO, logger="daftflow.events"):
            first = recorder.emit()
            second = recorder.emit()
        assert first is second
        records = [r for r in caplog.records if r.name == "daftflow.events"]
        assert len(records) == 1
        assert records[0].data["execution_id"] == "exec_1"
        assert records[0].data["execution"]["steps"][0]["name"] == "a"

    def test_save_jsonl(self, tmp_path):
        recorder = EventRecorder()
        recorder.on_step(_event("a"))
        recorder.on_step(_event("b", success=False))
        path = tmp_path / "out" / "events.jsonl"
        recorder.save(path)
        lines = path.read_text().splitlines()
        assert [json.loads(line)["name"] for line in lines] == ["a", "b"]


class TestCompositeObserver:
    def test_fans_out_in_order(self):
        calls: list[str] = []
        first, second = MagicMock(), MagicMock()
        first.on_step.side_effect = lambda e: calls.append("first")
        second.on_step.side_effect = lambda e: calls.append("second")

        CompositeObserver(first, None, second).on_step(_event("a"))

        assert calls == ["first", "second"]

    def test_empty(self):
        CompositeObserver().on_step(_event("a"))
