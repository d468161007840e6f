# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py — definition aliases, validation and Result helpers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from daftflow.core.models import Budget, Result, Spec, Step, StepResult, ToolUsage


class TestStep:
    def test_camel_case_keys(self):
        step = Step.model_validate({
            "name": "s", "until": "p", "maxIter": 2, "tools": ["t"], "dependsOn": ["a"],
        })
        assert step.max_iter == 2
        assert step.depends_on == ["a"]

    def test_snake_case_keys(self):
        step = Step(name="s", until="p", max_iter=1)
        assert step.tools == []
        assert step.depends_on == []

    @pytest.mark.parametrize("max_iter", [0, -1])
    def test_max_iter_positive(self, max_iter):
        with pytest.raises(ValidationError):
            Step(name="s", until="p", max_iter=max_iter)

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            Step(name="", until="p", max_iter=1)

    def test_frozen(self):
        step = Step(name="s", until="p", max_iter=1)
        with pytest.raises(ValidationError):
            step.name = "other"


class TestSpec:
    def test_defaults(self):
        spec = Spec()
        assert spec.initial == {}
        assert spec.steps == []
        assert spec.budget is None

    def test_budget_aliases(self):
        spec = Spec.model_validate({
            "steps": [],
            "budget": {"maxTime": 1000, "maxTokens": 50, "maxCost": 0.5},
        })
        assert spec.budget == Budget(max_time=1000, max_tokens=50, max_cost=0.5)

    def test_negative_budget_rejected(self):
        with pytest.raises(ValidationError):
            Budget(max_cost=-1)

    def test_name_helpers(self):
        spec = Spec(steps=[
            Step(name="a", until="p", max_iter=1, tools=["t1", "t2"]),
            Step(name="b", until="p", max_iter=1, tools=["t2"]),
            Step(name="c", until="q", max_iter=1),
        ])
        assert spec.step_names == ["a", "b", "c"]
        assert spec.predicate_names == ["p", "q"]
        assert spec.tool_names == ["t1", "t2"]

    def test_non_mapping_initial_allowed(self):
        assert Spec(initial=[1, 2]).initial == [1, 2]


class TestToolUsage:
    def test_duration_alias(self):
        assert ToolUsage.model_validate({"durationMs": 12}).duration_ms == 12

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            ToolUsage(tokens=-5)


class TestResult:
    def _result(self) -> Result:
        return Result(
            success=False,
            steps=[
                StepResult(name="a", iterations=2, success=True),
                StepResult(name="b", iterations=1, success=False, error="boom"),
            ],
        )

    def test_failed_steps(self):
        assert [s.name for s in self._result().failed_steps] == ["b"]

    def test_total_iterations(self):
        assert self._result().total_iterations == 3

    def test_get_step(self):
        result = self._result()
        assert result.get_step("b").error == "boom"
        assert result.get_step("zzz") is None
