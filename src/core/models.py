# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Definition models (Spec, Step, Budget) accept both snake_case field names
and the camelCase keys used by workflow files (``maxIter``, ``dependsOn``...).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# === WORKFLOW DEFINITION ===


class Budget(BaseModel):
    """Optional resource ceilings for a whole run. None = unbounded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_time: float | None = Field(default=None, alias="maxTime", ge=0)
    """Wall-clock ceiling in milliseconds since run start."""
    max_tokens: int | None = Field(default=None, alias="maxTokens", ge=0)
    max_cost: float | None = Field(default=None, alias="maxCost", ge=0)


class Step(BaseModel):
    """Named unit of work: run ``tools`` until predicate ``until`` passes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    until: str
    max_iter: int = Field(alias="maxIter", ge=1)
    tools: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list, alias="dependsOn")


class Spec(BaseModel):
    """Immutable workflow definition: seed data, steps, optional budget."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    initial: Any = Field(default_factory=dict)
    steps: list[Step] = Field(default_factory=list)
    budget: Budget | None = None

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    @property
    def predicate_names(self) -> list[str]:
        """Distinct predicate names, in first-use order."""
        return list(dict.fromkeys(s.until for s in self.steps))

    @property
    def tool_names(self) -> list[str]:
        """Distinct tool names, in first-use order."""
        return list(dict.fromkeys(t for s in self.steps for t in s.tools))


# === TOOL / PREDICATE CONTRACTS ===


class ToolUsage(BaseModel):
    """Resource usage reported by a single tool call."""

    model_config = ConfigDict(populate_by_name=True)

    tokens: int | None = Field(default=None, ge=0)
    cost: float | None = Field(default=None, ge=0)
    duration_ms: float | None = Field(default=None, alias="durationMs", ge=0)


class ToolOutput(BaseModel):
    """Return value of a tool: a patch merged onto working data."""

    patch: Any = Field(default_factory=dict)
    usage: ToolUsage | None = None


class PredicateResult(BaseModel):
    """Outcome of a stopping-condition test."""

    ok: bool
    reason: str | None = None


# === USAGE / RESULTS ===


class Usage(BaseModel):
    """Snapshot of accumulated resource usage."""

    model_config = ConfigDict(frozen=True)

    tokens: int = 0
    cost: float = 0.0
    duration_ms: float = 0.0


class StepResult(BaseModel):
    """Terminal record for one step."""

    model_config = ConfigDict(frozen=True)

    name: str
    iterations: int = 0
    success: bool
    error: str | None = None
    usage: Usage = Field(default_factory=Usage)
    tool_calls: int = 0


class Result(BaseModel):
    """Terminal record for a whole run."""

    success: bool
    data: Any = None
    steps: list[StepResult] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    message: str = ""
    error: str | None = None

    @property
    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.steps if not s.success]

    @property
    def total_iterations(self) -> int:
        return sum(s.iterations for s in self.steps)

    def get_step(self, name: str) -> StepResult | None:
        """Return the StepResult for ``name``, or None if it never settled."""
        for step in self.steps:
            if step.name == name:
                return step
        return None
