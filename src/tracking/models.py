# src/tracking/models.py — v1
"""Tracking domain models: StepEvent, RunEvent and their parts.

One StepEvent is reported per settled step; a RunEvent is the single wide
record summarizing a whole execution.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class StepEventError(BaseModel):
    """Failure detail attached to a failed step."""

    message: str
    iteration: int | None = None


class StepEvent(BaseModel):
    """Telemetry for one settled step."""

    name: str
    iterations: int
    success: bool
    duration_ms: float
    tokens_used: int = 0
    cost_usd: float = 0.0
    tools_used: list[str] = Field(default_factory=list)
    predicate: str | None = None
    error: StepEventError | None = None


class SpecSummary(BaseModel):
    """Shape of the executed workflow."""

    file: str | None = None
    steps_count: int = 0
    predicates: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    max_time_ms: float | None = None
    max_tokens: int | None = None
    max_cost: float | None = None


class ExecutionSummary(BaseModel):
    """Outcome and totals of a run."""

    mode: Literal["local"] = "local"
    outcome: Literal["success", "error", "budget_exceeded", "partial"] = "success"
    duration_ms: float = 0.0
    total_iterations: int = 0
    steps: list[StepEvent] = Field(default_factory=list)


class UsageSummary(BaseModel):
    """Aggregated resource usage of a run."""

    tokens: int = 0
    cost_usd: float = 0.0
    tool_calls: int = 0


class RunError(BaseModel):
    """Run-level error detail."""

    type: str
    message: str
    step: str | None = None


class RunEvent(BaseModel):
    """Wide event describing one complete workflow execution."""

    timestamp: datetime
    service: str = "daftflow"
    version: str
    execution_id: str
    spec: SpecSummary = Field(default_factory=SpecSummary)
    execution: ExecutionSummary = Field(default_factory=ExecutionSummary)
    usage: UsageSummary = Field(default_factory=UsageSummary)
    error: RunError | None = None
