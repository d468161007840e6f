# src/logging/context.py — v1
"""Contextual logging support — attach execution_id and step to log records.

Each step runs in its own asyncio task, which copies the context at
creation, so a step's context never leaks into its siblings.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_execution_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "execution_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    execution_id: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        execution_id=_execution_id.get(),
        step=_step.get(),
    )


def set_execution_context(execution_id: str) -> None:
    """Set run-level context (called once per workflow execution)."""
    _execution_id.set(execution_id)


def set_step_context(step: str | None) -> None:
    """Set step-level context (called by the step runner inside its task)."""
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _execution_id.set(None)
    _step.set(None)
