# src/tools/builtin.py — v1
"""Built-in tools.

Only deterministic, offline tools ship with the engine. ``echo`` copies its
input and fills fields depending on ``stepName``, which makes it handy for
demo workflows and tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from daftflow.core.models import ToolOutput, ToolUsage
from daftflow.pipeline.registry import ToolRegistry

DEFAULT_SCORE = 85
SCORE_STEP = 10

_STEP_FIELDS: dict[str, tuple[str, Any]] = {
    "summarize": ("summary", "Document describes a fox jumping over a lazy dog."),
    "extract_entities": ("entities", ["fox", "dog", "jumping", "lazy"]),
    "categorize": ("category", "Animals"),
}


async def echo(data: Any) -> ToolOutput:
    """Echo input back with a field derived from ``stepName``."""
    patch: dict[str, Any] = dict(data) if isinstance(data, Mapping) else {}
    step_name = patch.get("stepName", "unknown")

    if step_name in _STEP_FIELDS:
        key, value = _STEP_FIELDS[step_name]
        patch[key] = value
    else:
        patch["analysis"] = "complete"
        score = patch.get("score")
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            patch["score"] = score + SCORE_STEP
        else:
            patch["score"] = DEFAULT_SCORE

    return ToolOutput(patch=patch, usage=ToolUsage(tokens=0, cost=0.0, duration_ms=0))


def default_tools() -> ToolRegistry:
    """Fresh registry holding every built-in tool."""
    registry = ToolRegistry()
    registry.register_function("echo", echo)
    return registry
