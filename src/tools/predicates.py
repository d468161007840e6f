# src/tools/predicates.py — v1
"""Built-in predicates — stopping conditions over working data.

Predicates are pure: they inspect the data and never mutate it. Most test
that a named field exists and is truthy; the registry names match the keys
used in workflow files (``until: hasSummary``).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from daftflow.core.models import PredicateResult
from daftflow.pipeline.registry import PredicateFunction, PredicateRegistry

SCORE_THRESHOLD = 80


def _field(data: Any, key: str) -> Any:
    if isinstance(data, Mapping):
        return data.get(key)
    return None


def has_field(key: str, missing: str) -> PredicateFunction:
    """Build a predicate satisfied when ``data[key]`` is truthy."""

    def check(data: Any) -> PredicateResult:
        if _field(data, key):
            return PredicateResult(ok=True)
        return PredicateResult(ok=False, reason=missing)

    check.__name__ = f"has_{key}"
    return check


def has_items(key: str, missing: str) -> PredicateFunction:
    """Build a predicate satisfied when ``data[key]`` is a non-empty list."""

    def check(data: Any) -> PredicateResult:
        value = _field(data, key)
        if isinstance(value, list) and value:
            return PredicateResult(ok=True)
        return PredicateResult(ok=False, reason=missing)

    check.__name__ = f"has_{key}_items"
    return check


def always_true(data: Any) -> PredicateResult:
    """Step completes without running any tool."""
    return PredicateResult(ok=True)


def truthy(data: Any) -> PredicateResult:
    if data:
        return PredicateResult(ok=True)
    return PredicateResult(ok=False, reason="Value is falsy")


def score_check(data: Any) -> PredicateResult:
    """Satisfied once ``data['score']`` is a number >= 80."""
    score = _field(data, "score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return PredicateResult(ok=False, reason="Score must be a number")
    if score >= SCORE_THRESHOLD:
        return PredicateResult(ok=True)
    return PredicateResult(ok=False, reason=f"Score {score} < {SCORE_THRESHOLD}")


def has_metadata(data: Any) -> PredicateResult:
    if isinstance(data, Mapping) and all(
        k in data for k in ("language", "description", "stars")
    ):
        return PredicateResult(ok=True)
    return PredicateResult(ok=False, reason="Repository metadata not extracted yet")


def default_predicates() -> PredicateRegistry:
    """Fresh registry holding every built-in predicate."""
    registry = PredicateRegistry()
    registry.register("alwaysTrue", always_true)
    registry.register("truthy", truthy)
    registry.register("scoreCheck", score_check)
    registry.register("hasMetadata", has_metadata)
    registry.register("analyzeDone", has_field("analysis", "No analysis found in data"))
    registry.register("hasOutput", has_field("output", "No LLM output found in data"))
    registry.register("hasSummary", has_field("summary", "Summary not created yet"))
    registry.register("hasEntities", has_field("entities", "Entities not extracted yet"))
    registry.register("hasCategory", has_field("category", "Category not assigned yet"))
    registry.register("hasTone", has_field("tone", "Tone not determined yet"))
    registry.register(
        "hasPurposeSummary", has_field("purpose_summary", "Purpose not summarized yet"),
    )
    registry.register(
        "hasAnalysis", has_field("codebase_analysis", "Codebase not analyzed yet"),
    )
    registry.register("hasKeywords", has_items("keywords", "Keywords not extracted yet"))
    registry.register("hasFeatures", has_items("features", "Features not extracted yet"))
    registry.register(
        "hasSuggestions", has_items("improvements", "Improvements not suggested yet"),
    )
    return registry
