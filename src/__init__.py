# src/__init__.py — v1
"""daftflow — declarative DAG workflow engine.

Usage:
    from daftflow import Spec, run_spec
    result = await run_spec(Spec.model_validate(document))
"""

from daftflow.api.facade import run_spec
from daftflow.core.models import (
    Budget,
    PredicateResult,
    Result,
    Spec,
    Step,
    StepResult,
    ToolOutput,
    ToolUsage,
    Usage,
)
from daftflow.pipeline.orchestrator import DAGOrchestrator
from daftflow.pipeline.registry import PredicateRegistry, ToolRegistry
from daftflow.version import __version__

__all__ = [
    "Budget",
    "DAGOrchestrator",
    "PredicateRegistry",
    "PredicateResult",
    "Result",
    "Spec",
    "Step",
    "StepResult",
    "ToolOutput",
    "ToolRegistry",
    "ToolUsage",
    "Usage",
    "__version__",
    "run_spec",
]
