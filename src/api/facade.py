# src/api/facade.py — v1
"""Public API facade — single entry point for running a workflow.

Usage:
    from daftflow.api.facade import run_spec
    result = await run_spec(spec)

Wires settings, built-in registries (extended or overridden by the
caller's), the logging context and the run event recorder around
DAGOrchestrator.execute.
"""

from __future__ import annotations

import logging

from daftflow.config.settings import Settings
from daftflow.core.models import Result, Spec
from daftflow.logging.context import clear_context, set_execution_context
from daftflow.pipeline.orchestrator import DAGOrchestrator
from daftflow.pipeline.registry import PredicateRegistry, ToolRegistry
from daftflow.tools.builtin import default_tools
from daftflow.tools.predicates import default_predicates
from daftflow.tracking.event_recorder import (
    CompositeObserver,
    EventRecorder,
    StepObserver,
)

logger = logging.getLogger(__name__)


async def run_spec(
    spec: Spec,
    predicates: PredicateRegistry | None = None,
    tools: ToolRegistry | None = None,
    settings: Settings | None = None,
    observer: StepObserver | None = None,
    recorder: EventRecorder | None = None,
    spec_file: str | None = None,
) -> Result:
    """Execute ``spec`` end-to-end and return its Result.

    Args:
        spec: Fully-resolved workflow definition.
        predicates: Extra predicates; override built-ins of the same name.
        tools: Extra tools; override built-ins of the same name.
        settings: Global settings. Loaded from .env if None.
        observer: Additional StepObserver notified per settled step.
        recorder: Event recorder to use (one is created when events are enabled).
        spec_file: Source path of the spec, recorded in the run event.

    Returns:
        Result of the run. Workflow failures are reported in the Result,
        never raised.
    """
    settings = settings or Settings()

    all_predicates = default_predicates()
    if predicates is not None:
        all_predicates = all_predicates.merged_with(predicates)
    all_tools = default_tools()
    if tools is not None:
        all_tools = all_tools.merged_with(tools)

    if recorder is None and settings.emit_events:
        recorder = EventRecorder()
    if recorder is not None:
        recorder.set_spec(spec, file=spec_file)
        set_execution_context(recorder.execution_id)

    orchestrator = DAGOrchestrator(
        predicates=all_predicates,
        tools=all_tools,
        concurrency=settings.concurrency,
        observer=CompositeObserver(*(o for o in (recorder, observer) if o is not None)),
    )

    try:
        result = await orchestrator.execute(spec)
        if recorder is not None:
            recorder.record_result(result)
            recorder.emit()
            if settings.events_file is not None:
                recorder.save(settings.events_file.expanduser())
    finally:
        clear_context()

    return result
