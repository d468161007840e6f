# src/pipeline/state.py — v2
"""Working-data merging and the write-once map of published step outputs.

Working data is schema-less: any JSON-like value. Mappings are merged by
shallow key overwrite; any other patch value replaces the data outright.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Iterable, Mapping
from typing import Any


def merge_data(base: Any, patch: Any) -> Any:
    """Shallow-merge ``patch`` onto ``base`` (patch fields win).

    Returns a new dict when both sides are mappings. A ``None`` patch leaves
    ``base`` unchanged; any other non-mapping patch replaces it.
    """
    if patch is None:
        return base
    if isinstance(base, Mapping) and isinstance(patch, Mapping):
        return {**base, **patch}
    return patch


def merge_dependency_outputs(outputs: Iterable[Any]) -> Any:
    """Fold dependency outputs, in declaration order, into one starting value."""
    merged: Any = {}
    for output in outputs:
        merged = merge_data(merged, output)
    return merged


def seed_data(initial: Any) -> Any:
    """Private copy of the spec's seed data for a step without dependencies."""
    if initial is None:
        return {}
    return copy.deepcopy(initial)


class StepDataStore:
    """Write-once map of step name -> published output.

    Each step publishes exactly once, when it settles. Readers block on
    ``wait_for`` until the entry exists.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._events: dict[str, asyncio.Event] = {}

    def _event(self, name: str) -> asyncio.Event:
        event = self._events.get(name)
        if event is None:
            event = self._events[name] = asyncio.Event()
        return event

    def publish(self, name: str, data: Any) -> None:
        if name in self._data:
            raise RuntimeError(f"Output for step '{name}' already published")
        self._data[name] = data
        self._event(name).set()

    def is_published(self, name: str) -> bool:
        return name in self._data

    def get(self, name: str) -> Any:
        return self._data[name]

    async def wait_for(self, name: str) -> Any:
        """Wait until ``name`` has settled and return its output."""
        await self._event(name).wait()
        return self._data[name]

    async def gather_inputs(self, names: Iterable[str]) -> Any:
        """Wait for every dependency, then merge private copies of their outputs.

        Published outputs are shared by every dependent and by the final
        result, so a dependent never receives the stored objects themselves.
        """
        outputs = [await self.wait_for(n) for n in names]
        return merge_dependency_outputs(copy.deepcopy(o) for o in outputs)
