# src/pipeline/registry.py — v1
"""Predicate and tool registries — named capabilities injected into the engine.

The engine only ever looks capabilities up by name through these maps; it
never imports concrete tool or predicate implementations.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from daftflow.core.models import PredicateResult, ToolOutput

logger = logging.getLogger(__name__)

T = TypeVar("T")

PredicateFunction = Callable[[Any], PredicateResult | bool]
ToolFunction = Callable[[Any], Awaitable[ToolOutput | Mapping[str, Any]]]


class RegistryError(Exception):
    """Raised when a capability lookup or registration fails."""


class UnknownPredicateError(RegistryError):
    """A step references a predicate name that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown predicate: {name}")


class UnknownToolError(RegistryError):
    """A step references a tool name that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


@runtime_checkable
class Tool(Protocol):
    """Asynchronous operation producing a patch and optional usage."""

    name: str
    description: str

    async def run(self, data: Any) -> ToolOutput | Mapping[str, Any]: ...


class FunctionTool:
    """Adapt a plain coroutine function to the Tool protocol."""

    def __init__(self, name: str, fn: ToolFunction, description: str = "") -> None:
        self.name = name
        self.description = description or (fn.__doc__ or "").strip().split("\n")[0]
        self._fn = fn

    async def run(self, data: Any) -> ToolOutput | Mapping[str, Any]:
        return await self._fn(data)

    def __repr__(self) -> str:
        return f"FunctionTool({self.name!r})"


class _NamedRegistry(Generic[T]):
    """Name -> capability map shared by both registries."""

    _error_cls: Callable[[str], RegistryError] = RegistryError
    kind = "capability"

    def __init__(self, entries: Mapping[str, T] | None = None) -> None:
        self._entries: dict[str, T] = dict(entries or {})

    def _add(self, name: str, entry: T, replace: bool) -> None:
        if not name:
            raise RegistryError(f"Cannot register {self.kind} with empty name")
        if name in self._entries:
            if not replace:
                raise RegistryError(f"{self.kind.capitalize()} '{name}' already registered")
            logger.warning("Overwriting existing %s: %s", self.kind, name)
        self._entries[name] = entry

    def get(self, name: str) -> T | None:
        """Get entry by name, or None if not registered."""
        return self._entries.get(name)

    def get_or_raise(self, name: str) -> T:
        """Get entry by name, raise the registry's lookup error if missing."""
        entry = self._entries.get(name)
        if entry is None:
            raise self._error_cls(name)
        return entry

    @property
    def names(self) -> list[str]:
        """Sorted list of registered names."""
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class PredicateRegistry(_NamedRegistry[PredicateFunction]):
    """Registry of named, synchronous stopping-condition predicates."""

    _error_cls = UnknownPredicateError
    kind = "predicate"

    def register(
        self, name: str, fn: PredicateFunction, *, replace: bool = False
    ) -> None:
        self._add(name, fn, replace)

    def predicate(self, name: str) -> Callable[[PredicateFunction], PredicateFunction]:
        """Decorator form of ``register``."""

        def decorator(fn: PredicateFunction) -> PredicateFunction:
            self.register(name, fn)
            return fn

        return decorator

    def merged_with(self, other: PredicateRegistry) -> PredicateRegistry:
        """New registry with ``other``'s entries overriding this one's."""
        return PredicateRegistry({**self._entries, **other._entries})


class ToolRegistry(_NamedRegistry[Tool]):
    """Registry of named asynchronous tools."""

    _error_cls = UnknownToolError
    kind = "tool"

    def register(self, tool: Tool, *, replace: bool = False) -> None:
        self._add(tool.name, tool, replace)

    def register_function(
        self,
        name: str,
        fn: ToolFunction,
        description: str = "",
        *,
        replace: bool = False,
    ) -> Tool:
        tool = FunctionTool(name, fn, description)
        self.register(tool, replace=replace)
        return tool

    def tool(
        self, name: str, description: str = ""
    ) -> Callable[[ToolFunction], ToolFunction]:
        """Decorator registering a coroutine function as a tool."""

        def decorator(fn: ToolFunction) -> ToolFunction:
            self.register_function(name, fn, description)
            return fn

        return decorator

    def merged_with(self, other: ToolRegistry) -> ToolRegistry:
        """New registry with ``other``'s entries overriding this one's."""
        return ToolRegistry({**self._entries, **other._entries})
