# src/pipeline/governor.py — v1
"""Concurrency governor — cap how many steps run tool calls at once."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

DEFAULT_CONCURRENCY = 4


class ConcurrencyGovernor:
    """Counting-semaphore gate shared by all step runners of one run.

    Any ready step may take a free slot; the governor only bounds how many
    hold one simultaneously.
    """

    def __init__(self, limit: int = DEFAULT_CONCURRENCY) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency limit must be >= 1, got {limit}")
        self._limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._active = 0
        self._peak = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        """Slots currently held."""
        return self._active

    @property
    def peak(self) -> int:
        """Highest number of slots held at once so far."""
        return self._peak

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._semaphore:
            self._active += 1
            self._peak = max(self._peak, self._active)
            try:
                yield
            finally:
                self._active -= 1
