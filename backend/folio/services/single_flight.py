"""
Per-key single-flight coordinator.

A call for a key that already has work in flight joins that work instead of
starting a duplicate. The registry lives in process memory, so the guard
holds for one server process only; deployments running several instances
need a distributed lock in the shared store (a Redis key with NX/PX, or a
Postgres advisory lock like the scheduler uses) for the same guarantee.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class SingleFlight:
    def __init__(self, name: str = "single-flight"):
        self.name = name
        self._inflight: dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    def start(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """Return the in-flight task for ``key``, creating it if needed."""
        task = self._inflight.get(key)
        if task is not None and not task.done():
            return task
        task = asyncio.ensure_future(factory())
        self._inflight[key] = task
        task.add_done_callback(lambda t, k=key: self._finished(k, t))
        return task

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Start or join the work for ``key`` and wait for its result.

        The shared task is shielded: a caller giving up does not cancel the
        work other callers are waiting on.
        """
        return await asyncio.shield(self.start(key, factory))

    def _finished(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("[%s] work for %s failed: %s", self.name, key, exc)
