"""
In-process background task handoff.

Work spawned here runs after the request that spawned it has been
answered; failures are logged and never reach the caller.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class BackgroundSpawner:
    def __init__(self):
        # Strong references; the event loop only keeps weak ones
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, func: Callable[..., Awaitable[Any]], *args, name: str = "background", **kwargs):
        task = asyncio.create_task(func(*args, **kwargs), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"⚠️ Background task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"❌ Background task {task.get_name()} failed: {exc}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float = 30.0) -> None:
        """Wait for outstanding tasks, e.g. on shutdown"""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(f"⚠️ {len(pending)} background tasks still running after {timeout}s")
