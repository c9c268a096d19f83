from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .interfaces import JobOutcome

logger = logging.getLogger(__name__)


class AsyncioJobRunner:
    """Runs background jobs on the current asyncio loop.

    Completion is delivered through `on_done` on the same loop, so handlers
    never race with key handling or rendering.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def submit(self, factory: Callable[[], Awaitable[Any]], on_done: Callable[[JobOutcome], None]) -> asyncio.Task:
        """Schedule `factory()` and report its outcome to `on_done`.

        Args:
            factory: Zero-argument callable returning the awaitable to run.
            on_done: Receives a `JobOutcome` with the value or the raised error.

        Returns:
            The asyncio Task wrapping the job.
        """

        async def _job_wrapper() -> None:
            try:
                value = await factory()
            except Exception as e:
                logger.debug(f"Background job failed: {e!r}")
                on_done(JobOutcome(error=e))
                return
            on_done(JobOutcome(value=value))

        task = asyncio.get_running_loop().create_task(_job_wrapper())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    async def drain(self) -> None:
        """Wait until every submitted job, including ones submitted meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)
