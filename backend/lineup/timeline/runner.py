"""Fire-and-forget work owned by one timeline session."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundRunner:
    """Tracks spawned tasks so teardown can cancel them and drop their results."""

    def __init__(self) -> None:
        self._tasks: Set["asyncio.Task[Any]"] = set()
        self.closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Optional["asyncio.Task[Any]"]:
        if self.closed:
            coro.close()
            return None
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every spawned task, including ones spawned while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        self.closed = True
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            logger.debug("Cancelled %d background task(s)", len(self._tasks))
        self._tasks.clear()
