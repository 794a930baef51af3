"""Detached background tasks.

Tasks spawned here are not awaited by whoever started them. A strong
reference is kept until they finish and any exception they raise is logged,
so failures show up in the log instead of vanishing with the task.
"""

import asyncio
from typing import Awaitable, Dict, List, Optional, Set

from launcher_bootstrap.utils.logging import get_logger


class BackgroundTasks:
    """Tracks fire-and-forget tasks and reports their failures."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self.failures: Dict[str, BaseException] = {}

    def spawn(self, name: str, aw: Awaitable) -> asyncio.Task:
        """Schedule a coroutine without awaiting it.

        Args:
            name: Name used in log messages and in `failures`
            aw: Coroutine to run

        Returns:
            The created task
        """
        logger = get_logger(__name__)

        task = asyncio.ensure_future(aw)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Spawned background task: {name}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        logger = get_logger(__name__)

        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Background task cancelled: {task.get_name()}")
            return

        exc = task.exception()
        if exc is not None:
            self.failures[task.get_name()] = exc
            logger.error(
                f"Background task '{task.get_name()}' failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    @property
    def active(self) -> List[asyncio.Task]:
        return [t for t in self._tasks if not t.done()]

    async def wait(self, timeout: Optional[float] = None) -> None:
        """Wait for all currently running tasks (used at shutdown and in tests)."""
        pending = self.active
        if pending:
            await asyncio.wait(pending, timeout=timeout)

    async def cancel_all(self) -> None:
        """Cancel every running task and wait for them to finish."""
        logger = get_logger(__name__)

        pending = self.active
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} background tasks")
