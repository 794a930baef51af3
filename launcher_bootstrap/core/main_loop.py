"""Steady-state process loop."""

import asyncio
from typing import Awaitable, Callable, List, Tuple

from launcher_bootstrap.utils.logging import get_logger

Tick = Callable[[], Awaitable[None]]


class MainLoop:
    """Runs periodic ticks until stopped.

    A tick that raises is logged and the loop carries on with the next one.
    """

    def __init__(self, interval: float = 1.5):
        self.interval = interval
        self._ticks: List[Tuple[str, Tick]] = []
        self._stop = asyncio.Event()
        self.iterations = 0

    def add_tick(self, name: str, tick: Tick) -> None:
        self._ticks.append((name, tick))

    def stop(self) -> None:
        self._stop.set()

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    async def start(self) -> None:
        """Run until stop() is called."""
        logger = get_logger(__name__)
        logger.info(f"Main loop started ({len(self._ticks)} ticks every {self.interval}s)")

        while not self._stop.is_set():
            for name, tick in self._ticks:
                try:
                    await tick()
                except Exception as e:
                    logger.error(f"Main loop tick '{name}' failed: {e}")
            self.iterations += 1

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Main loop stopped")
