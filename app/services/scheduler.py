import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class PassScheduler:
    """Runs a processing pass immediately, then once every ``interval`` seconds.

    A tick never waits for the previous pass, so long passes can overlap and
    repeat work for the same accounts. With ``single_flight`` a tick is skipped
    while an earlier pass is still running.
    """

    def __init__(self, run_pass: Callable[[], Awaitable[None]], interval: float = 70, single_flight: bool = False):
        self.run_pass = run_pass
        self.interval = interval
        self.single_flight = single_flight
        self._passes: Set[asyncio.Task] = set()
        self._timer: Optional[asyncio.Task] = None

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.RUNNING if self._passes else SchedulerState.IDLE

    def start(self) -> None:
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._tick_forever())

    async def stop(self) -> None:
        """Cancel the timer and any pass still in flight."""
        tasks = list(self._passes)
        if self._timer is not None:
            tasks.append(self._timer)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._timer = None

    def trigger(self) -> Optional[asyncio.Task]:
        """Start one pass without waiting for it. Returns None if skipped."""
        if self.single_flight and self._passes:
            logger.info("Previous pass still running, skipping this tick")
            return None
        task = asyncio.create_task(self._run_pass())
        self._passes.add(task)
        task.add_done_callback(self._passes.discard)
        return task

    async def _run_pass(self) -> None:
        try:
            await self.run_pass()
        except Exception as e:
            # Keeps the timer alive; the next tick starts a fresh pass
            logger.error(f"Processing pass failed: {e!r}")

    async def _tick_forever(self) -> None:
        while True:
            self.trigger()
            await asyncio.sleep(self.interval)
