"""Cancellable asyncio countdown used for per-question timers."""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Countdown:
    """Calls ``on_tick`` once per ``interval`` seconds, at most ``ticks`` times.

    The countdown runs as a task on the current event loop. ``cancel()`` is
    safe to call at any time, including from inside ``on_tick``; once
    cancelled no further tick is delivered.
    """

    def __init__(self, ticks: int, interval: float, on_tick: Callable[[], None]):
        self.ticks = ticks
        self.interval = interval
        self.on_tick = on_tick
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """(Re)start the countdown from the full tick count."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self) -> None:
        task = asyncio.current_task()
        try:
            for _ in range(self.ticks):
                await asyncio.sleep(self.interval)
                # A tick must never reach a countdown that was cancelled or restarted
                if self._task is not task:
                    return
                self.on_tick()
        except asyncio.CancelledError:
            logger.debug("Countdown cancelled")
            raise
        finally:
            if self._task is task:
                self._task = None
