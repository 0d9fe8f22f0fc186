"""
Cancellable timers for the UI controllers.

Debouncer runs a coroutine after a quiet period, restarting on every new
call. Countdown ticks a whole-second counter down to zero.
"""

import asyncio
from typing import Awaitable, Callable, Optional


class Debouncer:
    """Run the most recently scheduled action after `delay` seconds of quiet."""

    def __init__(self, delay: float):
        self.delay = delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, action: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Cancel any pending action and schedule `action`.

        Args:
            action: Zero-argument coroutine function to run once the delay passes.

        Returns:
            The task that will run the action.
        """
        self.cancel()
        self._task = asyncio.create_task(self._run(action))
        return self._task

    async def _run(self, action: Callable[[], Awaitable[None]]):
        await asyncio.sleep(self.delay)
        await action()

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self):
        """Wait for the pending action, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass


class Countdown:
    """Whole-second countdown that decrements once per `interval` and stops at zero."""

    def __init__(
        self,
        interval: float = 1.0,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        self.interval = interval
        self.on_tick = on_tick
        self.remaining = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self.remaining > 0

    def start(self, seconds: int) -> asyncio.Task:
        self.cancel()
        self.remaining = seconds
        self._task = asyncio.create_task(self._run())
        return self._task

    async def _run(self):
        while self.remaining > 0:
            await asyncio.sleep(self.interval)
            self.remaining -= 1
            if self.on_tick:
                self.on_tick(self.remaining)

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.remaining = 0

    async def wait(self):
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
