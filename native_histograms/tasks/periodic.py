import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable

from native_histograms.core.exceptions import ShutdownTimeout

logger = logging.getLogger("native_histograms.tasks")


class PeriodicTask:
    """Run ``callback`` every ``interval_seconds`` until ``stop()`` is awaited.

    The stop signal is an ``asyncio.Event`` so a sleeping loop wakes up immediately
    instead of finishing its current interval. Failures of a single tick are logged
    and the schedule keeps going.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], None | Awaitable[None]],
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self._callback = callback
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.info("periodic_task_started name=%s interval_seconds=%s", self.name, self.interval_seconds)

    async def stop(self, timeout_seconds: float = 5.0) -> None:
        if self._task is None:
            return
        task = self._task
        self._task = None
        self._stop_event.set()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout_seconds)
        except TimeoutError:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            raise ShutdownTimeout(f"{self.name} did not stop within {timeout_seconds:g} seconds") from None
        finally:
            logger.info("periodic_task_stopped name=%s ticks=%s", self.name, self.ticks)

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                await self._tick()

    async def _tick(self) -> None:
        self.ticks += 1
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("periodic_task_tick_failed name=%s", self.name)
