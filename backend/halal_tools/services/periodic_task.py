"""
Interval-driven background task running on the event loop
"""
import asyncio
from typing import Awaitable, Callable, Optional

from halal_tools.core.logging_config import LoggingConfig
from halal_tools.core.metrics import background_task_runs_total

logger = LoggingConfig.get_logger(__name__)


class PeriodicTask:
    """
    Runs ``work`` every ``interval_seconds`` until stopped

    A failing run is logged and counted; the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        work: Callable[[], Awaitable[None]],
        run_on_start: bool = False,
    ):
        self.name = name
        self.interval_seconds = interval_seconds
        self.work = work
        self.run_on_start = run_on_start
        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the loop in the background"""
        if self.running:
            logger.warning(f"Task {self.name} is already running")
            return

        self.running = True
        logger.info(f"Starting background task {self.name} (every {self.interval_seconds}s)")
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self):
        """Stop the loop and wait for it to exit"""
        self.running = False
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"Stopped background task {self.name}")

    async def run_once(self) -> bool:
        """Run ``work`` a single time; returns False when it raised"""
        try:
            await self.work()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            background_task_runs_total.labels(task=self.name, status="failed").inc()
            logger.error(f"Error in background task {self.name}: {e}", exc_info=True)
            return False
        background_task_runs_total.labels(task=self.name, status="success").inc()
        return True

    async def _loop(self):
        if self.run_on_start:
            await self.run_once()
        while self.running:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
