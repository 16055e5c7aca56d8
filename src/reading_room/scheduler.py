"""
Periodic refresh with a rate-limited manual trigger.

The clock and the sleep function are injectable so tests can drive the
loop without waiting.
"""

import asyncio
import inspect
import time
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from reading_room.core.logging import get_logger

logger = get_logger("scheduler")

IDLE = "idle"
RUNNING = "running"
ERROR = "error"


@dataclass
class SchedulerStatus:
    """Snapshot of the scheduler state."""

    state: str = IDLE
    last_run: Optional[float] = None
    last_error: Optional[str] = None
    run_count: int = 0
    interval: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RefreshScheduler:
    """
    Run a refresh task every `interval` seconds.

    Manual refreshes through request_refresh() are refused while the
    previous run is younger than `min_interval`.
    """

    def __init__(
        self,
        task: Callable[[], Union[Awaitable[Any], Any]],
        interval: float = 300.0,
        min_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.task = task
        self.interval = interval
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._status = SchedulerStatus(interval=interval)
        self._stopped = False
        self._lock = asyncio.Lock()

    @property
    def status(self) -> SchedulerStatus:
        return SchedulerStatus(**asdict(self._status))

    async def _run_once(self) -> bool:
        async with self._lock:
            self._status.state = RUNNING
            self._status.last_run = self._clock()
            try:
                result = self.task()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._status.state = ERROR
                self._status.last_error = str(e)
                logger.error(f"Refresh failed: {e}")
                return False
            finally:
                self._status.run_count += 1

            self._status.state = IDLE
            self._status.last_error = None
            return True

    async def request_refresh(self) -> bool:
        """
        Run the task now unless it ran within `min_interval`.

        Returns:
            False when rate limited or when the task failed
        """
        last_run = self._status.last_run
        if last_run is not None and self._clock() - last_run < self.min_interval:
            wait = self.min_interval - (self._clock() - last_run)
            logger.info(f"Refresh rate limited, next allowed in {wait:.0f}s")
            return False
        return await self._run_once()

    async def run(self, iterations: Optional[int] = None) -> None:
        """Refresh now and then every interval until stopped or `iterations` runs."""
        self._stopped = False
        completed = 0
        logger.info(f"Scheduler started (interval: {self.interval:g}s)")
        while not self._stopped:
            await self._run_once()
            completed += 1
            if iterations is not None and completed >= iterations:
                break
            await self._sleep(self.interval)
        logger.info(f"Scheduler stopped after {completed} runs")

    def stop(self) -> None:
        self._stopped = True
