"""
Periodic scheduler for pipeline ticks and lifecycle sweeps.

This module provides the Scheduler class which runs two periodic jobs on
the current event loop: the pipeline tick (every update_interval seconds)
and the lifecycle sweep (every cleanup_interval seconds). Both jobs take
the same asyncio.Lock, so they never overlap.

Example:
    >>> scheduler = Scheduler(
    ...     tick=pipeline.tick,
    ...     sweep=sweep,
    ...     lock=storage.lock,
    ...     update_interval=30,
    ...     cleanup_interval=3600,
    ... )
    >>> await scheduler.start()
    >>> ...
    >>> await scheduler.stop()
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional

import structlog

from intelligent_alerts.exceptions import SchedulerError

logger = structlog.get_logger(__name__)

Job = Callable[[], Awaitable[Any]]


class Scheduler:
    """
    Runs the tick and sweep jobs at fixed intervals.

    The first run of each job happens one interval after start(). A job
    that raises is logged and rescheduled. stop() cancels sleeping loops
    and waits for an in-flight job to finish.

    Attributes:
        lock: Lock held while a job runs.
        update_interval: Seconds between ticks.
        cleanup_interval: Seconds between sweeps.
    """

    def __init__(
        self,
        tick: Job,
        sweep: Job,
        lock: asyncio.Lock,
        update_interval: float,
        cleanup_interval: float,
    ) -> None:
        if update_interval <= 0 or cleanup_interval <= 0:
            raise ValueError("Scheduler intervals must be positive")

        self._tick = tick
        self._sweep = sweep
        self.lock = lock
        self.update_interval = update_interval
        self.cleanup_interval = cleanup_interval

        self._running = False
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        """True between start() and stop()."""
        return self._running

    async def start(self) -> None:
        """
        Start both periodic loops.

        Calling start() on a running scheduler does nothing.

        Raises:
            SchedulerError: If the loops cannot be created.
        """
        if self._running:
            return

        try:
            self._tasks = [
                asyncio.create_task(
                    self._loop("tick", self._tick, self.update_interval),
                    name="alert-pipeline-tick",
                ),
                asyncio.create_task(
                    self._loop("sweep", self._sweep, self.cleanup_interval),
                    name="alert-lifecycle-sweep",
                ),
            ]
        except RuntimeError as e:
            for task in self._tasks:
                task.cancel()
            self._tasks = []
            raise SchedulerError(f"Failed to start scheduler: {e}") from e

        self._running = True
        logger.info(
            "scheduler_started",
            update_interval=self.update_interval,
            cleanup_interval=self.cleanup_interval,
        )

    async def stop(self) -> None:
        """
        Stop both loops.

        Waits for a job that is already running to complete. Calling
        stop() on a stopped scheduler does nothing.
        """
        if not self._running:
            return
        self._running = False

        async with self.lock:
            for task in self._tasks:
                task.cancel()
            for task in self._tasks:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._tasks = []

        logger.info("scheduler_stopped")

    async def _loop(self, job_name: str, job: Job, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if not self._running:
                return

            async with self.lock:
                if not self._running:
                    return
                await self._run_job(job_name, job)

    async def _run_job(self, job_name: str, job: Job) -> Optional[Any]:
        try:
            return await job()
        except Exception as e:
            logger.error(
                "scheduled_job_failed",
                job=job_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
