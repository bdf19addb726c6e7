"""
============================================================================
DEADMAN RELAY - BACKGROUND TASK SCHEDULER
============================================================================
A lightweight, asyncio-native scheduler that runs periodic background jobs
in the same event loop as the relay server. It does NOT use APScheduler or
cron, so the process stays a single unit.

Registered Jobs
---------------
The application registers one job:

    deadman_sweep          (every DEADMAN_CHECK_INTERVAL seconds)
        Runs DeadManEvaluator.evaluate_all_triggers().

A job that is still running when it comes due again is skipped for that
tick, so sweeps never overlap.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from utils.logger import get_logger


logger = get_logger("Scheduler")


# ============================================================================
# JOB DEFINITION
# ============================================================================

@dataclass
class ScheduledJob:
    """
    Describes a single periodic background job.

    Attributes
    ----------
    name : str
        Human-readable identifier (used in logs).
    interval_seconds : float
        How often the job runs.
    coroutine_factory : Callable
        An async callable (no arguments) that performs the work.
    enabled : bool
        Disabled jobs are registered but never run.
    last_run : Optional[float]
        Epoch timestamp of the last successful execution.
    next_run : float
        Epoch timestamp when the job should next execute.
    run_count : int
        Total number of successful executions since startup.
    error_count : int
        Total number of failed executions since startup.
    """
    name: str
    interval_seconds: float
    coroutine_factory: Callable[[], Awaitable[Any]]
    enabled: bool = True
    last_run: Optional[float] = None
    next_run: float = field(default_factory=time.time)
    run_count: int = 0
    error_count: int = 0
    running: bool = False


# ============================================================================
# SCHEDULER
# ============================================================================

class Scheduler:
    """
    Asyncio-based periodic job scheduler.

    Usage
    -----
        scheduler = Scheduler()
        scheduler.register_job("my_job", 300, my_async_func)
        await scheduler.start()
        # ... later ...
        await scheduler.stop()
    """

    def __init__(self, tick_interval: float = 1.0):
        self._jobs: Dict[str, ScheduledJob] = {}
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._job_tasks: set = set()
        self._tick_interval = tick_interval

    # ------------------------------------------------------------------
    # JOB REGISTRATION
    # ------------------------------------------------------------------

    def register_job(
        self,
        name: str,
        interval_seconds: float,
        coroutine_factory: Callable[[], Awaitable[Any]],
        enabled: bool = True,
        run_immediately: bool = True,
    ) -> None:
        """
        Register a new periodic job.

        Parameters
        ----------
        name : str
            Unique job name.
        interval_seconds : float
            Period in seconds.
        coroutine_factory : Callable
            An async callable that takes no arguments.
        enabled : bool
            Whether the job starts enabled.
        run_immediately : bool
            Run on the first tick instead of after one interval.
        """
        if name in self._jobs:
            logger.warning(f"Job '{name}' already registered, overwriting")

        now = time.time()
        self._jobs[name] = ScheduledJob(
            name=name,
            interval_seconds=interval_seconds,
            coroutine_factory=coroutine_factory,
            enabled=enabled,
            next_run=now if run_immediately else now + interval_seconds,
        )
        logger.debug(f"Registered job '{name}' (interval={interval_seconds}s)")

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self._running:
            logger.warning("Scheduler is already running")
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._main_loop())
        logger.info(f"✓ Scheduler started with {len(self._jobs)} job(s)")

    async def stop(self) -> None:
        """Stop the scheduler loop and cancel jobs still in flight."""
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        for task in list(self._job_tasks):
            task.cancel()
        if self._job_tasks:
            await asyncio.gather(*self._job_tasks, return_exceptions=True)
        logger.info("✓ Scheduler stopped")

    # ------------------------------------------------------------------
    # MAIN LOOP
    # ------------------------------------------------------------------

    async def _main_loop(self) -> None:
        """
        Wake up every _tick_interval seconds. For each enabled job whose
        next_run time has arrived, launch it as a background task.
        """
        logger.info("Main loop started")
        while self._running:
            now = time.time()
            for job in self._jobs.values():
                if job.enabled and now >= job.next_run:
                    job.next_run = now + job.interval_seconds
                    if job.running:
                        logger.warning(f"Job '{job.name}' still running, skipping this tick")
                        continue
                    task = asyncio.create_task(self._execute_job(job))
                    self._job_tasks.add(task)
                    task.add_done_callback(self._job_tasks.discard)

            try:
                await asyncio.sleep(self._tick_interval)
            except asyncio.CancelledError:
                break

        logger.info("Main loop exited")

    # ------------------------------------------------------------------
    # JOB EXECUTION
    # ------------------------------------------------------------------

    async def run_job_now(self, name: str) -> bool:
        """
        Run a registered job once, outside the schedule.

        Returns True if the job completed without raising.
        """
        job = self._jobs.get(name)
        if job is None:
            raise KeyError(f"Unknown job: {name}")
        return await self._execute_job(job)

    async def _execute_job(self, job: ScheduledJob) -> bool:
        """
        Run a single job, capture timing and errors.
        """
        job.running = True
        start_time = time.time()
        try:
            logger.debug(f"Running job '{job.name}'…")
            await job.coroutine_factory()
            elapsed = time.time() - start_time

            job.run_count += 1
            job.last_run = time.time()
            logger.debug(
                f"Job '{job.name}' completed in {elapsed:.2f}s "
                f"(run #{job.run_count})"
            )
            return True

        except Exception as e:
            job.error_count += 1
            elapsed = time.time() - start_time
            logger.opt(exception=e).error(
                f"Job '{job.name}' FAILED after {elapsed:.2f}s: {e}"
            )
            return False
        finally:
            job.running = False

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def get_job_stats(self) -> List[Dict[str, Any]]:
        """Return status of all registered jobs."""
        stats = []
        for job in self._jobs.values():
            stats.append({
                "name": job.name,
                "interval_seconds": job.interval_seconds,
                "enabled": job.enabled,
                "running": job.running,
                "run_count": job.run_count,
                "error_count": job.error_count,
                "last_run": (
                    datetime.fromtimestamp(job.last_run).isoformat()
                    if job.last_run else None
                ),
                "next_run": datetime.fromtimestamp(job.next_run).isoformat(),
            })
        return stats
