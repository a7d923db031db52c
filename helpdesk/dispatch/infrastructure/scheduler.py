"""
Periodic Jobs
=============

APScheduler wrapper for the HOURLY_CHECK sweep and the SLA monitor sweep.

Each job has its own single-flight guard, shared by the timer and the
manual trigger endpoints: a tick that arrives while the previous run is
still going is skipped, not queued.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from helpdesk.shared.concurrency import FlightOutcome, SingleFlight
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _Job:
    name: str
    func: Callable[[], Awaitable[Any]]
    interval_seconds: int
    guard: SingleFlight


class PeriodicJobs:
    """
    Registry of named periodic jobs.

    Manages the lifecycle of the scheduler and jobs.
    """

    def __init__(self):
        self._jobs: Dict[str, _Job] = {}
        self._scheduler: Optional[AsyncIOScheduler] = None

    def register(self, name: str, func: Callable[[], Awaitable[Any]], interval_seconds: int) -> None:
        """Register a job; it can be run manually even if the scheduler is off."""
        self._jobs[name] = _Job(name, func, interval_seconds, SingleFlight(name))

    def is_running(self, name: str) -> bool:
        return self._job(name).guard.is_running

    async def run(self, name: str) -> FlightOutcome:
        """
        Run a job now unless it is already running.

        Exceptions from the job are logged; the outcome then carries no result.
        """
        job = self._job(name)
        try:
            return await job.guard.run(job.func)
        except Exception:
            logger.exception("Periodic job failed", extra={"job": name})
            return FlightOutcome(skipped=False)

    async def start(self) -> None:
        """Start the scheduler with every registered job."""
        if self._scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        for job in self._jobs.values():
            self._scheduler.add_job(
                self.run,
                "interval",
                args=[job.name],
                seconds=job.interval_seconds,
                id=job.name,
                name=job.name,
                misfire_grace_time=job.interval_seconds,
                coalesce=True,
                max_instances=1,
                replace_existing=True
            )
        self._scheduler.start()
        logger.info(
            "Scheduler started",
            extra={"jobs": {name: job.interval_seconds for name, job in self._jobs.items()}}
        )

    async def stop(self) -> None:
        """Stop the scheduler; in-flight runs are drained by their owners."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")

    @property
    def scheduler_running(self) -> bool:
        return self._scheduler is not None

    def _job(self, name: str) -> _Job:
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(f"unknown job '{name}'")
