"""
Periodic lifecycle sweep.

Read-triggered promotion keeps listings correct on its own. The sweep only
matters for consumers that read the store directly, so it is off unless
LIFECYCLE_SWEEP_MINUTES is set.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import sessionmaker

from ..core.booking.clock import Clock, SystemClock
from ..core.booking.lifecycle import WorkoutLifecycle
from .database.client import session_scope
from .database.repositories.workouts import WorkoutRepository

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "lifecycle_sweep"


def run_lifecycle_sweep(factory: sessionmaker, clock: Optional[Clock] = None) -> int:
    """Run one sweep in its own session. Returns the number promoted."""
    with session_scope(factory) as session:
        lifecycle = WorkoutLifecycle(WorkoutRepository(session), clock or SystemClock())
        return lifecycle.sweep()


class LifecycleScheduler:
    """Runs run_lifecycle_sweep on a fixed interval."""

    def __init__(self, factory: sessionmaker, interval_minutes: int) -> None:
        self.scheduler = AsyncIOScheduler()
        self.is_running = False
        self._factory = factory
        self._interval_minutes = interval_minutes

    def start(self) -> None:
        if self.is_running:
            return

        self.scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id=SWEEP_JOB_ID,
            name="Promote workouts whose start or end has passed",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self.is_running = True
        logger.info(
            "Lifecycle scheduler started",
            extra={"interval_minutes": self._interval_minutes}
        )

    def shutdown(self) -> None:
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Lifecycle scheduler stopped")

    def _run(self) -> None:
        try:
            run_lifecycle_sweep(self._factory)
        except Exception as e:
            # A failed sweep is retried at the next interval.
            logger.error("Lifecycle sweep failed", extra={"error": str(e)}, exc_info=True)
