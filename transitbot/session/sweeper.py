"""Periodic expiry sweep for the session store, backed by APScheduler."""

from collections.abc import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

SWEEP_JOB_ID = "session-sweep"


class SessionSweeper:
    """Owns the recurring job that evicts expired sessions.

    Nothing starts on import: the host process calls ``start()`` once its
    event loop is running and ``stop()`` on shutdown.
    """

    def __init__(self, sweep: Callable[[], int], interval_s: float = 600):
        self._sweep = sweep
        self.interval_s = interval_s
        self._scheduler: AsyncIOScheduler | None = None
        self.last_removed = 0

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> int:
        """Run one sweep now and return the number of sessions removed."""
        try:
            removed = self._sweep()
        except Exception as e:
            logger.error(f"Session sweep failed: {e}")
            return 0
        self.last_removed = removed
        if removed:
            logger.info(f"Session sweep removed {removed} expired sessions")
        return removed

    async def _run_job(self) -> None:
        """APScheduler callback; a coroutine so the sweep runs on the event loop."""
        self.run_once()

    def start(self) -> None:
        """Schedule the sweep on the running event loop."""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        self._scheduler.add_job(
            self._run_job,
            IntervalTrigger(seconds=self.interval_s),
            id=SWEEP_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Session sweeper started (every {self.interval_s:.0f}s)")

    def stop(self) -> None:
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Session sweeper stopped")
