import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings

logger = logging.getLogger(__name__)

class RefreshScheduler:
    """Runs a refresh coroutine on a fixed interval."""

    JOB_ID = "conditions_refresh"

    def __init__(
        self,
        refresh: Callable[[], Awaitable[object]],
        interval_seconds: int = settings.refresh_interval
    ):
        self.refresh = refresh
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler()

    async def _run(self) -> None:
        try:
            await self.refresh()
        except Exception as e:
            logger.error(f"Scheduled refresh failed: {str(e)}")

    def start(self) -> None:
        """Start the scheduler. Must be called with a running event loop."""
        self.scheduler.add_job(
            self._run,
            IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            replace_existing=True,
            coalesce=True,
            next_run_time=datetime.now()
        )
        self.scheduler.start()
        logger.info(f"Scheduled conditions refresh every {self.interval_seconds}s")

    def get_next_run_time(self) -> Optional[str]:
        job = self.scheduler.get_job(self.JOB_ID)
        if job and job.next_run_time:
            return job.next_run_time.isoformat()
        return None

    def shutdown(self) -> None:
        if self.scheduler.running:
            logger.info("Shutting down refresh scheduler")
            self.scheduler.shutdown(wait=False)
