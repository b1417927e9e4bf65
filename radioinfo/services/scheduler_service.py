import logging
from datetime import datetime, timezone
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from radioinfo.config import settings
from radioinfo.services.refresh_controller import RefreshController


logger = logging.getLogger(__name__)

JOB_ID = "schedule_refresh"


class RefreshScheduler:
    """Scheduler for periodic schedule refreshes"""

    def __init__(self, interval_seconds: int | None = None):
        self.scheduler: AsyncIOScheduler | None = None
        self._controller: RefreshController | None = None
        self._interval_seconds = interval_seconds or settings.refresh_interval_sec

    async def _refresh_job(self) -> None:
        """Background job that triggers a refresh through the single-flight entry point"""
        logger.info("Scheduled refresh triggered")
        if self._controller is None:
            logger.error("Scheduled refresh fired without a controller")
            return
        if self._controller.trigger_refresh(reason="scheduled") is None:
            logger.info("Scheduled refresh dropped, previous refresh still running")

    def start(self, controller: RefreshController) -> None:
        """Start the scheduler; the first refresh runs immediately"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        self._controller = controller
        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._refresh_job,
            trigger=IntervalTrigger(seconds=self._interval_seconds, timezone='UTC'),
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        logger.info(
            "Scheduler started. Refresh every %ss, first run immediately",
            self._interval_seconds,
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled refresh time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None


refresh_scheduler = RefreshScheduler()
