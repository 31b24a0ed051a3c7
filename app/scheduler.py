"""Background scheduler for periodic sync"""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.dependencies import get_sync_service
from app.services.sync_service import SyncService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "calendar_sync"
SCHEDULED_MODES = ("issues", "projects", "full")


class SyncScheduler:
    """Runs the shared sync service on a cron schedule"""

    def __init__(
        self,
        cron_schedule: str = settings.sync_cron_schedule,
        mode: str = settings.sync_scheduled_mode,
        service_factory: Callable[[], SyncService] = get_sync_service,
    ):
        if mode not in SCHEDULED_MODES:
            raise ValueError(f"Unknown scheduled sync mode: {mode}")
        self.cron_schedule = cron_schedule
        self.mode = mode
        self.service_factory = service_factory
        self.scheduler = BackgroundScheduler()

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            func=self._sync_job,
            trigger=CronTrigger.from_crontab(self.cron_schedule),
            id=SYNC_JOB_ID,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Sync scheduler started ({self.mode} sync on '{self.cron_schedule}')")

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Sync scheduler stopped")

    def next_run_time(self) -> Optional[str]:
        job = self.scheduler.get_job(SYNC_JOB_ID)
        if job is None or job.next_run_time is None:
            return None
        return job.next_run_time.isoformat()

    def _sync_job(self):
        """Job function to run the configured sync"""
        logger.info(f"Running scheduled {self.mode} sync")
        try:
            service = self.service_factory()
            run = {
                "issues": service.sync_issues,
                "projects": service.sync_projects,
                "full": service.full_sync,
            }[self.mode]
            result = run()
            logger.info(f"Scheduled sync completed: {result.get('status')}")
        except Exception as e:
            logger.error(f"Scheduled sync failed: {e}")


# Global scheduler instance
scheduler = SyncScheduler()
