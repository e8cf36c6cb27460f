"""Scheduler service - periodic notification log retention."""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .notification_history import NotificationHistory

logger = logging.getLogger(__name__)


class SchedulerService:
    """Runs housekeeping jobs for the notification log."""

    def __init__(self, history: NotificationHistory, retention_days: int, interval_hours: int = 24):
        self._history = history
        self._retention_days = retention_days
        self._interval_hours = interval_hours
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the scheduler."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.cleanup_old_logs,
            trigger=IntervalTrigger(hours=self._interval_hours),
            id="cleanup_notification_logs",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (log retention={self._retention_days} days, "
            f"every {self._interval_hours}h)"
        )

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def cleanup_old_logs(self) -> int:
        """Delete notification log rows past the retention window."""
        try:
            return await self._history.cleanup_old_logs(self._retention_days)
        except Exception as e:
            logger.error(f"Error cleaning up notification logs: {e}")
            return 0
