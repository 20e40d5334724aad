"""Dev Scheduler - Background delivery of the notification outbox

Runs inside the API process in development. Failed sends are retried by
the outbox itself (PENDING with a backoff next_retry_at) until
notification_max_retries is reached.
"""
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import settings
from ..repositories.notification_repo import NotificationRepository
from ..services.notification_service import NotificationService
from ..utils.logger import get_logger, set_correlation_id
from ..utils.idgen import generate_correlation_id

logger = get_logger(__name__)


class DevScheduler:
    """APScheduler wrapper that drains pending notifications on an interval"""
    
    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.notification_repo = NotificationRepository()
        self.notification_service = NotificationService()
        self._is_running = False
        self._process_count = 0
    
    def start(self) -> None:
        """Start the scheduler"""
        if self._is_running:
            logger.warning("Scheduler already running")
            return
        
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.process_notifications,
            trigger=IntervalTrigger(seconds=settings.scheduler_interval_seconds),
            id="process_notifications",
            name="Process pending notifications",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            f"Scheduler started (every {settings.scheduler_interval_seconds}s)"
        )
    
    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown()
            self._is_running = False
            logger.info("Dev scheduler stopped")
    
    @property
    def is_running(self) -> bool:
        return self._is_running
    
    async def process_notifications(self, limit: int = 50) -> int:
        """
        Send every pending notification that is due
        
        Returns the number sent successfully. Errors are logged per
        notification so one bad row never blocks the rest.
        """
        set_correlation_id(generate_correlation_id())
        sent = 0
        
        try:
            notifications = self.notification_repo.get_pending_notifications(limit=limit)
        except Exception as e:
            logger.error(f"Failed to load pending notifications: {e}", exc_info=True)
            return 0
        
        if not notifications:
            return 0
        
        logger.info(f"Found {len(notifications)} pending notifications to process")
        
        for notification in notifications:
            try:
                if await self.notification_service.send_notification(notification):
                    sent += 1
                    self._process_count += 1
            except Exception as e:
                logger.error(
                    f"Error processing notification {notification.notification_id}: {e}",
                    exc_info=True,
                    extra={"notification_id": notification.notification_id}
                )
        
        logger.info(
            f"Notification cycle done: {sent}/{len(notifications)} sent",
            extra={"status": "completed"}
        )
        return sent


# Global scheduler instance
_scheduler: Optional[DevScheduler] = None


def get_scheduler() -> DevScheduler:
    """Get or create scheduler instance"""
    global _scheduler
    if _scheduler is None:
        _scheduler = DevScheduler()
    return _scheduler


def start_scheduler() -> None:
    """Start the global scheduler"""
    get_scheduler().start()


def stop_scheduler() -> None:
    """Stop the global scheduler"""
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None
