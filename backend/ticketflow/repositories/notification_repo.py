"""Notification Repository - Data access for notification outbox"""
from typing import List, Optional
from datetime import datetime, timedelta
from pymongo.collection import Collection
from pymongo import ASCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import NotificationOutbox
from ..domain.enums import NotificationStatus
from ..domain.errors import NotFoundError
from ..config.settings import settings
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


class NotificationRepository:
    """Repository for notification outbox operations"""
    
    def __init__(self):
        self._outbox: Collection = get_collection("notification_outbox")
    
    def create_notification(self, notification: NotificationOutbox) -> NotificationOutbox:
        """Create a notification in outbox"""
        doc = notification.model_dump(mode="python")
        doc["_id"] = notification.notification_id
        
        self._outbox.insert_one(doc)
        logger.info(
            f"Created notification: {notification.template_key.value}",
            extra={
                "notification_id": notification.notification_id,
                "ticket_id": notification.ticket_id
            }
        )
        return notification
    
    def get_notification(self, notification_id: str) -> Optional[NotificationOutbox]:
        """Get notification by ID"""
        doc = self._outbox.find_one({"notification_id": notification_id})
        if doc:
            doc.pop("_id", None)
            return NotificationOutbox.model_validate(doc)
        return None
    
    def list_for_ticket(self, ticket_id: str) -> List[NotificationOutbox]:
        """List notifications queued for a ticket"""
        cursor = self._outbox.find({"ticket_id": ticket_id}).sort("created_at", ASCENDING)
        notifications = []
        for doc in cursor:
            doc.pop("_id", None)
            notifications.append(NotificationOutbox.model_validate(doc))
        return notifications
    
    def get_pending_notifications(self, limit: int = 100) -> List[NotificationOutbox]:
        """Get pending notifications whose retry time has come"""
        now = utc_now()
        cursor = self._outbox.find({
            "status": NotificationStatus.PENDING.value,
            "$or": [
                {"next_retry_at": None},
                {"next_retry_at": {"$lte": now}}
            ]
        }).sort("created_at", ASCENDING).limit(limit)
        
        notifications = []
        for doc in cursor:
            doc.pop("_id", None)
            notifications.append(NotificationOutbox.model_validate(doc))
        return notifications
    
    def mark_sent(self, notification_id: str) -> NotificationOutbox:
        """Mark notification as sent"""
        result = self._outbox.find_one_and_update(
            {"notification_id": notification_id},
            {
                "$set": {
                    "status": NotificationStatus.SENT.value,
                    "sent_at": utc_now(),
                    "last_error": None
                }
            },
            return_document=ReturnDocument.AFTER
        )
        
        if result is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        
        result.pop("_id", None)
        logger.info(f"Notification sent: {notification_id}", extra={"notification_id": notification_id})
        return NotificationOutbox.model_validate(result)
    
    def mark_failed(
        self,
        notification_id: str,
        error: str,
        retry_at: Optional[datetime] = None
    ) -> NotificationOutbox:
        """Mark notification as failed, scheduling a retry until retries run out"""
        notification = self.get_notification(notification_id)
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        
        new_retry_count = notification.retry_count + 1
        
        if new_retry_count >= settings.notification_max_retries:
            new_status = NotificationStatus.FAILED.value
            next_retry = None
        else:
            new_status = NotificationStatus.PENDING.value
            # Exponential backoff: 1, 2, 4, 8 minutes
            next_retry = retry_at or utc_now() + timedelta(minutes=2 ** notification.retry_count)
        
        result = self._outbox.find_one_and_update(
            {"notification_id": notification_id},
            {
                "$set": {
                    "status": new_status,
                    "retry_count": new_retry_count,
                    "next_retry_at": next_retry,
                    "last_error": error[:1000]
                }
            },
            return_document=ReturnDocument.AFTER
        )
        result.pop("_id", None)
        logger.warning(
            f"Notification {notification_id} failed (attempt {new_retry_count})",
            extra={"notification_id": notification_id, "status": new_status}
        )
        return NotificationOutbox.model_validate(result)
