"""Notification Service - Outbox enqueueing and email gateway delivery"""
from typing import Any, Dict, List, Optional
import httpx

from ..domain.models import NotificationOutbox
from ..domain.enums import NotificationStatus, NotificationTemplateKey
from ..domain.errors import EmailSendError
from ..repositories.notification_repo import NotificationRepository
from ..config.settings import settings
from ..utils.idgen import generate_notification_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


SUBJECTS = {
    NotificationTemplateKey.TICKET_CREATED: "Ticket created: {ticket_title}",
    NotificationTemplateKey.TICKET_STATUS_CHANGED: "Ticket {ticket_id} is now {status}",
    NotificationTemplateKey.WORKFLOW_NOTIFICATION: "Update on ticket {ticket_id}",
    NotificationTemplateKey.WORKFLOW_EMAIL: "Ticket {ticket_id}: {status}",
}


class NotificationService:
    """Service for queueing and sending notifications"""
    
    def __init__(self):
        self.repo = NotificationRepository()
    
    # =========================================================================
    # Outbox Creation
    # =========================================================================
    
    def enqueue_notification(
        self,
        tenant_id: str,
        template_key: NotificationTemplateKey,
        recipients: List[str],
        payload: Dict[str, Any],
        ticket_id: Optional[str] = None
    ) -> NotificationOutbox:
        """
        Enqueue a notification for sending
        
        Notifications are stored in outbox and sent asynchronously.
        """
        notification = NotificationOutbox(
            notification_id=generate_notification_id(),
            tenant_id=tenant_id,
            ticket_id=ticket_id,
            template_key=template_key,
            recipients=recipients,
            payload=payload,
            status=NotificationStatus.PENDING,
            created_at=utc_now()
        )
        
        return self.repo.create_notification(notification)
    
    def enqueue_ticket_created(
        self,
        tenant_id: str,
        ticket_id: str,
        requester_id: str,
        ticket_title: str,
        status: str
    ) -> NotificationOutbox:
        """Enqueue ticket created notification to requester"""
        return self.enqueue_notification(
            tenant_id=tenant_id,
            template_key=NotificationTemplateKey.TICKET_CREATED,
            recipients=[requester_id],
            payload={
                "ticket_id": ticket_id,
                "ticket_title": ticket_title,
                "status": status,
                "ticket_url": f"{settings.frontend_url}/tickets/{ticket_id}"
            },
            ticket_id=ticket_id
        )
    
    # =========================================================================
    # Delivery
    # =========================================================================
    
    async def send_notification(self, notification: NotificationOutbox) -> bool:
        """
        Send a single notification via the email gateway
        
        Returns True if sent successfully, False otherwise.
        """
        try:
            content = self._build_email_content(notification)
            await self._send_via_gateway(
                recipients=notification.recipients,
                subject=content["subject"],
                body=content["body"]
            )
            self.repo.mark_sent(notification.notification_id)
            return True
        
        except Exception as e:
            self.repo.mark_failed(notification.notification_id, str(e))
            logger.error(
                f"Failed to send notification: {notification.notification_id}",
                extra={
                    "notification_id": notification.notification_id,
                    "ticket_id": notification.ticket_id,
                    "error_code": type(e).__name__
                }
            )
            return False
    
    def _build_email_content(self, notification: NotificationOutbox) -> Dict[str, str]:
        """Render subject and plain HTML body for a notification"""
        payload = {k: v for k, v in notification.payload.items() if v is not None}
        payload.setdefault("ticket_id", notification.ticket_id or "")
        payload.setdefault("ticket_title", "")
        payload.setdefault("status", "")
        
        subject = payload.get("subject") or SUBJECTS[notification.template_key].format(**payload)
        message = payload.get("message") or f"Ticket {payload['ticket_id']} status: {payload['status']}"
        link = f"{settings.frontend_url}/tickets/{payload['ticket_id']}"
        body = f"<p>{message}</p><p><a href=\"{link}\">View ticket</a></p>"
        return {"subject": subject, "body": body}
    
    async def _send_via_gateway(
        self,
        recipients: List[str],
        subject: str,
        body: str
    ) -> None:
        """Post the message to the email gateway, which resolves user IDs to addresses"""
        if not settings.email_api_url:
            raise EmailSendError("Email gateway is not configured")
        
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                settings.email_api_url,
                headers={
                    "Authorization": f"Bearer {settings.email_api_key}",
                    "Content-Type": "application/json"
                },
                json={
                    "from": settings.email_from,
                    "to_user_ids": recipients,
                    "subject": subject,
                    "html": body
                }
            )
            
            if response.status_code not in [200, 201, 202]:
                raise EmailSendError(
                    f"Email gateway error: {response.status_code}",
                    details={"response": response.text[:500]}
                )
