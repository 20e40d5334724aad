"""Tests for outbox delivery by the background scheduler"""
import asyncio

import pytest

from ticketflow.config.settings import settings
from ticketflow.domain.enums import NotificationStatus, NotificationTemplateKey
from ticketflow.repositories.notification_repo import NotificationRepository
from ticketflow.scheduler.dev_scheduler import DevScheduler
from ticketflow.services.notification_service import NotificationService

from .helpers import TENANT_ID


@pytest.fixture
def scheduler():
    return DevScheduler()


@pytest.fixture
def queued():
    return NotificationService().enqueue_ticket_created(
        tenant_id=TENANT_ID,
        ticket_id="TKT-1",
        requester_id="user-end_user",
        ticket_title="Printer on fire",
        status="NEW"
    )


def test_unconfigured_gateway_schedules_retry(scheduler, queued, monkeypatch):
    monkeypatch.setattr(settings, "email_api_url", "")

    sent = asyncio.run(scheduler.process_notifications())

    stored = NotificationRepository().get_notification(queued.notification_id)
    assert sent == 0
    assert stored.status == NotificationStatus.PENDING
    assert stored.retry_count == 1
    assert stored.next_retry_at is not None
    assert stored.last_error == "Email gateway is not configured"
    # Not due again until the backoff passes
    assert NotificationRepository().get_pending_notifications() == []


def test_retries_run_out(scheduler, queued, monkeypatch):
    monkeypatch.setattr(settings, "email_api_url", "")
    monkeypatch.setattr(settings, "notification_max_retries", 1)

    asyncio.run(scheduler.process_notifications())

    stored = NotificationRepository().get_notification(queued.notification_id)
    assert stored.status == NotificationStatus.FAILED


def test_successful_send_marks_sent(scheduler, queued, monkeypatch):
    calls = []

    async def deliver(recipients, subject, body):
        calls.append((recipients, subject))

    monkeypatch.setattr(scheduler.notification_service, "_send_via_gateway", deliver)

    sent = asyncio.run(scheduler.process_notifications())

    assert sent == 1
    assert calls == [(["user-end_user"], "Ticket created: Printer on fire")]
    stored = NotificationRepository().get_notification(queued.notification_id)
    assert stored.status == NotificationStatus.SENT


def test_workflow_email_uses_configured_subject():
    service = NotificationService()
    notification = service.enqueue_notification(
        tenant_id=TENANT_ID,
        template_key=NotificationTemplateKey.WORKFLOW_EMAIL,
        recipients=["user-end_user"],
        payload={"ticket_id": "TKT-9", "status": "RESOLVED", "subject": "We fixed it", "message": None},
        ticket_id="TKT-9"
    )

    content = service._build_email_content(notification)

    assert content["subject"] == "We fixed it"
    assert "Ticket TKT-9 status: RESOLVED" in content["body"]
    assert "/tickets/TKT-9" in content["body"]


def test_empty_outbox(scheduler):
    assert asyncio.run(scheduler.process_notifications()) == 0
