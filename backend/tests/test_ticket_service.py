"""Tests for ticket creation and access"""
from datetime import timedelta

import pytest

from ticketflow.domain.enums import UserRole, WorkflowStatus, NotificationTemplateKey
from ticketflow.domain.errors import NoWorkflowError, PermissionDeniedError, TicketNotFoundError
from ticketflow.repositories.notification_repo import NotificationRepository
from ticketflow.repositories.workflow_repo import WorkflowRepository
from ticketflow.services.ticket_service import TicketService
from ticketflow.utils.time import utc_now

from .helpers import TENANT_ID, graph_definition, make_actor


@pytest.fixture
def ticket_service():
    return TicketService()


class TestCreateTicket:
    def test_starts_in_create_edge_target(self, ticket_service, system_default, end_user):
        ticket = ticket_service.create_ticket(end_user, "Laptop will not boot")

        assert ticket.status == "NEW"
        assert ticket.workflow_id == system_default.workflow_id
        assert ticket.workflow_version == system_default.version
        assert ticket.requester_id == end_user.user_id
        assert ticket.version == 1

    def test_freezes_workflow_snapshot(self, ticket_service, system_default, end_user):
        ticket = ticket_service.create_ticket(end_user, "VPN drops")

        assert ticket.workflow_snapshot.workflow_id == system_default.workflow_id
        assert [e.id for e in ticket.workflow_snapshot.definition.edges] == [
            e.id for e in system_default.definition.edges
        ]

    def test_custom_create_edge_target(self, ticket_service, workflow_service, system_default, end_user):
        workflow_service.create_workflow(
            tenant_id=TENANT_ID,
            name="Triage First",
            definition=graph_definition(
                [{"source": "awaiting_triage", "target": "open"}],
                statuses=["Awaiting Triage", "Open"]
            ),
            status=WorkflowStatus.ACTIVE
        )

        ticket = ticket_service.create_ticket(end_user, "Broken chair")

        assert ticket.status == "AWAITING_TRIAGE"

    def test_writes_creation_history(self, ticket_service, system_default, end_user):
        ticket = ticket_service.create_ticket(end_user, "Monitor flickers")

        history = ticket_service.list_history(end_user, ticket.ticket_id)

        assert [(h.field_name, h.old_value, h.new_value) for h in history] == [("status", None, "NEW")]

    def test_enqueues_created_notification(self, ticket_service, system_default, end_user):
        ticket = ticket_service.create_ticket(end_user, "Keyboard missing keys")

        outbox = NotificationRepository().list_for_ticket(ticket.ticket_id)

        assert [n.template_key for n in outbox] == [NotificationTemplateKey.TICKET_CREATED]
        assert outbox[0].recipients == [end_user.user_id]

    def test_notification_failure_does_not_block_creation(
        self, ticket_service, system_default, end_user, monkeypatch
    ):
        def fail(**kwargs):
            raise RuntimeError("outbox unavailable")

        monkeypatch.setattr(ticket_service.notification_service, "enqueue_ticket_created", fail)

        ticket = ticket_service.create_ticket(end_user, "Mouse double clicks")

        assert ticket_service.get_ticket(end_user, ticket.ticket_id).title == "Mouse double clicks"

    def test_due_date_is_stored(self, ticket_service, system_default, end_user):
        due = utc_now() + timedelta(days=2)

        ticket = ticket_service.create_ticket(end_user, "Renew license", due_date=due)

        assert ticket.due_date == due

    def test_no_active_workflow(self, ticket_service, system_default, end_user):
        WorkflowRepository().deactivate_all(TENANT_ID)

        with pytest.raises(NoWorkflowError):
            ticket_service.create_ticket(end_user, "Nothing governs me")


class TestAccess:
    def test_requester_sees_only_own_tickets(self, ticket_service, system_default, end_user):
        own = ticket_service.create_ticket(end_user, "Mine")
        stranger = make_actor(UserRole.END_USER, user_id="user-stranger")
        other = ticket_service.create_ticket(stranger, "Theirs")

        assert [t.ticket_id for t in ticket_service.list_tickets(end_user)] == [own.ticket_id]
        with pytest.raises(PermissionDeniedError):
            ticket_service.get_ticket(end_user, other.ticket_id)
        with pytest.raises(PermissionDeniedError):
            ticket_service.transition_ticket(end_user, other.ticket_id, "OPEN")

    def test_staff_sees_all_tickets(self, ticket_service, system_default, end_user, staff):
        ticket_service.create_ticket(end_user, "First")
        ticket_service.create_ticket(make_actor(UserRole.END_USER, user_id="user-two"), "Second")

        assert len(ticket_service.list_tickets(staff)) == 2

    def test_missing_ticket(self, ticket_service, system_default, staff):
        with pytest.raises(TicketNotFoundError):
            ticket_service.get_ticket(staff, "TKT-missing")


class TestTransitions:
    def test_full_lifecycle(self, ticket_service, system_default, end_user, staff):
        ticket = ticket_service.create_ticket(end_user, "Printer jam")

        for target in ("OPEN", "IN_PROGRESS", "RESOLVED", "CLOSED"):
            ticket_service.transition_ticket(staff, ticket.ticket_id, target)
        result = ticket_service.transition_ticket(end_user, ticket.ticket_id, "OPEN", comment="Still jammed")

        assert result.ticket.status == "OPEN"
        assert len(ticket_service.list_executions(staff, ticket.ticket_id)) == 5
        assert len(ticket_service.list_history(staff, ticket.ticket_id)) == 6
        assert [c.content for c in ticket_service.list_comments(end_user, ticket.ticket_id)] == ["Still jammed"]

    def test_available_transitions_by_role(self, ticket_service, system_default, end_user, staff):
        ticket = ticket_service.create_ticket(end_user, "Need access")

        assert [t.to_state for t in ticket_service.get_available_transitions(staff, ticket.ticket_id)] == ["Open"]
        assert ticket_service.get_available_transitions(end_user, ticket.ticket_id) == []
