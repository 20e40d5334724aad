"""Tests for WorkflowEngine transition execution"""
import pytest

from ticketflow.domain.enums import UserRole, WorkflowStatus
from ticketflow.domain.errors import (
    TransitionForbiddenError, TransitionNotFoundError, ConditionNotMetError,
    ConcurrencyError, WorkflowInactiveError, ValidationError
)
from ticketflow.engine.engine import WorkflowEngine
from ticketflow.repositories.audit_repo import AuditRepository
from ticketflow.repositories.ticket_repo import TicketRepository

from .helpers import TENANT_ID, graph_definition, insert_ticket, make_actor


@pytest.fixture
def engine():
    return WorkflowEngine()


@pytest.fixture
def audit_repo():
    return AuditRepository()


@pytest.fixture
def resolution_workflow(workflow_service, system_default):
    """Active custom workflow whose resolve edge needs a resolution"""
    return workflow_service.create_workflow(
        tenant_id=TENANT_ID,
        name="Resolution Required",
        created_by="user-admin",
        definition=graph_definition([
            {"source": "new", "target": "open"},
            {"source": "open", "target": "in_progress"},
            {"source": "in_progress", "target": "resolved", "conditions": ["REQUIRES_RESOLUTION"]},
            {"source": "resolved", "target": "closed", "actions": ["ASSIGN_TO_USER"]},
        ]),
        status=WorkflowStatus.ACTIVE
    )


class TestExecuteTransition:
    def test_staff_moves_new_ticket_to_open(self, engine, audit_repo, system_default, staff):
        ticket = insert_ticket("NEW", workflow=system_default)

        result = engine.execute_ticket_transition(ticket.ticket_id, "OPEN", staff)

        assert result.ticket.status == "OPEN"
        assert result.ticket.version == ticket.version + 1
        assert result.transition.name == "Open"

        executions = audit_repo.list_executions(TENANT_ID, ticket.ticket_id)
        assert len(executions) == 1
        assert executions[0].from_state == "NEW"
        assert executions[0].to_state == "OPEN"
        assert executions[0].transition_id == "e1"
        assert executions[0].executed_by == staff.user_id
        assert executions[0].metadata["from_snapshot"] is True

        history = audit_repo.list_history(TENANT_ID, ticket.ticket_id)
        assert [(h.field_name, h.old_value, h.new_value) for h in history] == [
            ("status", "NEW", "OPEN")
        ]

    def test_requester_cannot_open_ticket(self, engine, audit_repo, system_default, end_user):
        ticket = insert_ticket("NEW", workflow=system_default, requester_id=end_user.user_id)

        with pytest.raises(TransitionForbiddenError) as exc_info:
            engine.execute_ticket_transition(ticket.ticket_id, "OPEN", end_user)

        assert exc_info.value.error_code == "TRANSITION_FORBIDDEN"
        assert "END_USER" not in exc_info.value.details["allowed_roles"]
        assert TicketRepository().get_ticket(TENANT_ID, ticket.ticket_id).status == "NEW"
        assert audit_repo.list_executions(TENANT_ID, ticket.ticket_id) == []
        assert audit_repo.list_history(TENANT_ID, ticket.ticket_id) == []

    def test_missing_resolution_blocks_resolve(self, engine, audit_repo, resolution_workflow, staff):
        ticket = insert_ticket("IN_PROGRESS", workflow=resolution_workflow)

        with pytest.raises(ConditionNotMetError) as exc_info:
            engine.execute_ticket_transition(ticket.ticket_id, "RESOLVED", staff)

        assert exc_info.value.error_code == "CONDITION_NOT_MET"
        assert audit_repo.list_executions(TENANT_ID, ticket.ticket_id) == []

        result = engine.execute_ticket_transition(
            ticket.ticket_id, "RESOLVED", staff, resolution="Replaced toner"
        )
        assert result.ticket.status == "RESOLVED"
        assert result.ticket.resolution == "Replaced toner"

    def test_existing_resolution_is_not_overwritten(self, engine, resolution_workflow, staff):
        ticket = insert_ticket("IN_PROGRESS", workflow=resolution_workflow, resolution="First fix")

        result = engine.execute_ticket_transition(
            ticket.ticket_id, "RESOLVED", staff, resolution="Second fix"
        )

        assert result.ticket.resolution == "First fix"

    def test_undefined_transition_lists_alternatives(self, engine, system_default, staff):
        ticket = insert_ticket("CLOSED", workflow=system_default)

        with pytest.raises(TransitionNotFoundError) as exc_info:
            engine.execute_ticket_transition(ticket.ticket_id, "IN_PROGRESS", staff)

        assert exc_info.value.error_code == "TRANSITION_NOT_FOUND"
        assert exc_info.value.details["available_transitions"] == ["closed -> open"]
        assert "closed -> open" in exc_info.value.message

    def test_undefined_transition_is_a_bad_request(self, engine, system_default, staff):
        ticket = insert_ticket("CLOSED", workflow=system_default)

        with pytest.raises(ValidationError) as exc_info:
            engine.execute_ticket_transition(ticket.ticket_id, "RESOLVED", staff)

        assert isinstance(exc_info.value, TransitionNotFoundError)
        assert exc_info.value.http_status == 400

    def test_blank_target_is_rejected(self, engine, system_default, staff):
        ticket = insert_ticket("NEW", workflow=system_default)

        with pytest.raises(ValidationError):
            engine.execute_ticket_transition(ticket.ticket_id, "  ", staff)

    def test_status_match_ignores_case_and_separators(self, engine, system_default, staff):
        ticket = insert_ticket("open", workflow=system_default)

        result = engine.execute_ticket_transition(ticket.ticket_id, "in-progress", staff)

        assert result.ticket.status == "in-progress"
        assert result.transition.id == "e2"

    def test_close_sets_closed_at_and_runs_actions(self, engine, audit_repo, resolution_workflow, manager):
        ticket = insert_ticket("RESOLVED", workflow=resolution_workflow)

        result = engine.execute_ticket_transition(
            ticket.ticket_id, "CLOSED", manager, comment="Confirmed with the user"
        )

        assert result.ticket.closed_at is not None
        assert result.ticket.assigned_to_id == manager.user_id
        assert [(r.type, r.success) for r in result.action_results] == [("ASSIGN_TO_USER", True)]

        comments = TicketRepository().list_comments(TENANT_ID, ticket.ticket_id)
        assert [c.content for c in comments] == ["Confirmed with the user"]
        history = audit_repo.list_history(TENANT_ID, ticket.ticket_id)
        assert [h.field_name for h in history] == ["status", "assigned_to_id"]

    def test_stale_version_is_rejected(self, engine, audit_repo, system_default, staff, monkeypatch):
        ticket = insert_ticket("NEW", workflow=system_default)
        TicketRepository().update_ticket(TENANT_ID, ticket.ticket_id, {"title": "Edited elsewhere"})
        monkeypatch.setattr(engine.ticket_repo, "get_ticket_or_raise", lambda *args, **kwargs: ticket)

        with pytest.raises(ConcurrencyError):
            engine.execute_ticket_transition(ticket.ticket_id, "OPEN", staff)

        assert audit_repo.list_executions(TENANT_ID, ticket.ticket_id) == []


class TestWorkflowResolution:
    def test_snapshot_survives_deactivation(self, engine, workflow_service, resolution_workflow, staff):
        ticket = insert_ticket("NEW", workflow=resolution_workflow)
        workflow_service.deactivate_workflow(TENANT_ID, resolution_workflow.workflow_id)

        result = engine.execute_ticket_transition(ticket.ticket_id, "OPEN", staff)

        assert result.ticket.status == "OPEN"
        assert result.execution.workflow_id == resolution_workflow.workflow_id

    def test_snapshot_survives_definition_change(self, engine, workflow_service, resolution_workflow, staff):
        frozen = insert_ticket("NEW", workflow=resolution_workflow)
        live = insert_ticket("NEW", workflow=resolution_workflow, snapshot=False)
        updated = workflow_service.update_workflow(
            TENANT_ID,
            resolution_workflow.workflow_id,
            {"definition": graph_definition([{"source": "new", "target": "closed"}])}
        )
        assert updated.version == resolution_workflow.version + 1

        result = engine.execute_ticket_transition(frozen.ticket_id, "OPEN", staff)

        assert result.ticket.status == "OPEN"
        assert result.execution.metadata["from_snapshot"] is True
        assert result.execution.metadata["workflow_version"] == resolution_workflow.version

        with pytest.raises(TransitionNotFoundError) as exc_info:
            engine.execute_ticket_transition(live.ticket_id, "OPEN", staff)
        assert exc_info.value.details["available_transitions"] == ["new -> closed"]

    def test_live_inactive_workflow_blocks_transition(self, engine, workflow_service, resolution_workflow, staff):
        ticket = insert_ticket("NEW", workflow=resolution_workflow, snapshot=False)
        workflow_service.deactivate_workflow(TENANT_ID, resolution_workflow.workflow_id)

        with pytest.raises(WorkflowInactiveError):
            engine.execute_ticket_transition(ticket.ticket_id, "OPEN", staff)

    def test_ticket_without_workflow_adopts_active_one(self, engine, system_default, staff):
        ticket = insert_ticket("NEW")

        result = engine.execute_ticket_transition(ticket.ticket_id, "OPEN", staff)

        assert result.ticket.workflow_id == system_default.workflow_id
        assert result.execution.metadata["from_snapshot"] is False

    def test_listing_does_not_assign_workflow(self, engine, system_default, staff):
        ticket = insert_ticket("NEW")

        available = engine.get_available_transitions(ticket.ticket_id, staff)

        assert [t.to_state for t in available] == ["Open"]
        assert TicketRepository().get_ticket(TENANT_ID, ticket.ticket_id).workflow_id is None

    def test_listing_filters_by_role(self, engine, system_default):
        ticket = insert_ticket("CLOSED", workflow=system_default)
        requester = make_actor(UserRole.END_USER)

        available = engine.get_available_transitions(ticket.ticket_id, requester)

        assert [t.id for t in available] == ["e5"]

    def test_listing_is_empty_for_inactive_live_workflow(self, engine, workflow_service, resolution_workflow, staff):
        ticket = insert_ticket("NEW", workflow=resolution_workflow, snapshot=False)
        workflow_service.deactivate_workflow(TENANT_ID, resolution_workflow.workflow_id)

        assert engine.get_available_transitions(ticket.ticket_id, staff) == []
