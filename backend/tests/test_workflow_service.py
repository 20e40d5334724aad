"""Tests for the workflow registry"""
import pytest
from pymongo.errors import DuplicateKeyError

from ticketflow.domain.enums import WorkflowStatus, UserRole
from ticketflow.domain.errors import (
    AlreadyExistsError, ConcurrencyError, SystemWorkflowProtectedError,
    ValidationError, WorkflowNotFoundError, WorkflowValidationError
)
from ticketflow.repositories.workflow_repo import WorkflowRepository

from .helpers import TENANT_ID, graph_definition, insert_ticket


def active_ids(tenant_id=TENANT_ID):
    return [
        w.workflow_id for w in WorkflowRepository().list_workflows(tenant_id)
        if w.status == WorkflowStatus.ACTIVE
    ]


def raise_active_index_violation(*args, **kwargs):
    """Server error for a second ACTIVE workflow in the same tenant"""
    raise DuplicateKeyError(
        "E11000 duplicate key error collection: ticketflow.workflows index: "
        "uniq_active_workflow_per_tenant dup key: { tenant_id: \"tenant-test\", status: \"ACTIVE\" }",
        11000,
        {"keyPattern": {"tenant_id": 1, "status": 1}, "keyValue": {"tenant_id": TENANT_ID, "status": "ACTIVE"}}
    )


@pytest.fixture
def custom(workflow_service, system_default):
    """Draft graph workflow"""
    return workflow_service.create_workflow(
        tenant_id=TENANT_ID,
        name="Support Desk",
        created_by="user-admin",
        definition=graph_definition([
            {"source": "new", "target": "open"},
            {"source": "open", "target": "closed"},
        ])
    )


@pytest.fixture
def relational(workflow_service, system_default):
    """Draft workflow driven by transition rows"""
    return workflow_service.create_workflow(
        tenant_id=TENANT_ID,
        name="Legacy",
        created_by="user-admin"
    )


class TestSystemDefault:
    def test_seeded_once_and_active(self, workflow_service):
        first = workflow_service.ensure_system_default(TENANT_ID)
        second = workflow_service.ensure_system_default(TENANT_ID)

        assert first.workflow_id == second.workflow_id
        assert first.is_system_default
        assert first.status == WorkflowStatus.ACTIVE
        assert first.is_default
        assert len(WorkflowRepository().list_workflows(TENANT_ID)) == 1

    def test_tenants_are_isolated(self, workflow_service, system_default):
        other = workflow_service.ensure_system_default("tenant-other")

        assert other.workflow_id != system_default.workflow_id
        assert workflow_service.find_default("tenant-other").workflow_id == other.workflow_id

    def test_cannot_be_edited(self, workflow_service, system_default):
        with pytest.raises(SystemWorkflowProtectedError) as exc_info:
            workflow_service.update_workflow(TENANT_ID, system_default.workflow_id, {"name": "Mine"})

        assert exc_info.value.message == (
            "Cannot edit system default workflow. Create a new workflow instead."
        )

    def test_cannot_be_deleted_or_deactivated(self, workflow_service, system_default):
        with pytest.raises(SystemWorkflowProtectedError):
            workflow_service.remove_workflow(TENANT_ID, system_default.workflow_id)
        with pytest.raises(SystemWorkflowProtectedError):
            workflow_service.deactivate_workflow(TENANT_ID, system_default.workflow_id)

    def test_transitions_cannot_be_added(self, workflow_service, system_default):
        with pytest.raises(SystemWorkflowProtectedError):
            workflow_service.add_transition(
                TENANT_ID, system_default.workflow_id,
                {"from_state": "NEW", "to_state": "OPEN", "name": "Open"}
            )


class TestSingleActive:
    def test_creating_active_workflow_deactivates_others(self, workflow_service, system_default):
        created = workflow_service.create_workflow(
            tenant_id=TENANT_ID,
            name="Active From Start",
            definition=graph_definition([{"source": "new", "target": "open"}]),
            status=WorkflowStatus.ACTIVE
        )

        assert active_ids() == [created.workflow_id]
        assert workflow_service.find_default(TENANT_ID).workflow_id == created.workflow_id

    def test_activate_keeps_exactly_one_active(self, workflow_service, custom, relational):
        workflow_service.activate_workflow(TENANT_ID, custom.workflow_id)
        workflow_service.activate_workflow(TENANT_ID, relational.workflow_id)

        assert active_ids() == [relational.workflow_id]

    def test_activate_stores_categorization(self, workflow_service, custom):
        activated = workflow_service.activate_workflow(
            TENANT_ID, custom.workflow_id,
            working_statuses=["OPEN"], done_statuses=["CLOSED"]
        )

        assert activated.working_statuses == ["OPEN"]
        assert activated.done_statuses == ["CLOSED"]

    def test_deactivating_active_reactivates_system_default(self, workflow_service, system_default, custom):
        workflow_service.activate_workflow(TENANT_ID, custom.workflow_id)

        deactivated = workflow_service.deactivate_workflow(TENANT_ID, custom.workflow_id)

        assert deactivated.status == WorkflowStatus.INACTIVE
        assert active_ids() == [system_default.workflow_id]

    def test_status_update_off_active_reactivates_system_default(self, workflow_service, system_default, custom):
        workflow_service.activate_workflow(TENANT_ID, custom.workflow_id)

        workflow_service.update_workflow(TENANT_ID, custom.workflow_id, {"status": "DRAFT"})

        assert active_ids() == [system_default.workflow_id]

    def test_status_update_to_active_deactivates_others(self, workflow_service, system_default, custom):
        workflow_service.update_workflow(TENANT_ID, custom.workflow_id, {"status": "ACTIVE"})

        assert active_ids() == [custom.workflow_id]

    def test_set_as_default_keeps_system_default_flag(self, workflow_service, system_default, custom):
        workflow_service.set_as_default(TENANT_ID, custom.workflow_id)

        repo = WorkflowRepository()
        assert repo.get_workflow(TENANT_ID, custom.workflow_id).is_default
        assert repo.get_workflow(TENANT_ID, system_default.workflow_id).is_default

    def test_concurrent_activation_on_create_is_a_conflict(self, workflow_service, system_default, monkeypatch):
        monkeypatch.setattr(workflow_service.repo._workflows, "insert_one", raise_active_index_violation)

        with pytest.raises(ConcurrencyError) as exc_info:
            workflow_service.create_workflow(
                tenant_id=TENANT_ID,
                name="Racing",
                definition=graph_definition([{"source": "new", "target": "open"}]),
                status=WorkflowStatus.ACTIVE
            )

        assert exc_info.value.http_status == 409

    def test_concurrent_activation_on_update_is_a_conflict(self, workflow_service, custom, monkeypatch):
        monkeypatch.setattr(
            workflow_service.repo._workflows, "find_one_and_update", raise_active_index_violation
        )

        with pytest.raises(ConcurrencyError):
            workflow_service.activate_workflow(TENANT_ID, custom.workflow_id)

    def test_duplicate_workflow_id_is_already_exists(self, system_default):
        with pytest.raises(AlreadyExistsError):
            WorkflowRepository().create_workflow(system_default)


class TestUpdateAndDelete:
    def test_definition_change_bumps_version(self, workflow_service, custom):
        updated = workflow_service.update_workflow(
            TENANT_ID, custom.workflow_id,
            {"definition": graph_definition([{"source": "new", "target": "closed"}])}
        )

        assert updated.version == custom.version + 1

    def test_name_change_keeps_version(self, workflow_service, custom):
        updated = workflow_service.update_workflow(TENANT_ID, custom.workflow_id, {"name": "Renamed"})

        assert updated.name == "Renamed"
        assert updated.version == custom.version

    def test_unreferenced_workflow_is_hard_deleted(self, workflow_service, custom):
        result = workflow_service.remove_workflow(TENANT_ID, custom.workflow_id)

        assert result["deleted"] == "hard"
        assert result["ticket_count"] == 0
        with pytest.raises(WorkflowNotFoundError):
            workflow_service.get_workflow(TENANT_ID, custom.workflow_id)

    def test_referenced_workflow_is_soft_deleted(self, workflow_service, system_default, custom):
        workflow_service.activate_workflow(TENANT_ID, custom.workflow_id)
        insert_ticket("OPEN", workflow=custom)

        result = workflow_service.remove_workflow(TENANT_ID, custom.workflow_id)

        assert result == {
            "workflow_id": custom.workflow_id,
            "deleted": "soft",
            "ticket_count": 1,
            "system_default_reactivated": True,
        }
        stored = workflow_service.get_workflow(TENANT_ID, custom.workflow_id)
        assert stored.deleted_at is not None
        assert stored.status == WorkflowStatus.INACTIVE
        assert custom.workflow_id not in [w.workflow_id for w in workflow_service.list_workflows(TENANT_ID)]
        assert active_ids() == [system_default.workflow_id]

    def test_deleted_workflow_cannot_be_modified(self, workflow_service, custom):
        insert_ticket("OPEN", workflow=custom)
        workflow_service.remove_workflow(TENANT_ID, custom.workflow_id)

        with pytest.raises(ValidationError):
            workflow_service.update_workflow(TENANT_ID, custom.workflow_id, {"name": "Back"})
        with pytest.raises(ValidationError):
            workflow_service.activate_workflow(TENANT_ID, custom.workflow_id)
        with pytest.raises(WorkflowNotFoundError):
            workflow_service.remove_workflow(TENANT_ID, custom.workflow_id)

    def test_missing_workflow_raises_not_found(self, workflow_service, system_default):
        with pytest.raises(WorkflowNotFoundError):
            workflow_service.get_workflow(TENANT_ID, "WF-missing")


class TestRelationalTransitions:
    def test_add_update_remove_bump_version(self, workflow_service, relational):
        transition = workflow_service.add_transition(TENANT_ID, relational.workflow_id, {
            "from_state": "NEW",
            "to_state": "OPEN",
            "name": "Open",
            "permissions": [{"role": "SUPPORT_STAFF"}],
        })
        assert workflow_service.get_workflow(TENANT_ID, relational.workflow_id).version == 2

        updated = workflow_service.update_transition(TENANT_ID, transition.transition_id, {
            "name": "Open It",
            "conditions": [{"type": "REQUIRES_COMMENT"}],
        })
        assert updated.name == "Open It"
        assert updated.conditions[0].type.value == "REQUIRES_COMMENT"
        assert updated.permissions[0].role == UserRole.SUPPORT_STAFF
        assert workflow_service.get_workflow(TENANT_ID, relational.workflow_id).version == 3

        workflow_service.remove_transition(TENANT_ID, transition.transition_id)
        assert workflow_service.list_transitions(TENANT_ID, relational.workflow_id) == []
        assert workflow_service.get_workflow(TENANT_ID, relational.workflow_id).version == 4

    def test_invalid_transition_is_rejected(self, workflow_service, relational):
        with pytest.raises(ValidationError) as exc_info:
            workflow_service.add_transition(TENANT_ID, relational.workflow_id, {
                "from_state": "NEW",
                "to_state": "OPEN",
                "name": "Open",
                "permissions": [{"role": "JANITOR"}],
            })

        assert exc_info.value.message == "Invalid transition"

    def test_snapshot_captures_rows(self, workflow_service, relational):
        workflow_service.add_transition(TENANT_ID, relational.workflow_id, {
            "from_state": "NEW", "to_state": "OPEN", "name": "Open"
        })
        workflow = workflow_service.get_workflow(TENANT_ID, relational.workflow_id)

        snapshot = workflow_service.capture_snapshot(workflow)

        assert snapshot.version == 2
        assert [t.name for t in snapshot.transitions] == ["Open"]


class TestDefinitionValidation:
    def test_valid_definition(self, workflow_service):
        result = workflow_service.validate_definition(graph_definition([{"source": "new", "target": "open"}]))

        assert result["is_valid"]
        assert result["errors"] == []

    def test_unknown_edge_reference_is_an_error(self, workflow_service):
        definition = graph_definition([{"source": "new", "target": "nowhere"}])

        result = workflow_service.validate_definition(definition)

        assert not result["is_valid"]
        assert [e["type"] for e in result["errors"]] == ["INVALID_EDGE_REFERENCE"]

    def test_invalid_role_is_an_error(self, workflow_service):
        definition = graph_definition([{"source": "new", "target": "open", "roles": ["JANITOR"]}])

        result = workflow_service.validate_definition(definition)

        assert [e["type"] for e in result["errors"]] == ["INVALID_ROLE"]

    def test_unknown_names_and_missing_roles_are_warnings(self, workflow_service):
        definition = graph_definition([
            {"source": "new", "target": "open", "roles": [], "conditions": ["REQUIRES_APPROVAL_X"]},
            {"source": "open", "target": "closed", "actions": ["PAGE_ONCALL"]},
        ])

        result = workflow_service.validate_definition(definition)

        assert result["is_valid"]
        assert sorted(w["type"] for w in result["warnings"]) == [
            "NO_ROLES", "UNKNOWN_ACTION", "UNKNOWN_CONDITION"
        ]

    def test_duplicate_and_unlabelled_nodes(self, workflow_service):
        definition = graph_definition([])
        definition["nodes"].append({"id": "open", "data": {"label": "Open again"}})
        definition["nodes"].append({"id": "blank", "data": {"label": " "}})

        result = workflow_service.validate_definition(definition)

        assert sorted(e["type"] for e in result["errors"]) == ["DUPLICATE_NODE_ID", "MISSING_LABEL"]

    def test_create_rejects_invalid_definition(self, workflow_service, system_default):
        with pytest.raises(WorkflowValidationError) as exc_info:
            workflow_service.create_workflow(
                tenant_id=TENANT_ID,
                name="Broken",
                definition={"nodes": [], "edges": []}
            )

        assert exc_info.value.details["errors"][0]["type"] == "EMPTY_NODES"


class TestStatuses:
    def test_graph_statuses_skip_create_node(self, workflow_service, custom):
        statuses = workflow_service.get_workflow_statuses(TENANT_ID, custom.workflow_id)

        assert statuses == ["CLOSED", "IN_PROGRESS", "NEW", "OPEN", "RESOLVED"]

    def test_relational_statuses_come_from_rows(self, workflow_service, relational):
        workflow_service.add_transition(TENANT_ID, relational.workflow_id, {
            "from_state": "Waiting On Customer", "to_state": "closed", "name": "Close"
        })

        statuses = workflow_service.get_workflow_statuses(TENANT_ID, relational.workflow_id)

        assert statuses == ["CLOSED", "WAITING_ON_CUSTOMER"]

    def test_categorization_defaults_for_system_default(self, workflow_service, system_default, custom):
        default = workflow_service.get_status_categorization(TENANT_ID, system_default.workflow_id)
        uncategorized = workflow_service.get_status_categorization(TENANT_ID, custom.workflow_id)

        assert default.working_statuses == ["NEW", "OPEN", "IN_PROGRESS", "REOPENED"]
        assert default.done_statuses == ["CLOSED", "RESOLVED"]
        assert uncategorized.working_statuses == []
        assert uncategorized.done_statuses == []

    def test_all_statuses_include_deleted_and_fallback(self, workflow_service, system_default, custom, relational):
        insert_ticket("OPEN", workflow=custom)
        workflow_service.remove_workflow(TENANT_ID, custom.workflow_id)

        entries = workflow_service.get_all_workflow_statuses(TENANT_ID)

        by_workflow = {}
        for entry in entries:
            by_workflow.setdefault(entry.workflow_id, []).append(entry.status)
        assert by_workflow[custom.workflow_id] == ["CLOSED", "IN_PROGRESS", "NEW", "OPEN", "RESOLVED"]
        assert by_workflow[relational.workflow_id] == [
            "NEW", "OPEN", "IN_PROGRESS", "ON_HOLD", "RESOLVED", "CLOSED", "REOPENED"
        ]

        entry = next(e for e in entries if e.workflow_id == custom.workflow_id and e.status == "OPEN")
        assert entry.id == f"workflow-{custom.workflow_id}-OPEN"
        assert entry.display_name == "Support Desk - OPEN"
