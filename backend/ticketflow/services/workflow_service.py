"""Workflow Service - Workflow registry business logic

Every tenant owns a protected system default workflow, seeded lazily on
first access. Exactly one non-deleted workflow per tenant is ACTIVE at
any time: activating one deactivates the rest, and taking the active
workflow out of service hands the role back to the system default.
"""
from typing import Any, Dict, List, Optional, Set
from pydantic import ValidationError as PydanticValidationError
from pymongo.client_session import ClientSession

from ..domain.models import (
    Workflow, WorkflowDefinition, WorkflowSnapshot, WorkflowTransition,
    StatusCategorization, WorkflowStatusEntry
)
from ..domain.enums import (
    WorkflowStatus, UserRole, ConditionType, ActionType,
    SYSTEM_STATUSES, DEFAULT_WORKING_STATUSES, DEFAULT_DONE_STATUSES
)
from ..domain.errors import (
    ConflictError, ValidationError, WorkflowNotFoundError,
    WorkflowValidationError, SystemWorkflowProtectedError
)
from ..engine.transition_resolver import CREATE_NODE_ID, normalize_state, to_status_value
from ..repositories.mongo_client import run_in_transaction
from ..repositories.ticket_repo import TicketRepository
from ..repositories.workflow_repo import WorkflowRepository
from .default_workflow import (
    DEFAULT_WORKFLOW_NAME, DEFAULT_WORKFLOW_DESCRIPTION, build_default_definition
)
from ..utils.idgen import generate_workflow_id, generate_transition_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Node or edge endpoints that are editor actions rather than statuses
ACTION_LABELS = {"CREATE_TICKET", "CREATE TICKET", "CREATE", "START", "END"}

EDIT_PROTECTED_MESSAGE = "Cannot edit system default workflow. Create a new workflow instead."
DELETE_PROTECTED_MESSAGE = (
    "Cannot delete system default workflow. It is required for the system to function."
)
DEACTIVATE_PROTECTED_MESSAGE = (
    "Cannot deactivate system default workflow. It is required for the system to function."
)

UPDATABLE_FIELDS = {
    "name", "description", "definition", "status", "is_default",
    "working_statuses", "done_statuses"
}


def is_action_label(value: Optional[str]) -> bool:
    """True for labels like 'Create Ticket' or 'START' that mark editor actions"""
    if not value:
        return True
    upper = value.strip().upper()
    return upper in ACTION_LABELS or ("CREATE" in upper and "TICKET" in upper)


class WorkflowService:
    """Service for workflow registry operations"""
    
    def __init__(self):
        self.repo = WorkflowRepository()
        self.ticket_repo = TicketRepository()
    
    # =========================================================================
    # System Default
    # =========================================================================
    
    def ensure_system_default(
        self,
        tenant_id: str,
        session: Optional[ClientSession] = None
    ) -> Workflow:
        """
        Return the tenant's system default workflow, seeding it when missing
        
        The seeded workflow becomes ACTIVE only when the tenant has no
        active workflow yet.
        """
        existing = self.repo.find_system_default(tenant_id, session=session)
        if existing:
            return existing
        
        now = utc_now()
        has_active = self.repo.find_active(tenant_id, session=session) is not None
        workflow = Workflow(
            workflow_id=generate_workflow_id(),
            tenant_id=tenant_id,
            name=DEFAULT_WORKFLOW_NAME,
            description=DEFAULT_WORKFLOW_DESCRIPTION,
            status=WorkflowStatus.INACTIVE if has_active else WorkflowStatus.ACTIVE,
            is_default=not has_active,
            is_system_default=True,
            version=1,
            definition=WorkflowDefinition.model_validate(build_default_definition()),
            working_statuses=list(DEFAULT_WORKING_STATUSES),
            done_statuses=list(DEFAULT_DONE_STATUSES),
            created_by="system",
            created_at=now,
            updated_at=now
        )
        
        try:
            created = self.repo.create_workflow(workflow, session=session)
        except ConflictError:
            # A concurrent request seeded it first
            if session is not None:
                raise
            seeded = self.repo.find_system_default(tenant_id)
            if seeded is None:
                raise
            return seeded
        
        logger.info(
            f"Seeded system default workflow for tenant {tenant_id}",
            extra={"tenant_id": tenant_id, "workflow_id": created.workflow_id}
        )
        return created
    
    def _reactivate_system_default(
        self,
        tenant_id: str,
        session: Optional[ClientSession] = None
    ) -> Workflow:
        system_default = self.ensure_system_default(tenant_id, session=session)
        self.repo.deactivate_all(
            tenant_id,
            exclude_workflow_id=system_default.workflow_id,
            session=session
        )
        reactivated = self.repo.update_workflow(
            tenant_id,
            system_default.workflow_id,
            {"status": WorkflowStatus.ACTIVE.value},
            session=session
        )
        logger.info(
            "Reactivated system default workflow",
            extra={"tenant_id": tenant_id, "workflow_id": system_default.workflow_id}
        )
        return reactivated
    
    # =========================================================================
    # Queries
    # =========================================================================
    
    def get_workflow(self, tenant_id: str, workflow_id: str) -> Workflow:
        """Get workflow by ID"""
        return self.repo.get_workflow_or_raise(tenant_id, workflow_id)
    
    def list_workflows(self, tenant_id: str) -> List[Workflow]:
        """List non-deleted workflows, newest first"""
        self.ensure_system_default(tenant_id)
        return self.repo.list_workflows(tenant_id)
    
    def find_default(self, tenant_id: str) -> Optional[Workflow]:
        """The tenant's ACTIVE workflow (the one new tickets get)"""
        self.ensure_system_default(tenant_id)
        return self.repo.find_active(tenant_id)
    
    def capture_snapshot(self, workflow: Workflow) -> WorkflowSnapshot:
        """Freeze a workflow's current definition for a new ticket"""
        transitions = [] if workflow.is_graph else self.repo.list_transitions(workflow.workflow_id)
        return WorkflowSnapshot(
            workflow_id=workflow.workflow_id,
            name=workflow.name,
            version=workflow.version,
            definition=workflow.definition,
            transitions=transitions,
            captured_at=utc_now()
        )
    
    # =========================================================================
    # Create / Update / Delete
    # =========================================================================
    
    def create_workflow(
        self,
        tenant_id: str,
        name: str,
        created_by: Optional[str] = None,
        description: Optional[str] = None,
        definition: Optional[Dict[str, Any]] = None,
        status: WorkflowStatus = WorkflowStatus.DRAFT,
        is_default: bool = False,
        working_statuses: Optional[List[str]] = None,
        done_statuses: Optional[List[str]] = None
    ) -> Workflow:
        """
        Create a workflow
        
        Creating it ACTIVE deactivates every other workflow of the tenant
        in the same transaction.
        
        Raises:
            WorkflowValidationError: Definition is malformed
        """
        self.ensure_system_default(tenant_id)
        status = WorkflowStatus(status)
        now = utc_now()
        
        workflow = Workflow(
            workflow_id=generate_workflow_id(),
            tenant_id=tenant_id,
            name=name,
            description=description,
            status=status,
            is_default=is_default,
            is_system_default=False,
            version=1,
            definition=self._parse_definition(definition),
            working_statuses=working_statuses or [],
            done_statuses=done_statuses or [],
            created_by=created_by,
            created_at=now,
            updated_at=now
        )
        
        def write(session: Optional[ClientSession]) -> Workflow:
            if is_default:
                self.repo.clear_default_flag(tenant_id, session=session)
            if status == WorkflowStatus.ACTIVE:
                self.repo.deactivate_all(tenant_id, session=session)
            return self.repo.create_workflow(workflow, session=session)
        
        return run_in_transaction(write)
    
    def update_workflow(
        self,
        tenant_id: str,
        workflow_id: str,
        updates: Dict[str, Any]
    ) -> Workflow:
        """
        Apply a partial update
        
        A definition change bumps the version. Moving the workflow to
        ACTIVE deactivates the others; moving the active workflow to
        another status reactivates the system default.
        
        Raises:
            SystemWorkflowProtectedError: Target is the system default
            ValidationError: Target is soft-deleted
        """
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        self._require_editable(workflow)
        
        changes = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        if not changes:
            return workflow
        
        if "definition" in changes:
            parsed = self._parse_definition(changes["definition"])
            changes["definition"] = parsed.model_dump(mode="python") if parsed else None
            changes["version"] = workflow.version + 1
        
        new_status: Optional[WorkflowStatus] = None
        if changes.get("status") is not None:
            new_status = WorkflowStatus(changes["status"])
            changes["status"] = new_status.value
        else:
            changes.pop("status", None)
        
        was_active = workflow.status == WorkflowStatus.ACTIVE
        
        def write(session: Optional[ClientSession]) -> Workflow:
            if changes.get("is_default"):
                self.repo.clear_default_flag(
                    tenant_id, exclude_workflow_id=workflow_id, session=session
                )
            if new_status == WorkflowStatus.ACTIVE and not was_active:
                self.repo.deactivate_all(
                    tenant_id, exclude_workflow_id=workflow_id, session=session
                )
            updated = self.repo.update_workflow(tenant_id, workflow_id, changes, session=session)
            if was_active and new_status is not None and new_status != WorkflowStatus.ACTIVE:
                self._reactivate_system_default(tenant_id, session=session)
            return updated
        
        return run_in_transaction(write)
    
    def remove_workflow(self, tenant_id: str, workflow_id: str) -> Dict[str, Any]:
        """
        Delete a workflow
        
        Soft-deletes when tickets still reference it, hard-deletes
        otherwise. Removing the active workflow reactivates the system
        default.
        """
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        if workflow.is_system_default:
            raise SystemWorkflowProtectedError(
                DELETE_PROTECTED_MESSAGE,
                details={"workflow_id": workflow_id}
            )
        if workflow.deleted_at is not None:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        
        ticket_count = self.ticket_repo.count_by_workflow(tenant_id, workflow_id)
        was_active = workflow.status == WorkflowStatus.ACTIVE
        
        def write(session: Optional[ClientSession]) -> None:
            if ticket_count > 0:
                self.repo.update_workflow(
                    tenant_id,
                    workflow_id,
                    {
                        "deleted_at": utc_now(),
                        "is_default": False,
                        "status": WorkflowStatus.INACTIVE.value
                    },
                    session=session
                )
            else:
                self.repo.delete_workflow(tenant_id, workflow_id, session=session)
            if was_active:
                self._reactivate_system_default(tenant_id, session=session)
        
        run_in_transaction(write)
        
        mode = "soft" if ticket_count > 0 else "hard"
        logger.info(
            f"Removed workflow ({mode} delete, {ticket_count} ticket(s))",
            extra={"tenant_id": tenant_id, "workflow_id": workflow_id}
        )
        return {
            "workflow_id": workflow_id,
            "deleted": mode,
            "ticket_count": ticket_count,
            "system_default_reactivated": was_active
        }
    
    # =========================================================================
    # Activation / Default Flag
    # =========================================================================
    
    def activate_workflow(
        self,
        tenant_id: str,
        workflow_id: str,
        working_statuses: Optional[List[str]] = None,
        done_statuses: Optional[List[str]] = None
    ) -> Workflow:
        """Make a workflow the tenant's single ACTIVE workflow"""
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        if workflow.deleted_at is not None:
            raise ValidationError(
                "Cannot activate a deleted workflow",
                details={"workflow_id": workflow_id}
            )
        
        updates: Dict[str, Any] = {"status": WorkflowStatus.ACTIVE.value}
        if working_statuses is not None:
            updates["working_statuses"] = working_statuses
        if done_statuses is not None:
            updates["done_statuses"] = done_statuses
        
        def write(session: Optional[ClientSession]) -> Workflow:
            self.repo.deactivate_all(tenant_id, exclude_workflow_id=workflow_id, session=session)
            return self.repo.update_workflow(tenant_id, workflow_id, updates, session=session)
        
        activated = run_in_transaction(write)
        logger.info(
            f"Activated workflow {workflow.name}",
            extra={"tenant_id": tenant_id, "workflow_id": workflow_id}
        )
        return activated
    
    def deactivate_workflow(self, tenant_id: str, workflow_id: str) -> Workflow:
        """Set a workflow INACTIVE, handing the active role to the system default"""
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        if workflow.is_system_default:
            raise SystemWorkflowProtectedError(
                DEACTIVATE_PROTECTED_MESSAGE,
                details={"workflow_id": workflow_id}
            )
        
        was_active = workflow.status == WorkflowStatus.ACTIVE
        
        def write(session: Optional[ClientSession]) -> Workflow:
            updated = self.repo.update_workflow(
                tenant_id,
                workflow_id,
                {"status": WorkflowStatus.INACTIVE.value},
                session=session
            )
            if was_active:
                self._reactivate_system_default(tenant_id, session=session)
            return updated
        
        return run_in_transaction(write)
    
    def set_as_default(self, tenant_id: str, workflow_id: str) -> Workflow:
        """Flag a workflow as the tenant's default, leaving the system default flag alone"""
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        if workflow.deleted_at is not None:
            raise ValidationError(
                "Cannot set a deleted workflow as default",
                details={"workflow_id": workflow_id}
            )
        
        def write(session: Optional[ClientSession]) -> Workflow:
            self.repo.clear_default_flag(
                tenant_id,
                exclude_workflow_id=workflow_id,
                skip_system_default=True,
                session=session
            )
            return self.repo.update_workflow(
                tenant_id, workflow_id, {"is_default": True}, session=session
            )
        
        return run_in_transaction(write)
    
    # =========================================================================
    # Relational Transitions
    # =========================================================================
    
    def list_transitions(self, tenant_id: str, workflow_id: str) -> List[WorkflowTransition]:
        """List a workflow's relational transitions"""
        self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        return self.repo.list_transitions(workflow_id)
    
    def add_transition(
        self,
        tenant_id: str,
        workflow_id: str,
        data: Dict[str, Any]
    ) -> WorkflowTransition:
        """Add a relational transition row and bump the workflow version"""
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        self._require_editable(workflow)
        
        now = utc_now()
        transition = self._build_transition({
            **data,
            "transition_id": generate_transition_id(),
            "workflow_id": workflow_id,
            "tenant_id": tenant_id,
            "created_at": now,
            "updated_at": now,
        })
        
        def write(session: Optional[ClientSession]) -> WorkflowTransition:
            created = self.repo.create_transition(transition, session=session)
            self._bump_version(workflow, session=session)
            return created
        
        return run_in_transaction(write)
    
    def update_transition(
        self,
        tenant_id: str,
        transition_id: str,
        updates: Dict[str, Any]
    ) -> WorkflowTransition:
        """Partially update a relational transition row"""
        existing = self.repo.get_transition_or_raise(tenant_id, transition_id)
        workflow = self.repo.get_workflow_or_raise(tenant_id, existing.workflow_id)
        self._require_editable(workflow)
        
        immutable = {"transition_id", "workflow_id", "tenant_id", "created_at", "updated_at"}
        changes = {k: v for k, v in updates.items() if k not in immutable}
        if not changes:
            return existing
        
        merged = self._build_transition({**existing.model_dump(mode="python"), **changes})
        dumped = merged.model_dump(mode="python")
        
        def write(session: Optional[ClientSession]) -> WorkflowTransition:
            updated = self.repo.update_transition(
                tenant_id, transition_id, {k: dumped[k] for k in changes}, session=session
            )
            self._bump_version(workflow, session=session)
            return updated
        
        return run_in_transaction(write)
    
    def remove_transition(self, tenant_id: str, transition_id: str) -> None:
        """Delete a relational transition row"""
        existing = self.repo.get_transition_or_raise(tenant_id, transition_id)
        workflow = self.repo.get_workflow_or_raise(tenant_id, existing.workflow_id)
        self._require_editable(workflow)
        
        def write(session: Optional[ClientSession]) -> None:
            self.repo.delete_transition(tenant_id, transition_id, session=session)
            self._bump_version(workflow, session=session)
        
        run_in_transaction(write)
    
    # =========================================================================
    # Statuses
    # =========================================================================
    
    def get_workflow_statuses(self, tenant_id: str, workflow_id: str) -> List[str]:
        """Distinct statuses a workflow defines (node labels and transition endpoints)"""
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        return self._collect_statuses(workflow)
    
    def get_status_categorization(
        self,
        tenant_id: str,
        workflow_id: str
    ) -> StatusCategorization:
        """Working/done lists, with built-in defaults for an uncategorized default workflow"""
        workflow = self.repo.get_workflow_or_raise(tenant_id, workflow_id)
        
        working = list(workflow.working_statuses)
        done = list(workflow.done_statuses)
        if not working and not done and (workflow.is_default or workflow.is_system_default):
            working = list(DEFAULT_WORKING_STATUSES)
            done = list(DEFAULT_DONE_STATUSES)
        
        return StatusCategorization(working_statuses=working, done_statuses=done)
    
    def get_all_workflow_statuses(self, tenant_id: str) -> List[WorkflowStatusEntry]:
        """
        Every (workflow, status) pair of the tenant, deleted workflows included
        
        Historical tickets may still sit in statuses of a deleted
        workflow, so those stay selectable for categorization. A workflow
        that defines no statuses contributes the system statuses.
        """
        self.ensure_system_default(tenant_id)
        
        entries: List[WorkflowStatusEntry] = []
        for workflow in self.repo.list_workflows(tenant_id, include_deleted=True):
            statuses = self._collect_statuses(workflow) or list(SYSTEM_STATUSES)
            for status in statuses:
                entries.append(WorkflowStatusEntry(
                    id=f"workflow-{workflow.workflow_id}-{status}",
                    workflow_id=workflow.workflow_id,
                    workflow_name=workflow.name,
                    status=status,
                    display_name=f"{workflow.name} - {status}"
                ))
        return entries
    
    def _collect_statuses(self, workflow: Workflow) -> List[str]:
        seen: Set[str] = set()
        statuses: List[str] = []
        
        def add(value: Optional[str]) -> None:
            if is_action_label(value):
                return
            status = to_status_value(value)
            key = normalize_state(status)
            if key not in seen:
                seen.add(key)
                statuses.append(status)
        
        if workflow.definition:
            labels = {}
            for node in workflow.definition.nodes:
                if node.id == CREATE_NODE_ID:
                    continue
                labels[node.id] = node.data.label or node.id
                add(labels[node.id])
            for edge in workflow.definition.edges:
                if edge.source != CREATE_NODE_ID:
                    add(labels.get(edge.source, edge.source))
                add(labels.get(edge.target, edge.target))
        else:
            for transition in self.repo.list_transitions(workflow.workflow_id):
                add(transition.from_state)
                add(transition.to_state)
        
        return sorted(statuses)
    
    # =========================================================================
    # Helpers
    # =========================================================================
    
    def _require_editable(self, workflow: Workflow) -> None:
        if workflow.is_system_default:
            raise SystemWorkflowProtectedError(
                EDIT_PROTECTED_MESSAGE,
                details={"workflow_id": workflow.workflow_id}
            )
        if workflow.deleted_at is not None:
            raise ValidationError(
                "Cannot modify a deleted workflow",
                details={"workflow_id": workflow.workflow_id}
            )
    
    def _bump_version(
        self,
        workflow: Workflow,
        session: Optional[ClientSession] = None
    ) -> None:
        self.repo.update_workflow(
            workflow.tenant_id,
            workflow.workflow_id,
            {"version": workflow.version + 1},
            session=session
        )
    
    def _build_transition(self, data: Dict[str, Any]) -> WorkflowTransition:
        try:
            return WorkflowTransition.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid transition",
                details={"errors": [err["msg"] for err in e.errors()]}
            )
    
    def _parse_definition(
        self,
        definition: Optional[Dict[str, Any]]
    ) -> Optional[WorkflowDefinition]:
        """Validate editor JSON and turn it into a WorkflowDefinition"""
        if definition is None:
            return None
        if isinstance(definition, WorkflowDefinition):
            definition = definition.model_dump(mode="python")
        
        result = self.validate_definition(definition)
        if not result["is_valid"]:
            raise WorkflowValidationError(
                "Workflow definition is invalid",
                details={"errors": result["errors"], "warnings": result["warnings"]}
            )
        return WorkflowDefinition.model_validate(definition)
    
    def validate_definition(self, definition: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a graph definition
        
        Returns validation result with errors and warnings
        """
        errors: List[Dict[str, Any]] = []
        warnings: List[Dict[str, Any]] = []
        
        if not isinstance(definition, dict):
            return {
                "is_valid": False,
                "errors": [{"type": "INVALID_DEFINITION", "message": "Definition must be an object"}],
                "warnings": []
            }
        
        nodes = definition.get("nodes") or []
        edges = definition.get("edges") or []
        
        if not nodes:
            errors.append({
                "type": "EMPTY_NODES",
                "message": "Workflow must have at least one status",
                "path": "nodes"
            })
        
        node_ids: Set[str] = set()
        for i, node in enumerate(nodes):
            node_id = node.get("id") if isinstance(node, dict) else None
            if not node_id:
                errors.append({
                    "type": "MISSING_NODE_ID",
                    "message": f"Node at index {i} has no id",
                    "path": f"nodes[{i}].id"
                })
                continue
            if node_id in node_ids:
                errors.append({
                    "type": "DUPLICATE_NODE_ID",
                    "message": f"Duplicate node id: {node_id}",
                    "path": f"nodes[{i}].id"
                })
            node_ids.add(node_id)
            
            label = (node.get("data") or {}).get("label")
            if not label or not str(label).strip():
                errors.append({
                    "type": "MISSING_LABEL",
                    "message": f"Node {node_id} has no label",
                    "path": f"nodes[{i}].data.label"
                })
        
        has_create_edge = False
        for i, edge in enumerate(edges):
            if not isinstance(edge, dict) or not edge.get("id"):
                errors.append({
                    "type": "MISSING_EDGE_ID",
                    "message": f"Edge at index {i} has no id",
                    "path": f"edges[{i}].id"
                })
                continue
            
            for end in ("source", "target"):
                ref = edge.get(end)
                if not ref or ref not in node_ids:
                    errors.append({
                        "type": "INVALID_EDGE_REFERENCE",
                        "message": f"Edge {edge['id']} references unknown {end}: {ref}",
                        "path": f"edges[{i}].{end}"
                    })
            
            data = edge.get("data") or {}
            if data.get("isCreateTransition") or edge.get("source") == CREATE_NODE_ID:
                has_create_edge = True
                continue
            
            roles = data.get("roles") or []
            if not roles:
                warnings.append({
                    "type": "NO_ROLES",
                    "message": f"Edge {edge['id']} allows no roles and can never be executed",
                    "path": f"edges[{i}].data.roles"
                })
            for role in roles:
                if str(role).upper() not in UserRole.__members__:
                    errors.append({
                        "type": "INVALID_ROLE",
                        "message": f"Edge {edge['id']} has unknown role: {role}",
                        "path": f"edges[{i}].data.roles"
                    })
            for condition in data.get("conditions") or []:
                if str(condition).upper() not in ConditionType.__members__:
                    warnings.append({
                        "type": "UNKNOWN_CONDITION",
                        "message": f"Edge {edge['id']} has unknown condition and will always be rejected: {condition}",
                        "path": f"edges[{i}].data.conditions"
                    })
            for action in data.get("actions") or []:
                if str(action).upper() not in ActionType.__members__:
                    warnings.append({
                        "type": "UNKNOWN_ACTION",
                        "message": f"Edge {edge['id']} has unknown action: {action}",
                        "path": f"edges[{i}].data.actions"
                    })
        
        if nodes and not has_create_edge:
            warnings.append({
                "type": "NO_CREATE_TRANSITION",
                "message": "No create transition; new tickets start as NEW",
                "path": "edges"
            })
        
        if not errors:
            try:
                WorkflowDefinition.model_validate(definition)
            except PydanticValidationError as e:
                for err in e.errors():
                    errors.append({
                        "type": "SCHEMA_ERROR",
                        "message": err["msg"],
                        "path": ".".join(str(p) for p in err["loc"])
                    })
        
        return {
            "is_valid": len(errors) == 0,
            "errors": errors,
            "warnings": warnings
        }
