"""Workflow API Routes - Registry, status categorization and reporting"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_correlation_id_dep
from ...domain.models import ActorContext, WorkflowCondition, WorkflowAction, WorkflowPermission
from ...domain.enums import WorkflowStatus
from ...domain.errors import DomainError
from ...engine.permission_guard import PermissionGuard
from ...services.workflow_service import WorkflowService
from ...services.reporting_service import ReportingService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()
guard = PermissionGuard()


# ============================================================================
# Request/Response Models
# ============================================================================

class CreateWorkflowRequest(BaseModel):
    """Request to create a workflow"""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    definition: Optional[Dict[str, Any]] = None
    status: WorkflowStatus = WorkflowStatus.DRAFT
    is_default: bool = False
    working_statuses: List[str] = Field(default_factory=list)
    done_statuses: List[str] = Field(default_factory=list)


class UpdateWorkflowRequest(BaseModel):
    """Partial workflow update; omitted fields are left alone"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    definition: Optional[Dict[str, Any]] = None
    status: Optional[WorkflowStatus] = None
    is_default: Optional[bool] = None
    working_statuses: Optional[List[str]] = None
    done_statuses: Optional[List[str]] = None


class ActivateWorkflowRequest(BaseModel):
    """Optional categorization stored while activating"""
    working_statuses: Optional[List[str]] = None
    done_statuses: Optional[List[str]] = None


class CreateTransitionRequest(BaseModel):
    """Relational transition row"""
    from_state: str = Field(..., min_length=1)
    to_state: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    order: int = 0
    is_active: bool = True
    conditions: List[WorkflowCondition] = Field(default_factory=list)
    actions: List[WorkflowAction] = Field(default_factory=list)
    permissions: List[WorkflowPermission] = Field(default_factory=list)


class UpdateTransitionRequest(BaseModel):
    """Partial relational transition update"""
    from_state: Optional[str] = Field(None, min_length=1)
    to_state: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None
    conditions: Optional[List[WorkflowCondition]] = None
    actions: Optional[List[WorkflowAction]] = None
    permissions: Optional[List[WorkflowPermission]] = None


# ============================================================================
# Collection Routes
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_workflow(
    request: CreateWorkflowRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Create a workflow (ADMIN)"""
    try:
        guard.require_admin(actor, "create workflows")
        workflow = WorkflowService().create_workflow(
            tenant_id=actor.tenant_id,
            name=request.name,
            created_by=actor.user_id,
            description=request.description,
            definition=request.definition,
            status=request.status,
            is_default=request.is_default,
            working_statuses=request.working_statuses,
            done_statuses=request.done_statuses
        )
        
        logger.info(
            f"Created workflow: {workflow.workflow_id}",
            extra={"workflow_id": workflow.workflow_id, "user_id": actor.user_id}
        )
        return workflow.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("")
async def list_workflows(
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List non-deleted workflows, newest first (ADMIN, SUPPORT_MANAGER)"""
    try:
        guard.require_manager(actor, "list workflows")
        workflows = WorkflowService().list_workflows(actor.tenant_id)
        return {
            "items": [w.model_dump(mode="json") for w in workflows],
            "total": len(workflows)
        }
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/default")
async def get_default_workflow(
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """The ACTIVE workflow new tickets are created under (any role)"""
    try:
        workflow = WorkflowService().find_default(actor.tenant_id)
        return workflow.model_dump(mode="json") if workflow else None
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/all-statuses")
async def get_all_workflow_statuses(
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Every workflow/status pair for categorization (ADMIN, SUPPORT_MANAGER)"""
    try:
        guard.require_manager(actor, "view workflow statuses")
        entries = WorkflowService().get_all_workflow_statuses(actor.tenant_id)
        return [e.model_dump(mode="json") for e in entries]
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/dashboard-stats")
async def get_dashboard_stats(
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Ticket counts by bucket, scoped to the caller's role"""
    try:
        stats = ReportingService().get_dashboard_stats(
            actor.tenant_id,
            user_id=actor.user_id,
            user_role=actor.role
        )
        return stats.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/staff-performance")
async def get_staff_performance(
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Per-assignee counts and on-time percentage (ADMIN, SUPPORT_MANAGER)"""
    try:
        guard.require_manager(actor, "view staff performance")
        rows = ReportingService().get_staff_performance(actor.tenant_id)
        return [r.model_dump(mode="json") for r in rows]
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


# ============================================================================
# Relational Transition Rows
# ============================================================================

@router.patch("/transitions/{transition_id}")
async def update_transition(
    transition_id: str,
    request: UpdateTransitionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Update a relational transition (ADMIN)"""
    try:
        guard.require_admin(actor, "edit workflow transitions")
        transition = WorkflowService().update_transition(
            actor.tenant_id,
            transition_id,
            request.model_dump(mode="python", exclude_unset=True)
        )
        return transition.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/transitions/{transition_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transition(
    transition_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Delete a relational transition (ADMIN)"""
    try:
        guard.require_admin(actor, "edit workflow transitions")
        WorkflowService().remove_transition(actor.tenant_id, transition_id)
        return None
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


# ============================================================================
# Single Workflow Routes
# ============================================================================

@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get workflow by ID (ADMIN, SUPPORT_MANAGER)"""
    try:
        guard.require_manager(actor, "view workflows")
        workflow = WorkflowService().get_workflow(actor.tenant_id, workflow_id)
        return workflow.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{workflow_id}/statuses")
async def get_workflow_statuses(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Statuses defined by one workflow (ADMIN, SUPPORT_MANAGER)"""
    try:
        guard.require_manager(actor, "view workflow statuses")
        return WorkflowService().get_workflow_statuses(actor.tenant_id, workflow_id)
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{workflow_id}/status-categorization")
async def get_status_categorization(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Working/done status lists (ADMIN, SUPPORT_MANAGER, SUPPORT_STAFF)"""
    try:
        guard.require_staff(actor, "view status categorization")
        categorization = WorkflowService().get_status_categorization(actor.tenant_id, workflow_id)
        return categorization.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{workflow_id}")
async def update_workflow(
    workflow_id: str,
    request: UpdateWorkflowRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Partially update a workflow (ADMIN)"""
    try:
        guard.require_admin(actor, "edit workflows")
        workflow = WorkflowService().update_workflow(
            actor.tenant_id,
            workflow_id,
            request.model_dump(mode="python", exclude_unset=True)
        )
        return workflow.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/{workflow_id}")
async def delete_workflow(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Delete a workflow (ADMIN)
    
    Soft-deletes when tickets still reference it, hard-deletes otherwise.
    """
    try:
        guard.require_admin(actor, "delete workflows")
        result = WorkflowService().remove_workflow(actor.tenant_id, workflow_id)
        
        logger.info(
            f"Deleted workflow: {workflow_id} ({result['deleted']})",
            extra={"workflow_id": workflow_id, "user_id": actor.user_id}
        )
        return result
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{workflow_id}/activate")
async def activate_workflow(
    workflow_id: str,
    request: Optional[ActivateWorkflowRequest] = None,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Make the workflow the single ACTIVE one (ADMIN)"""
    try:
        guard.require_admin(actor, "activate workflows")
        request = request or ActivateWorkflowRequest()
        workflow = WorkflowService().activate_workflow(
            actor.tenant_id,
            workflow_id,
            working_statuses=request.working_statuses,
            done_statuses=request.done_statuses
        )
        return workflow.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{workflow_id}/deactivate")
async def deactivate_workflow(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Deactivate a workflow (ADMIN)"""
    try:
        guard.require_admin(actor, "deactivate workflows")
        workflow = WorkflowService().deactivate_workflow(actor.tenant_id, workflow_id)
        return workflow.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{workflow_id}/set-default")
async def set_default_workflow(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Flag the workflow as the tenant default (ADMIN)"""
    try:
        guard.require_admin(actor, "set the default workflow")
        workflow = WorkflowService().set_as_default(actor.tenant_id, workflow_id)
        return workflow.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{workflow_id}/transitions")
async def list_transitions(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Relational transitions of a workflow (ADMIN, SUPPORT_MANAGER)"""
    try:
        guard.require_manager(actor, "view workflow transitions")
        transitions = WorkflowService().list_transitions(actor.tenant_id, workflow_id)
        return [t.model_dump(mode="json") for t in transitions]
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{workflow_id}/transitions", status_code=status.HTTP_201_CREATED)
async def add_transition(
    workflow_id: str,
    request: CreateTransitionRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Add a relational transition (ADMIN)"""
    try:
        guard.require_admin(actor, "edit workflow transitions")
        transition = WorkflowService().add_transition(
            actor.tenant_id,
            workflow_id,
            request.model_dump(mode="python")
        )
        return transition.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
