"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict

from .enums import (
    UserRole, WorkflowStatus, ConditionType, ActionType, TicketPriority,
    TransitionSource, NotificationStatus, NotificationTemplateKey
)


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from JWT token"""
    model_config = ConfigDict(extra="forbid")
    
    user_id: str = Field(..., description="Auth provider subject")
    email: Optional[EmailStr] = Field(None, description="User email")
    display_name: str = Field(..., description="User display name")
    role: UserRole = Field(..., description="Active role")
    tenant_id: str = Field(..., description="Tenant the user belongs to")


# ============================================================================
# Graph Workflow Definition
# ============================================================================
# Field names mirror the JSON the visual workflow editor reads and writes.

class NodePosition(BaseModel):
    """Canvas position of a node"""
    x: float = 0
    y: float = 0


class NodeData(BaseModel):
    """Node payload"""
    model_config = ConfigDict(extra="allow")
    
    label: str = Field(..., description="Status name shown on the node")
    color: Optional[str] = None
    isInitial: Optional[bool] = None


class WorkflowNode(BaseModel):
    """Graph node - one ticket state"""
    model_config = ConfigDict(extra="allow")
    
    id: str
    type: Optional[str] = "statusNode"
    position: NodePosition = Field(default_factory=NodePosition)
    data: NodeData


class EdgeData(BaseModel):
    """Edge payload - role, condition and action metadata"""
    model_config = ConfigDict(extra="allow")
    
    roles: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)
    isCreateTransition: Optional[bool] = None


class WorkflowEdge(BaseModel):
    """Graph edge - one transition"""
    model_config = ConfigDict(extra="allow")
    
    id: str
    source: str
    target: str
    label: Optional[str] = None
    type: Optional[str] = None
    data: EdgeData = Field(default_factory=EdgeData)


class WorkflowDefinition(BaseModel):
    """Visual workflow definition"""
    model_config = ConfigDict(extra="allow")
    
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)


# ============================================================================
# Relational Workflow Transitions
# ============================================================================

class WorkflowCondition(BaseModel):
    """Guard condition owned by a transition"""
    model_config = ConfigDict(extra="ignore")
    
    type: ConditionType
    value: Optional[str] = None
    operator: Optional[str] = None
    is_required: bool = True


class WorkflowAction(BaseModel):
    """Side effect owned by a transition"""
    model_config = ConfigDict(extra="ignore")
    
    type: ActionType
    config: Dict[str, Any] = Field(default_factory=dict)
    order: int = 0
    is_active: bool = True


class WorkflowPermission(BaseModel):
    """Role grant owned by a transition"""
    model_config = ConfigDict(extra="ignore")
    
    role: UserRole
    can_execute: bool = True


class WorkflowTransition(BaseModel):
    """Legacy relational transition row"""
    model_config = ConfigDict(extra="ignore")
    
    transition_id: str = Field(..., description="Unique transition ID")
    workflow_id: str
    tenant_id: str
    from_state: str
    to_state: str
    name: str
    description: Optional[str] = None
    order: int = 0
    is_active: bool = True
    conditions: List[WorkflowCondition] = Field(default_factory=list)
    actions: List[WorkflowAction] = Field(default_factory=list)
    permissions: List[WorkflowPermission] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Workflow
# ============================================================================

class Workflow(BaseModel):
    """Workflow - tenant scoped definition of ticket states and transitions"""
    model_config = ConfigDict(extra="ignore")
    
    workflow_id: str = Field(..., description="Unique workflow ID")
    tenant_id: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: WorkflowStatus = WorkflowStatus.DRAFT
    is_default: bool = False
    is_system_default: bool = False
    version: int = Field(default=1, description="Bumped on every definition change")
    definition: Optional[WorkflowDefinition] = None
    working_statuses: List[str] = Field(default_factory=list)
    done_statuses: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    
    @property
    def is_graph(self) -> bool:
        """Whether transitions come from the graph definition"""
        return self.definition is not None and len(self.definition.edges) > 0


class WorkflowSnapshot(BaseModel):
    """Immutable copy of a workflow captured on a ticket at creation"""
    model_config = ConfigDict(extra="ignore", frozen=True)
    
    workflow_id: str
    name: str
    version: int
    definition: Optional[WorkflowDefinition] = None
    transitions: List[WorkflowTransition] = Field(default_factory=list)
    captured_at: datetime


class StatusCategorization(BaseModel):
    """Which statuses count as working vs done for reporting"""
    working_statuses: List[str] = Field(default_factory=list)
    done_statuses: List[str] = Field(default_factory=list)


# ============================================================================
# Ticket
# ============================================================================

class Ticket(BaseModel):
    """Support ticket"""
    model_config = ConfigDict(extra="ignore")
    
    ticket_id: str = Field(..., description="Unique ticket ID")
    tenant_id: str
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: str = Field(..., description="Open-ended status name defined by the workflow")
    priority: TicketPriority = TicketPriority.MEDIUM
    workflow_id: Optional[str] = None
    workflow_snapshot: Optional[WorkflowSnapshot] = None
    workflow_version: Optional[int] = None
    requester_id: str
    assigned_to_id: Optional[str] = None
    assigned_to_name: Optional[str] = None
    resolution: Optional[str] = None
    due_date: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    version: int = Field(default=1, description="Optimistic concurrency counter")


class WorkflowExecution(BaseModel):
    """Append-only record of one executed transition"""
    model_config = ConfigDict(extra="ignore")
    
    execution_id: str
    tenant_id: str
    ticket_id: str
    workflow_id: str
    from_state: str
    to_state: str
    transition_id: str
    executed_by: str
    comment: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    executed_at: datetime


class TicketHistory(BaseModel):
    """Append-only field change entry"""
    model_config = ConfigDict(extra="ignore")
    
    history_id: str
    tenant_id: str
    ticket_id: str
    user_id: str
    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: datetime


class Comment(BaseModel):
    """Ticket comment"""
    model_config = ConfigDict(extra="ignore")
    
    comment_id: str
    tenant_id: str
    ticket_id: str
    author_id: str
    content: str
    created_at: datetime


# ============================================================================
# Engine Results
# ============================================================================

class ResolvedCondition(BaseModel):
    """Condition in the shape the validator consumes"""
    type: str
    value: Optional[str] = None
    operator: Optional[str] = None
    is_required: bool = True


class ResolvedAction(BaseModel):
    """Action in the shape the executor consumes"""
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)
    order: int = 0
    is_active: bool = True


class ResolvedTransition(BaseModel):
    """Transition descriptor shared by both workflow representations"""
    transition_id: str
    name: str
    from_state: str
    to_state: str
    source: TransitionSource
    description: Optional[str] = None
    roles: List[UserRole] = Field(default_factory=list)
    conditions: List[ResolvedCondition] = Field(default_factory=list)
    actions: List[ResolvedAction] = Field(default_factory=list)


class TransitionSummary(BaseModel):
    """Transition as reported to callers"""
    id: str
    name: str
    from_state: str
    to_state: str
    description: Optional[str] = None
    conditions: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)
    
    @classmethod
    def from_resolved(cls, transition: ResolvedTransition) -> "TransitionSummary":
        return cls(
            id=transition.transition_id,
            name=transition.name,
            from_state=transition.from_state,
            to_state=transition.to_state,
            description=transition.description,
            conditions=[c.type for c in transition.conditions],
            actions=[a.type for a in transition.actions],
        )


class ActionResult(BaseModel):
    """Outcome of one post-transition action"""
    type: str
    success: bool
    detail: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class TransitionResult(BaseModel):
    """Result of execute_ticket_transition"""
    ticket: Ticket
    execution: WorkflowExecution
    transition: TransitionSummary
    action_results: List[ActionResult] = Field(default_factory=list)


# ============================================================================
# Notification
# ============================================================================

class NotificationOutbox(BaseModel):
    """Notification outbox entry"""
    model_config = ConfigDict(extra="ignore")
    
    notification_id: str
    tenant_id: str
    ticket_id: Optional[str] = None
    template_key: NotificationTemplateKey
    recipients: List[str] = Field(default_factory=list, description="Recipient user IDs")
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = 0
    next_retry_at: Optional[datetime] = None
    last_error: Optional[str] = None
    created_at: datetime
    sent_at: Optional[datetime] = None


class EffectiveWorkflow(BaseModel):
    """Workflow governing one ticket, taken from its snapshot or the live row"""
    workflow_id: str
    name: str
    version: int = 1
    definition: Optional[WorkflowDefinition] = None
    transitions: List[WorkflowTransition] = Field(default_factory=list)
    from_snapshot: bool = False
    assigned_default: bool = Field(
        default=False,
        description="Ticket had no workflow and fell back to the active one"
    )
    
    @property
    def is_graph(self) -> bool:
        return self.definition is not None and len(self.definition.edges) > 0
    
    @classmethod
    def from_snapshot_value(cls, snapshot: WorkflowSnapshot) -> "EffectiveWorkflow":
        return cls(
            workflow_id=snapshot.workflow_id,
            name=snapshot.name,
            version=snapshot.version,
            definition=snapshot.definition,
            transitions=list(snapshot.transitions),
            from_snapshot=True,
        )


# ============================================================================
# Reporting
# ============================================================================

class DashboardStats(BaseModel):
    """Ticket counts bucketed by the active workflow's categorization"""
    all: int = 0
    working: int = 0
    done: int = 0
    hold: int = 0


class StaffPerformance(BaseModel):
    """Per-assignee ticket counts and on-time percentage"""
    staff_id: str
    name: str
    all: int = 0
    working: int = 0
    done: int = 0
    hold: int = 0
    overdue: int = 0
    performance: int = 100


class WorkflowStatusEntry(BaseModel):
    """Status offered for categorization, keyed by workflow"""
    id: str
    workflow_id: str
    workflow_name: str
    status: str
    display_name: str
