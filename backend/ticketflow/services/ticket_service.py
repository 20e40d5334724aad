"""Ticket Service - Ticket lifecycle business logic"""
from datetime import datetime
from typing import List, Optional
from pymongo.client_session import ClientSession

from ..domain.models import (
    ActorContext, Ticket, Workflow, WorkflowExecution, TicketHistory, Comment,
    TransitionResult, TransitionSummary
)
from ..domain.enums import TicketPriority, UserRole
from ..domain.errors import NoWorkflowError
from ..engine.engine import WorkflowEngine
from ..engine.audit_writer import AuditWriter
from ..engine.permission_guard import PermissionGuard
from ..engine.transition_resolver import GraphTransitionAdapter, to_status_value
from ..repositories.mongo_client import run_in_transaction
from ..repositories.ticket_repo import TicketRepository
from ..repositories.audit_repo import AuditRepository
from .workflow_service import WorkflowService
from .notification_service import NotificationService
from ..utils.idgen import generate_ticket_id
from ..utils.time import ensure_utc, utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_INITIAL_STATUS = "NEW"


class TicketService:
    """Service for ticket operations"""
    
    def __init__(self):
        self.repo = TicketRepository()
        self.audit_repo = AuditRepository()
        self.audit_writer = AuditWriter()
        self.engine = WorkflowEngine()
        self.workflow_service = WorkflowService()
        self.notification_service = NotificationService()
        self.permission_guard = PermissionGuard()
    
    # =========================================================================
    # Creation
    # =========================================================================
    
    def initial_status(self, workflow: Workflow) -> str:
        """Status a new ticket starts in: the create edge's target, else NEW"""
        if not workflow.definition:
            return FALLBACK_INITIAL_STATUS
        
        labels = {node.id: node.data.label for node in workflow.definition.nodes}
        for edge in workflow.definition.edges:
            if GraphTransitionAdapter.is_create_edge(edge):
                label = labels.get(edge.target) or edge.target
                return to_status_value(label)
        return FALLBACK_INITIAL_STATUS
    
    def create_ticket(
        self,
        actor: ActorContext,
        title: str,
        description: Optional[str] = None,
        priority: TicketPriority = TicketPriority.MEDIUM,
        due_date: Optional[datetime] = None,
        assigned_to_id: Optional[str] = None,
        assigned_to_name: Optional[str] = None
    ) -> Ticket:
        """
        Create a ticket under the tenant's ACTIVE workflow
        
        The workflow is frozen into the ticket as a snapshot, so later
        edits or deactivation never change how this ticket moves.
        
        Raises:
            NoWorkflowError: Tenant has no active workflow
        """
        workflow = self.workflow_service.find_default(actor.tenant_id)
        if workflow is None:
            raise NoWorkflowError("No default workflow found")
        
        snapshot = self.workflow_service.capture_snapshot(workflow)
        status = self.initial_status(workflow)
        now = utc_now()
        
        ticket = Ticket(
            ticket_id=generate_ticket_id(),
            tenant_id=actor.tenant_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            workflow_id=workflow.workflow_id,
            workflow_snapshot=snapshot,
            workflow_version=workflow.version,
            requester_id=actor.user_id,
            assigned_to_id=assigned_to_id,
            assigned_to_name=assigned_to_name,
            due_date=ensure_utc(due_date),
            created_at=now,
            updated_at=now,
            version=1
        )
        
        def write(session: Optional[ClientSession]) -> Ticket:
            created = self.repo.create_ticket(ticket, session=session)
            self.audit_writer.write_status_change(
                tenant_id=actor.tenant_id,
                ticket_id=ticket.ticket_id,
                user_id=actor.user_id,
                old_status=None,
                new_status=status,
                session=session
            )
            return created
        
        created = run_in_transaction(write)
        
        try:
            self.notification_service.enqueue_ticket_created(
                tenant_id=actor.tenant_id,
                ticket_id=created.ticket_id,
                requester_id=actor.user_id,
                ticket_title=created.title,
                status=created.status
            )
        except Exception as e:
            logger.error(
                f"Failed to enqueue ticket created notification: {e}",
                exc_info=True,
                extra={"ticket_id": created.ticket_id}
            )
        
        logger.info(
            f"Ticket created in status {status}",
            extra={
                "ticket_id": created.ticket_id,
                "workflow_id": workflow.workflow_id,
                "tenant_id": actor.tenant_id
            }
        )
        return created
    
    # =========================================================================
    # Queries
    # =========================================================================
    
    def get_ticket(self, actor: ActorContext, ticket_id: str) -> Ticket:
        """Get ticket by ID, enforcing visibility"""
        ticket = self.repo.get_ticket_or_raise(actor.tenant_id, ticket_id)
        self.permission_guard.require_ticket_access(actor, ticket)
        return ticket
    
    def list_tickets(
        self,
        actor: ActorContext,
        skip: int = 0,
        limit: int = 50
    ) -> List[Ticket]:
        """List tickets visible to the actor"""
        requester_id = actor.user_id if actor.role == UserRole.END_USER else None
        return self.repo.list_tickets(
            actor.tenant_id,
            requester_id=requester_id,
            skip=skip,
            limit=limit
        )
    
    def list_history(self, actor: ActorContext, ticket_id: str) -> List[TicketHistory]:
        self.get_ticket(actor, ticket_id)
        return self.audit_repo.list_history(actor.tenant_id, ticket_id)
    
    def list_executions(self, actor: ActorContext, ticket_id: str) -> List[WorkflowExecution]:
        self.get_ticket(actor, ticket_id)
        return self.audit_repo.list_executions(actor.tenant_id, ticket_id)
    
    def list_comments(self, actor: ActorContext, ticket_id: str) -> List[Comment]:
        self.get_ticket(actor, ticket_id)
        return self.repo.list_comments(actor.tenant_id, ticket_id)
    
    # =========================================================================
    # Transitions
    # =========================================================================
    
    def transition_ticket(
        self,
        actor: ActorContext,
        ticket_id: str,
        new_status: str,
        comment: Optional[str] = None,
        resolution: Optional[str] = None
    ) -> TransitionResult:
        """Move a ticket to a new status through its workflow"""
        self.get_ticket(actor, ticket_id)
        return self.engine.execute_ticket_transition(
            ticket_id=ticket_id,
            new_status=new_status,
            actor=actor,
            comment=comment,
            resolution=resolution
        )
    
    def get_available_transitions(
        self,
        actor: ActorContext,
        ticket_id: str
    ) -> List[TransitionSummary]:
        """Transitions the actor may execute from the ticket's current status"""
        self.get_ticket(actor, ticket_id)
        return self.engine.get_available_transitions(ticket_id, actor)
