"""Workflow Engine - Ticket transition orchestration

execute_ticket_transition runs in two halves:

1. Validation (no writes): load ticket, pick the governing workflow,
   resolve the transition with role check, evaluate guard conditions.
2. Commit: ticket update, execution record, status history and optional
   comment in one transaction, then best-effort actions outside it.
"""
from typing import List, Optional, Tuple
from pymongo.client_session import ClientSession

from ..domain.models import (
    ActorContext, Ticket, Comment, EffectiveWorkflow, WorkflowExecution,
    TransitionResult, TransitionSummary
)
from ..domain.enums import WorkflowStatus
from ..domain.errors import NoWorkflowError, WorkflowInactiveError, ValidationError
from ..repositories.mongo_client import run_in_transaction
from ..repositories.ticket_repo import TicketRepository
from ..repositories.workflow_repo import WorkflowRepository
from .transition_resolver import TransitionResolver, normalize_state
from .condition_evaluator import ConditionEvaluator
from .action_executor import ActionExecutor
from .audit_writer import AuditWriter
from ..utils.idgen import generate_comment_id
from ..utils.time import utc_now
from ..utils.logger import get_logger, get_context_logger

logger = get_logger(__name__)

CLOSED_STATE = "closed"


class WorkflowEngine:
    """Entry point for executing and listing ticket transitions"""
    
    def __init__(self):
        self.ticket_repo = TicketRepository()
        self.workflow_repo = WorkflowRepository()
        self.resolver = TransitionResolver()
        self.condition_evaluator = ConditionEvaluator()
        self.audit_writer = AuditWriter()
        self.action_executor = ActionExecutor(
            ticket_repo=self.ticket_repo,
            audit_writer=self.audit_writer
        )
    
    # =========================================================================
    # Workflow Resolution
    # =========================================================================
    
    def _load_live(self, tenant_id: str, workflow_id: str) -> Optional[EffectiveWorkflow]:
        workflow = self.workflow_repo.get_workflow(tenant_id, workflow_id)
        if workflow is None:
            return None
        
        if workflow.status != WorkflowStatus.ACTIVE or workflow.deleted_at is not None:
            raise WorkflowInactiveError(
                f"Workflow '{workflow.name}' is not active",
                details={"workflow_id": workflow.workflow_id, "status": workflow.status.value}
            )
        
        return EffectiveWorkflow(
            workflow_id=workflow.workflow_id,
            name=workflow.name,
            version=workflow.version,
            definition=workflow.definition,
            transitions=[] if workflow.is_graph else self.workflow_repo.list_transitions(workflow.workflow_id),
        )
    
    def resolve_workflow(self, ticket: Ticket) -> EffectiveWorkflow:
        """
        Pick the workflow governing a ticket
        
        Order: the ticket's snapshot (authoritative, never checked for
        being active), then its live workflow, then the tenant's active
        workflow.
        
        Raises:
            WorkflowInactiveError: Live workflow is not ACTIVE
            NoWorkflowError: Nothing to fall back to
        """
        if ticket.workflow_snapshot is not None:
            return EffectiveWorkflow.from_snapshot_value(ticket.workflow_snapshot)
        
        if ticket.workflow_id:
            live = self._load_live(ticket.tenant_id, ticket.workflow_id)
            if live is not None:
                return live
            logger.warning(
                f"Ticket {ticket.ticket_id} references missing workflow {ticket.workflow_id}",
                extra={"ticket_id": ticket.ticket_id, "workflow_id": ticket.workflow_id}
            )
        
        default = self.workflow_repo.find_active(ticket.tenant_id)
        if default is None:
            raise NoWorkflowError(
                "No default workflow found",
                details={"ticket_id": ticket.ticket_id}
            )
        
        effective = self._load_live(ticket.tenant_id, default.workflow_id)
        effective.assigned_default = True
        return effective
    
    # =========================================================================
    # Transition Execution
    # =========================================================================
    
    def execute_ticket_transition(
        self,
        ticket_id: str,
        new_status: str,
        actor: ActorContext,
        comment: Optional[str] = None,
        resolution: Optional[str] = None
    ) -> TransitionResult:
        """
        Move a ticket to a new status
        
        Args:
            ticket_id: Ticket to transition
            new_status: Requested status (any case or separator style)
            actor: Acting user; user_id, role and tenant_id are used
            comment: Optional comment, stored as a ticket comment
            resolution: Optional resolution, stored when the ticket has none
        
        Returns:
            TransitionResult with updated ticket, execution record,
            transition summary and per-action outcomes
        
        Raises:
            TicketNotFoundError, NoWorkflowError, WorkflowInactiveError,
            TransitionNotFoundError, TransitionForbiddenError,
            ConditionNotMetError, ConditionNotImplementedError,
            ConcurrencyError
        """
        log = get_context_logger(
            __name__,
            ticket_id=ticket_id,
            tenant_id=actor.tenant_id,
            user_id=actor.user_id
        )
        
        target = (new_status or "").strip()
        if not target:
            raise ValidationError("Target status is required")
        
        ticket = self.ticket_repo.get_ticket_or_raise(actor.tenant_id, ticket_id)
        workflow = self.resolve_workflow(ticket)
        transition = self.resolver.resolve(workflow, ticket.status, target, actor.role)
        self.condition_evaluator.validate(ticket, transition.conditions, comment, resolution)
        
        def commit(session: Optional[ClientSession]) -> Tuple[Ticket, WorkflowExecution]:
            now = utc_now()
            updates = {"status": target}
            if normalize_state(target) == CLOSED_STATE:
                updates["closed_at"] = now
            if resolution and resolution.strip() and not (ticket.resolution or "").strip():
                updates["resolution"] = resolution.strip()
            if workflow.assigned_default:
                updates["workflow_id"] = workflow.workflow_id
            
            updated = self.ticket_repo.update_ticket(
                ticket.tenant_id,
                ticket.ticket_id,
                updates,
                expected_version=ticket.version,
                session=session
            )
            execution = self.audit_writer.write_execution(
                tenant_id=ticket.tenant_id,
                ticket_id=ticket.ticket_id,
                workflow_id=workflow.workflow_id,
                from_state=ticket.status,
                to_state=target,
                transition_id=transition.transition_id,
                executed_by=actor.user_id,
                comment=comment,
                metadata={
                    "transition_name": transition.name,
                    "source": transition.source.value,
                    "workflow_version": workflow.version,
                    "from_snapshot": workflow.from_snapshot,
                },
                session=session
            )
            self.audit_writer.write_status_change(
                tenant_id=ticket.tenant_id,
                ticket_id=ticket.ticket_id,
                user_id=actor.user_id,
                old_status=ticket.status,
                new_status=target,
                session=session
            )
            if comment and comment.strip():
                self.ticket_repo.create_comment(
                    Comment(
                        comment_id=generate_comment_id(),
                        tenant_id=ticket.tenant_id,
                        ticket_id=ticket.ticket_id,
                        author_id=actor.user_id,
                        content=comment.strip(),
                        created_at=now
                    ),
                    session=session
                )
            return updated, execution
        
        updated, execution = run_in_transaction(commit)
        log.info(
            f"Transitioned ticket {ticket.status} -> {target}",
            extra={"workflow_id": workflow.workflow_id, "transition_id": transition.transition_id}
        )
        
        action_results = self.action_executor.execute(updated, transition.actions, actor)
        if action_results:
            updated = self.ticket_repo.get_ticket_or_raise(actor.tenant_id, ticket_id)
        
        return TransitionResult(
            ticket=updated,
            execution=execution,
            transition=TransitionSummary.from_resolved(transition),
            action_results=action_results
        )
    
    # =========================================================================
    # Queries
    # =========================================================================
    
    def get_available_transitions(
        self,
        ticket_id: str,
        actor: ActorContext
    ) -> List[TransitionSummary]:
        """
        Transitions the actor's role may execute from the ticket's status
        
        Read-only: a ticket without a workflow is evaluated against the
        active workflow but not assigned to it. Returns an empty list when
        no workflow applies or the live workflow is not active.
        """
        ticket = self.ticket_repo.get_ticket_or_raise(actor.tenant_id, ticket_id)
        
        try:
            workflow = self.resolve_workflow(ticket)
        except (NoWorkflowError, WorkflowInactiveError) as e:
            logger.info(
                f"No transitions available for ticket {ticket_id}: {e.message}",
                extra={"ticket_id": ticket_id}
            )
            return []
        
        return [
            TransitionSummary.from_resolved(t)
            for t in self.resolver.list_available(workflow, ticket.status, actor.role)
        ]
