"""Action Executor - Best-effort side effects after a transition commits"""
from typing import Any, Callable, Dict, List, Optional

from ..domain.models import Ticket, ResolvedAction, ActionResult, ActorContext
from ..domain.enums import ActionType, TicketPriority, NotificationTemplateKey
from ..repositories.ticket_repo import TicketRepository
from ..services.notification_service import NotificationService
from .audit_writer import AuditWriter
from .transition_resolver import normalize_state
from ..utils.time import utc_now, minutes_between, format_duration
from ..utils.logger import get_logger

logger = get_logger(__name__)

RESOLVED_STATES = {"resolved", "closed"}


class ActionExecutor:
    """
    Run the actions of a resolved transition in ascending order
    
    The ticket status is already committed when this runs. A failing
    action is logged and reported in its ActionResult; it never undoes
    the transition and never stops the actions after it.
    """
    
    def __init__(
        self,
        ticket_repo: Optional[TicketRepository] = None,
        audit_writer: Optional[AuditWriter] = None,
        notification_service: Optional[NotificationService] = None
    ):
        self.ticket_repo = ticket_repo or TicketRepository()
        self.audit_writer = audit_writer or AuditWriter()
        self.notification_service = notification_service or NotificationService()
        self._handlers: Dict[ActionType, Callable[..., ActionResult]] = {
            ActionType.SEND_NOTIFICATION: self._send_notification,
            ActionType.ASSIGN_TO_USER: self._assign_to_user,
            ActionType.CALCULATE_RESOLUTION_TIME: self._calculate_resolution_time,
            ActionType.UPDATE_PRIORITY: self._update_priority,
            ActionType.SEND_EMAIL: self._send_email,
            ActionType.LOG_ACTIVITY: self._log_activity,
        }
    
    def execute(
        self,
        ticket: Ticket,
        actions: List[ResolvedAction],
        actor: ActorContext
    ) -> List[ActionResult]:
        """
        Execute active actions in order
        
        Args:
            ticket: Ticket after the status change
            actions: Actions of the resolved transition
            actor: User who executed the transition
        
        Returns:
            One ActionResult per attempted action
        """
        results: List[ActionResult] = []
        
        for action in sorted(actions, key=lambda a: a.order):
            if not action.is_active:
                continue
            
            try:
                action_type = ActionType(action.type)
            except ValueError:
                logger.warning(
                    f"Skipping unknown workflow action: {action.type}",
                    extra={"ticket_id": ticket.ticket_id, "action": action.type}
                )
                results.append(ActionResult(
                    type=action.type,
                    success=False,
                    detail="Unknown action type"
                ))
                continue
            
            try:
                result = self._handlers[action_type](ticket, action.config, actor)
                # Later actions see earlier writes
                if result.success and "ticket" in result.data:
                    ticket = result.data.pop("ticket")
                results.append(result)
            except Exception as e:
                logger.error(
                    f"Workflow action {action_type.value} failed for ticket {ticket.ticket_id}: {e}",
                    extra={"ticket_id": ticket.ticket_id, "action": action_type.value},
                    exc_info=True
                )
                results.append(ActionResult(
                    type=action_type.value,
                    success=False,
                    detail=str(e)
                ))
        
        return results
    
    # =========================================================================
    # Handlers
    # =========================================================================
    
    def _recipients(self, ticket: Ticket) -> List[str]:
        recipients = [ticket.requester_id]
        if ticket.assigned_to_id and ticket.assigned_to_id not in recipients:
            recipients.append(ticket.assigned_to_id)
        return recipients
    
    def _notification_payload(self, ticket: Ticket, config: Dict[str, Any], actor: ActorContext) -> Dict[str, Any]:
        return {
            "ticket_id": ticket.ticket_id,
            "ticket_title": ticket.title,
            "status": ticket.status,
            "changed_by": actor.display_name,
            "message": config.get("message"),
            "subject": config.get("subject"),
        }
    
    def _send_notification(self, ticket: Ticket, config: Dict[str, Any], actor: ActorContext) -> ActionResult:
        notification = self.notification_service.enqueue_notification(
            tenant_id=ticket.tenant_id,
            template_key=NotificationTemplateKey.WORKFLOW_NOTIFICATION,
            recipients=self._recipients(ticket),
            payload=self._notification_payload(ticket, config, actor),
            ticket_id=ticket.ticket_id
        )
        return ActionResult(
            type=ActionType.SEND_NOTIFICATION.value,
            success=True,
            data={"notification_id": notification.notification_id}
        )
    
    def _send_email(self, ticket: Ticket, config: Dict[str, Any], actor: ActorContext) -> ActionResult:
        notification = self.notification_service.enqueue_notification(
            tenant_id=ticket.tenant_id,
            template_key=NotificationTemplateKey.WORKFLOW_EMAIL,
            recipients=self._recipients(ticket),
            payload=self._notification_payload(ticket, config, actor),
            ticket_id=ticket.ticket_id
        )
        return ActionResult(
            type=ActionType.SEND_EMAIL.value,
            success=True,
            data={"notification_id": notification.notification_id}
        )
    
    def _assign_to_user(self, ticket: Ticket, config: Dict[str, Any], actor: ActorContext) -> ActionResult:
        if not config.get("assignToCurrentUser"):
            return ActionResult(
                type=ActionType.ASSIGN_TO_USER.value,
                success=True,
                detail="Assignment not configured"
            )
        
        old_assignee = ticket.assigned_to_id
        updated = self.ticket_repo.update_ticket(
            ticket.tenant_id,
            ticket.ticket_id,
            {"assigned_to_id": actor.user_id, "assigned_to_name": actor.display_name}
        )
        if old_assignee != actor.user_id:
            self.audit_writer.write_field_change(
                tenant_id=ticket.tenant_id,
                ticket_id=ticket.ticket_id,
                user_id=actor.user_id,
                field_name="assigned_to_id",
                old_value=old_assignee,
                new_value=actor.user_id
            )
        return ActionResult(
            type=ActionType.ASSIGN_TO_USER.value,
            success=True,
            detail=f"Assigned to {actor.display_name}",
            data={"ticket": updated}
        )
    
    def _calculate_resolution_time(self, ticket: Ticket, config: Dict[str, Any], actor: ActorContext) -> ActionResult:
        if normalize_state(ticket.status) not in RESOLVED_STATES:
            return ActionResult(
                type=ActionType.CALCULATE_RESOLUTION_TIME.value,
                success=True,
                detail="Ticket is not resolved"
            )
        
        # Derived only; there is no column for it
        minutes = minutes_between(ticket.created_at, utc_now())
        logger.info(
            f"Resolution time for ticket {ticket.ticket_id}: {format_duration(minutes)}",
            extra={"ticket_id": ticket.ticket_id, "action": ActionType.CALCULATE_RESOLUTION_TIME.value}
        )
        return ActionResult(
            type=ActionType.CALCULATE_RESOLUTION_TIME.value,
            success=True,
            detail=format_duration(minutes),
            data={"resolution_minutes": minutes}
        )
    
    def _update_priority(self, ticket: Ticket, config: Dict[str, Any], actor: ActorContext) -> ActionResult:
        new_priority = config.get("newPriority")
        if not new_priority:
            return ActionResult(
                type=ActionType.UPDATE_PRIORITY.value,
                success=True,
                detail="No priority configured"
            )
        
        priority = TicketPriority(str(new_priority).upper())
        old_priority = ticket.priority
        updated = self.ticket_repo.update_ticket(
            ticket.tenant_id,
            ticket.ticket_id,
            {"priority": priority.value}
        )
        self.audit_writer.write_field_change(
            tenant_id=ticket.tenant_id,
            ticket_id=ticket.ticket_id,
            user_id=actor.user_id,
            field_name="priority",
            old_value=old_priority.value,
            new_value=priority.value
        )
        return ActionResult(
            type=ActionType.UPDATE_PRIORITY.value,
            success=True,
            detail=f"Priority set to {priority.value}",
            data={"ticket": updated}
        )
    
    def _log_activity(self, ticket: Ticket, config: Dict[str, Any], actor: ActorContext) -> ActionResult:
        entry = self.audit_writer.write_field_change(
            tenant_id=ticket.tenant_id,
            ticket_id=ticket.ticket_id,
            user_id=actor.user_id,
            field_name="workflow_action",
            old_value=None,
            new_value=config.get("message") or "Workflow action executed"
        )
        return ActionResult(
            type=ActionType.LOG_ACTIVITY.value,
            success=True,
            data={"history_id": entry.history_id}
        )
