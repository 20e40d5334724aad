"""Audit Writer - Append-only execution records and ticket history"""
from typing import Any, Dict, Optional
from pymongo.client_session import ClientSession

from ..domain.models import WorkflowExecution, TicketHistory
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_execution_id, generate_history_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditWriter:
    """
    Write audit records (append-only)
    
    Every executed transition produces one WorkflowExecution and one
    status TicketHistory entry. Notable workflow actions add more history.
    """
    
    def __init__(self):
        self.repo = AuditRepository()
    
    def write_execution(
        self,
        tenant_id: str,
        ticket_id: str,
        workflow_id: str,
        from_state: str,
        to_state: str,
        transition_id: str,
        executed_by: str,
        comment: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        session: Optional[ClientSession] = None
    ) -> WorkflowExecution:
        """Write a workflow execution record"""
        execution = WorkflowExecution(
            execution_id=generate_execution_id(),
            tenant_id=tenant_id,
            ticket_id=ticket_id,
            workflow_id=workflow_id,
            from_state=from_state,
            to_state=to_state,
            transition_id=transition_id,
            executed_by=executed_by,
            comment=comment,
            metadata=metadata or {},
            executed_at=utc_now()
        )
        return self.repo.create_execution(execution, session=session)
    
    def write_field_change(
        self,
        tenant_id: str,
        ticket_id: str,
        user_id: str,
        field_name: str,
        old_value: Optional[str],
        new_value: Optional[str],
        session: Optional[ClientSession] = None
    ) -> TicketHistory:
        """Write a field change history entry"""
        entry = TicketHistory(
            history_id=generate_history_id(),
            tenant_id=tenant_id,
            ticket_id=ticket_id,
            user_id=user_id,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            created_at=utc_now()
        )
        return self.repo.create_history(entry, session=session)
    
    def write_status_change(
        self,
        tenant_id: str,
        ticket_id: str,
        user_id: str,
        old_status: Optional[str],
        new_status: str,
        session: Optional[ClientSession] = None
    ) -> TicketHistory:
        """Write a status change history entry"""
        return self.write_field_change(
            tenant_id=tenant_id,
            ticket_id=ticket_id,
            user_id=user_id,
            field_name="status",
            old_value=old_status,
            new_value=new_status,
            session=session
        )
