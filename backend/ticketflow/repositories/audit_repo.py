"""Audit Repository - Append-only workflow executions and ticket history"""
from typing import List, Optional
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.models import WorkflowExecution, TicketHistory
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """
    Repository for audit records
    
    Only insert and read are exposed; rows are never updated or deleted.
    """
    
    def __init__(self):
        self._executions: Collection = get_collection("workflow_executions")
        self._history: Collection = get_collection("ticket_history")
    
    def create_execution(
        self,
        execution: WorkflowExecution,
        session: Optional[ClientSession] = None
    ) -> WorkflowExecution:
        """Append a workflow execution record"""
        doc = execution.model_dump(mode="python")
        doc["_id"] = execution.execution_id
        self._executions.insert_one(doc, session=session)
        logger.debug(
            f"Recorded execution {execution.execution_id}",
            extra={"ticket_id": execution.ticket_id, "transition_id": execution.transition_id}
        )
        return execution
    
    def list_executions(self, tenant_id: str, ticket_id: str) -> List[WorkflowExecution]:
        """List executions of a ticket, oldest first"""
        cursor = self._executions.find(
            {"tenant_id": tenant_id, "ticket_id": ticket_id}
        ).sort("executed_at", ASCENDING)
        
        executions = []
        for doc in cursor:
            doc.pop("_id", None)
            executions.append(WorkflowExecution.model_validate(doc))
        return executions
    
    def create_history(
        self,
        entry: TicketHistory,
        session: Optional[ClientSession] = None
    ) -> TicketHistory:
        """Append a ticket history entry"""
        doc = entry.model_dump(mode="python")
        doc["_id"] = entry.history_id
        self._history.insert_one(doc, session=session)
        return entry
    
    def list_history(self, tenant_id: str, ticket_id: str) -> List[TicketHistory]:
        """List history of a ticket, oldest first"""
        cursor = self._history.find(
            {"tenant_id": tenant_id, "ticket_id": ticket_id}
        ).sort("created_at", ASCENDING)
        
        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(TicketHistory.model_validate(doc))
        return entries
