"""Ticket Repository - Data access for tickets and comments"""
from typing import Any, Dict, List, Optional
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import Ticket, Comment
from ..domain.errors import TicketNotFoundError, ConcurrencyError
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


class TicketRepository:
    """Repository for ticket operations"""
    
    def __init__(self):
        self._tickets: Collection = get_collection("tickets")
        self._comments: Collection = get_collection("comments")
    
    # =========================================================================
    # Ticket CRUD
    # =========================================================================
    
    def create_ticket(
        self,
        ticket: Ticket,
        session: Optional[ClientSession] = None
    ) -> Ticket:
        """Create a new ticket"""
        doc = ticket.model_dump(mode="python")
        doc["_id"] = ticket.ticket_id
        
        self._tickets.insert_one(doc, session=session)
        logger.info(
            f"Created ticket: {ticket.ticket_id}",
            extra={"ticket_id": ticket.ticket_id, "tenant_id": ticket.tenant_id}
        )
        return ticket
    
    def get_ticket(
        self,
        tenant_id: str,
        ticket_id: str,
        session: Optional[ClientSession] = None
    ) -> Optional[Ticket]:
        """Get ticket by ID"""
        doc = self._tickets.find_one(
            {"tenant_id": tenant_id, "ticket_id": ticket_id},
            session=session
        )
        if doc:
            doc.pop("_id", None)
            return Ticket.model_validate(doc)
        return None
    
    def get_ticket_or_raise(
        self,
        tenant_id: str,
        ticket_id: str,
        session: Optional[ClientSession] = None
    ) -> Ticket:
        """Get ticket by ID or raise error"""
        ticket = self.get_ticket(tenant_id, ticket_id, session=session)
        if not ticket:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket
    
    def update_ticket(
        self,
        tenant_id: str,
        ticket_id: str,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None,
        session: Optional[ClientSession] = None
    ) -> Ticket:
        """
        Update ticket with optimistic concurrency
        
        Args:
            tenant_id: Tenant ID
            ticket_id: Ticket ID
            updates: Fields to update
            expected_version: Version the caller read; the write is rejected
                if another writer got there first
        """
        updates["updated_at"] = utc_now()
        
        filter_query: Dict[str, Any] = {"tenant_id": tenant_id, "ticket_id": ticket_id}
        if expected_version is not None:
            filter_query["version"] = expected_version
        
        result = self._tickets.find_one_and_update(
            filter_query,
            {"$set": updates, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        
        if result is None:
            if expected_version is not None:
                exists = self._tickets.find_one(
                    {"tenant_id": tenant_id, "ticket_id": ticket_id},
                    session=session
                )
                if exists:
                    raise ConcurrencyError(
                        f"Ticket {ticket_id} was modified. Please refresh and try again.",
                        details={"expected_version": expected_version}
                    )
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        
        result.pop("_id", None)
        logger.info(f"Updated ticket: {ticket_id}", extra={"ticket_id": ticket_id})
        return Ticket.model_validate(result)
    
    def count_by_workflow(self, tenant_id: str, workflow_id: str) -> int:
        """Count tickets referencing a workflow"""
        return self._tickets.count_documents({"tenant_id": tenant_id, "workflow_id": workflow_id})
    
    def find_for_reporting(
        self,
        tenant_id: str,
        query: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Fetch the slim ticket fields used by dashboard aggregation"""
        filter_query: Dict[str, Any] = {"tenant_id": tenant_id}
        if query:
            filter_query.update(query)
        
        projection = {
            "_id": 0,
            "ticket_id": 1,
            "status": 1,
            "workflow_id": 1,
            "assigned_to_id": 1,
            "assigned_to_name": 1,
            "requester_id": 1,
            "due_date": 1,
            "closed_at": 1,
        }
        return list(self._tickets.find(filter_query, projection))
    
    def list_tickets(
        self,
        tenant_id: str,
        requester_id: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[Ticket]:
        """List tickets, newest first"""
        query: Dict[str, Any] = {"tenant_id": tenant_id}
        if requester_id:
            query["requester_id"] = requester_id
        if assigned_to_id:
            query["assigned_to_id"] = assigned_to_id
        
        cursor = self._tickets.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
        tickets = []
        for doc in cursor:
            doc.pop("_id", None)
            tickets.append(Ticket.model_validate(doc))
        return tickets
    
    # =========================================================================
    # Comments
    # =========================================================================
    
    def create_comment(
        self,
        comment: Comment,
        session: Optional[ClientSession] = None
    ) -> Comment:
        """Create a comment"""
        doc = comment.model_dump(mode="python")
        doc["_id"] = comment.comment_id
        self._comments.insert_one(doc, session=session)
        return comment
    
    def list_comments(self, tenant_id: str, ticket_id: str) -> List[Comment]:
        """List comments of a ticket, oldest first"""
        cursor = self._comments.find(
            {"tenant_id": tenant_id, "ticket_id": ticket_id}
        ).sort("created_at", ASCENDING)
        
        comments = []
        for doc in cursor:
            doc.pop("_id", None)
            comments.append(Comment.model_validate(doc))
        return comments
