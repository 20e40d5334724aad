"""Ticket API Routes - Creation, status transitions and audit trail"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_correlation_id_dep
from ...domain.models import ActorContext
from ...domain.enums import TicketPriority
from ...domain.errors import DomainError
from ...services.ticket_service import TicketService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================

class CreateTicketRequest(BaseModel):
    """Request to open a ticket"""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=10000)
    priority: TicketPriority = TicketPriority.MEDIUM
    due_date: Optional[datetime] = None
    assigned_to_id: Optional[str] = None
    assigned_to_name: Optional[str] = None


class TransitionTicketRequest(BaseModel):
    """Request to move a ticket to another status"""
    status: str = Field(..., min_length=1, description="Target status, any case or separator style")
    comment: Optional[str] = Field(None, max_length=5000)
    resolution: Optional[str] = Field(None, max_length=5000)


# ============================================================================
# Routes
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_ticket(
    request: CreateTicketRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Open a ticket under the tenant's active workflow"""
    try:
        ticket = TicketService().create_ticket(
            actor=actor,
            title=request.title,
            description=request.description,
            priority=request.priority,
            due_date=request.due_date,
            assigned_to_id=request.assigned_to_id,
            assigned_to_name=request.assigned_to_name
        )
        return ticket.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("")
async def list_tickets(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List tickets visible to the caller, newest first"""
    try:
        tickets = TicketService().list_tickets(
            actor,
            skip=(page - 1) * page_size,
            limit=page_size
        )
        return {
            "items": [t.model_dump(mode="json") for t in tickets],
            "page": page,
            "page_size": page_size
        }
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get ticket by ID"""
    try:
        ticket = TicketService().get_ticket(actor, ticket_id)
        return ticket.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{ticket_id}/transition")
async def transition_ticket(
    ticket_id: str,
    request: TransitionTicketRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Execute a status transition
    
    Returns the updated ticket, the execution record, the transition
    that was applied and the outcome of each post-transition action.
    """
    try:
        result = TicketService().transition_ticket(
            actor=actor,
            ticket_id=ticket_id,
            new_status=request.status,
            comment=request.comment,
            resolution=request.resolution
        )
        
        logger.info(
            f"Ticket transitioned to {request.status}",
            extra={"ticket_id": ticket_id, "user_id": actor.user_id}
        )
        return result.model_dump(mode="json")
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/available-transitions")
async def get_available_transitions(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Transitions the caller's role may execute from the current status"""
    try:
        transitions = TicketService().get_available_transitions(actor, ticket_id)
        return [t.model_dump(mode="json") for t in transitions]
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/history")
async def get_ticket_history(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Field change history, execution records and comments"""
    try:
        service = TicketService()
        return {
            "history": [h.model_dump(mode="json") for h in service.list_history(actor, ticket_id)],
            "executions": [e.model_dump(mode="json") for e in service.list_executions(actor, ticket_id)],
            "comments": [c.model_dump(mode="json") for c in service.list_comments(actor, ticket_id)]
        }
    
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
