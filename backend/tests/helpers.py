"""Builders shared by the test modules"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ticketflow.domain.enums import UserRole, TicketPriority
from ticketflow.domain.models import ActorContext, Ticket, Workflow
from ticketflow.repositories.ticket_repo import TicketRepository
from ticketflow.services.workflow_service import WorkflowService
from ticketflow.utils.idgen import generate_ticket_id
from ticketflow.utils.time import utc_now

TENANT_ID = "tenant-test"
SUPPORT_ROLES = ["SUPPORT_STAFF", "SUPPORT_MANAGER", "ADMIN"]
ALL_ROLES = ["END_USER"] + SUPPORT_ROLES


def make_actor(role: UserRole, user_id: Optional[str] = None, tenant_id: str = TENANT_ID) -> ActorContext:
    user_id = user_id or f"user-{role.value.lower()}"
    return ActorContext(
        user_id=user_id,
        email=f"{user_id}@example.com",
        display_name=role.value.replace("_", " ").title(),
        role=role,
        tenant_id=tenant_id
    )


def graph_definition(edges: List[Dict[str, Any]], statuses: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Small graph definition builder

    Node ids are the lower-cased labels with underscores; the first
    status is the create edge's target. Edges default to support roles.
    """
    labels = statuses or ["New", "Open", "In Progress", "Resolved", "Closed"]
    nodes = [{
        "id": "create",
        "type": "statusNode",
        "position": {"x": 0, "y": 0},
        "data": {"label": "Create Ticket", "isInitial": True}
    }]
    for index, label in enumerate(labels):
        nodes.append({
            "id": label.lower().replace(" ", "_"),
            "type": "statusNode",
            "position": {"x": 200 * (index + 1), "y": 0},
            "data": {"label": label}
        })

    graph_edges = [{
        "id": "e-create",
        "source": "create",
        "target": nodes[1]["id"],
        "label": "Create Ticket",
        "data": {"roles": list(ALL_ROLES), "isCreateTransition": True}
    }]
    for index, edge in enumerate(edges):
        graph_edges.append({
            "id": edge.get("id", f"e{index + 1}"),
            "source": edge["source"],
            "target": edge["target"],
            "label": edge.get("label"),
            "type": "smoothstep",
            "data": {
                "roles": edge.get("roles", list(SUPPORT_ROLES)),
                "conditions": edge.get("conditions", []),
                "actions": edge.get("actions", []),
            }
        })
    return {"nodes": nodes, "edges": graph_edges}


def insert_ticket(
    status: str,
    workflow: Optional[Workflow] = None,
    snapshot: bool = True,
    requester_id: str = "user-end_user",
    assigned_to_id: Optional[str] = None,
    assigned_to_name: Optional[str] = None,
    priority: TicketPriority = TicketPriority.MEDIUM,
    resolution: Optional[str] = None,
    due_in_minutes: Optional[int] = None,
    closed_ago_minutes: Optional[int] = None,
    tenant_id: str = TENANT_ID
) -> Ticket:
    """Store a ticket directly, bypassing creation rules"""
    now = utc_now()
    workflow_snapshot = None
    if workflow is not None and snapshot:
        workflow_snapshot = WorkflowService().capture_snapshot(workflow)

    ticket = Ticket(
        ticket_id=generate_ticket_id(),
        tenant_id=tenant_id,
        title="Printer on fire",
        status=status,
        priority=priority,
        workflow_id=workflow.workflow_id if workflow else None,
        workflow_snapshot=workflow_snapshot,
        workflow_version=workflow.version if workflow else None,
        requester_id=requester_id,
        assigned_to_id=assigned_to_id,
        assigned_to_name=assigned_to_name,
        resolution=resolution,
        due_date=now + timedelta(minutes=due_in_minutes) if due_in_minutes is not None else None,
        closed_at=now - timedelta(minutes=closed_ago_minutes) if closed_ago_minutes is not None else None,
        created_at=now,
        updated_at=now
    )
    return TicketRepository().create_ticket(ticket)
