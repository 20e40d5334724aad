"""System default workflow seeded for every tenant"""
from typing import Any, Dict, List

DEFAULT_WORKFLOW_NAME = "Default Workflow"
DEFAULT_WORKFLOW_DESCRIPTION = (
    "System default workflow for ticket management. "
    "This workflow cannot be edited or deleted."
)

ALL_ROLES = ["END_USER", "SUPPORT_STAFF", "SUPPORT_MANAGER", "ADMIN"]
SUPPORT_ROLES = ["SUPPORT_STAFF", "SUPPORT_MANAGER", "ADMIN"]

_NODES = [
    ("create", "Create Ticket", "#4caf50", 0),
    ("new", "New", "#ff9800", 200),
    ("open", "Open", "#2196f3", 400),
    ("in_progress", "In Progress", "#9c27b0", 600),
    ("resolved", "Resolved", "#4caf50", 800),
    ("closed", "Closed", "#9e9e9e", 1000),
]

_EDGES = [
    ("e0-create", "create", "new", "Create Ticket", ALL_ROLES, True),
    ("e1", "new", "open", "Open", SUPPORT_ROLES, False),
    ("e2", "open", "in_progress", "Start Work", SUPPORT_ROLES, False),
    ("e3", "in_progress", "resolved", "Resolve", SUPPORT_ROLES, False),
    ("e4", "resolved", "closed", "Close", SUPPORT_ROLES, False),
    ("e5", "closed", "open", "Reopen", ALL_ROLES, False),
]


def build_default_definition() -> Dict[str, Any]:
    """Graph definition of the default workflow, in editor JSON form"""
    nodes: List[Dict[str, Any]] = []
    for node_id, label, color, x in _NODES:
        data: Dict[str, Any] = {"label": label, "color": color}
        if node_id == "create":
            data["isInitial"] = True
        nodes.append({
            "id": node_id,
            "type": "statusNode",
            "position": {"x": x, "y": 100},
            "data": data,
        })
    
    edges: List[Dict[str, Any]] = []
    for edge_id, source, target, label, roles, is_create in _EDGES:
        data = {"roles": list(roles), "conditions": [], "actions": []}
        if is_create:
            data["isCreateTransition"] = True
        edges.append({
            "id": edge_id,
            "source": source,
            "target": target,
            "label": label,
            "type": "smoothstep",
            "data": data,
        })
    
    return {"nodes": nodes, "edges": edges}
