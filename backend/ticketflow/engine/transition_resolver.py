"""Transition Resolver - Locate the transition for a requested state change

Both workflow representations are adapted into ResolvedTransition before
anything else runs:

- GraphTransitionAdapter reads edges of the visual definition
- RelationalTransitionAdapter reads legacy WorkflowTransition rows

Everything downstream of resolve() only ever sees ResolvedTransition.
"""
import re
from typing import List, Optional, Set

from ..domain.models import (
    EffectiveWorkflow, WorkflowDefinition, WorkflowEdge, WorkflowTransition,
    ResolvedTransition, ResolvedCondition, ResolvedAction
)
from ..domain.enums import UserRole, TransitionSource
from ..domain.errors import TransitionNotFoundError, TransitionForbiddenError
from ..utils.logger import get_logger

logger = get_logger(__name__)

_SEPARATORS = re.compile(r"[\s\-_]+")

CREATE_NODE_ID = "create"

# Graph edges carry bare action types; these are the settings they run with
GRAPH_ACTION_CONFIG = {
    "ASSIGN_TO_USER": {"assignToCurrentUser": True},
}


def normalize_state(value: Optional[str]) -> str:
    """
    Normalize a state name for comparison
    
    Examples:
        >>> normalize_state("In Progress")
        'in_progress'
        >>> normalize_state("IN-PROGRESS")
        'in_progress'
    """
    if not value:
        return ""
    return _SEPARATORS.sub("_", value.strip().lower())


def to_status_value(label: str) -> str:
    """Turn a node label into the stored status form ("In Progress" -> "IN_PROGRESS")"""
    return re.sub(r"\s+", "_", label.strip()).upper()


def _parse_roles(values: List[str]) -> Set[UserRole]:
    roles = set()
    for value in values:
        try:
            roles.add(UserRole(str(value).upper()))
        except ValueError:
            logger.warning(f"Ignoring unknown role on transition: {value}")
    return roles


class TransitionCandidate:
    """A transition together with the keys its endpoints match on"""
    
    def __init__(
        self,
        transition: ResolvedTransition,
        from_keys: Set[str],
        to_keys: Set[str],
        allowed_roles: Set[UserRole]
    ):
        self.transition = transition
        self.from_keys = from_keys
        self.to_keys = to_keys
        self.allowed_roles = allowed_roles
    
    def starts_at(self, status: str) -> bool:
        return normalize_state(status) in self.from_keys
    
    def matches(self, current_status: str, target_status: str) -> bool:
        return self.starts_at(current_status) and normalize_state(target_status) in self.to_keys
    
    def allows(self, role: UserRole) -> bool:
        return role in self.allowed_roles
    
    def describe(self) -> str:
        return (
            f"{normalize_state(self.transition.from_state)} -> "
            f"{normalize_state(self.transition.to_state)}"
        )


class GraphTransitionAdapter:
    """Adapt edges of a visual workflow definition"""
    
    def __init__(self, definition: WorkflowDefinition):
        self.definition = definition
        self._labels = {node.id: node.data.label for node in definition.nodes}
    
    @staticmethod
    def is_create_edge(edge: WorkflowEdge) -> bool:
        return bool(edge.data.isCreateTransition) or edge.source == CREATE_NODE_ID
    
    def _endpoint_keys(self, node_id: str) -> Set[str]:
        keys = {normalize_state(node_id)}
        label = self._labels.get(node_id)
        if label:
            keys.add(normalize_state(label))
        return keys
    
    def candidates(self) -> List[TransitionCandidate]:
        result = []
        for edge in self.definition.edges:
            if self.is_create_edge(edge):
                continue
            
            from_state = self._labels.get(edge.source, edge.source)
            to_state = self._labels.get(edge.target, edge.target)
            roles = _parse_roles(edge.data.roles)
            
            transition = ResolvedTransition(
                transition_id=edge.id,
                name=edge.label or f"{from_state} to {to_state}",
                from_state=from_state,
                to_state=to_state,
                source=TransitionSource.GRAPH,
                roles=sorted(roles, key=lambda r: r.value),
                conditions=[ResolvedCondition(type=str(c).upper()) for c in edge.data.conditions],
                actions=[
                    ResolvedAction(
                        type=str(a).upper(),
                        config=dict(GRAPH_ACTION_CONFIG.get(str(a).upper(), {})),
                        order=index
                    )
                    for index, a in enumerate(edge.data.actions)
                ],
            )
            result.append(TransitionCandidate(
                transition,
                from_keys=self._endpoint_keys(edge.source),
                to_keys=self._endpoint_keys(edge.target),
                allowed_roles=roles,
            ))
        return result


class RelationalTransitionAdapter:
    """Adapt legacy relational transition rows"""
    
    def __init__(self, transitions: List[WorkflowTransition]):
        self.transitions = transitions
    
    def candidates(self) -> List[TransitionCandidate]:
        result = []
        for row in sorted(self.transitions, key=lambda t: t.order):
            if not row.is_active:
                continue
            
            roles = {p.role for p in row.permissions if p.can_execute}
            transition = ResolvedTransition(
                transition_id=row.transition_id,
                name=row.name,
                from_state=row.from_state,
                to_state=row.to_state,
                source=TransitionSource.RELATIONAL,
                description=row.description,
                roles=sorted(roles, key=lambda r: r.value),
                conditions=[
                    ResolvedCondition(
                        type=c.type.value,
                        value=c.value,
                        operator=c.operator,
                        is_required=c.is_required
                    )
                    for c in row.conditions
                ],
                actions=[
                    ResolvedAction(
                        type=a.type.value,
                        config=a.config,
                        order=a.order,
                        is_active=a.is_active
                    )
                    for a in row.actions
                ],
            )
            result.append(TransitionCandidate(
                transition,
                from_keys={normalize_state(row.from_state)},
                to_keys={normalize_state(row.to_state)},
                allowed_roles=roles,
            ))
        return result


class TransitionResolver:
    """
    Resolve a (current status, target status) pair against a workflow
    
    1. Adapt the workflow into candidates (graph edges or relational rows)
    2. Keep candidates whose endpoints match after normalization
    3. None left -> TransitionNotFoundError listing what is available
    4. None the role may run -> TransitionForbiddenError
    """
    
    def adapter_for(self, workflow: EffectiveWorkflow):
        if workflow.is_graph:
            return GraphTransitionAdapter(workflow.definition)
        return RelationalTransitionAdapter(workflow.transitions)
    
    def resolve(
        self,
        workflow: EffectiveWorkflow,
        current_status: str,
        target_status: str,
        role: UserRole
    ) -> ResolvedTransition:
        """
        Find the transition to execute
        
        Args:
            workflow: Workflow governing the ticket
            current_status: Ticket's stored status
            target_status: Requested status
            role: Acting user's role
        
        Returns:
            ResolvedTransition
        
        Raises:
            TransitionNotFoundError: No transition between the two states
            TransitionForbiddenError: Transition exists but not for this role
        """
        candidates = self.adapter_for(workflow).candidates()
        matches = [c for c in candidates if c.matches(current_status, target_status)]
        
        if not matches:
            available = [c.describe() for c in candidates if c.starts_at(current_status)]
            logger.info(
                f"No transition {current_status} -> {target_status} in workflow {workflow.workflow_id}",
                extra={"workflow_id": workflow.workflow_id}
            )
            raise TransitionNotFoundError(
                f"Transition from '{current_status}' to '{target_status}' is not defined in "
                f"workflow '{workflow.name}'. Available transitions from '{current_status}': "
                f"{', '.join(available) if available else 'none'}",
                details={
                    "workflow_id": workflow.workflow_id,
                    "from_state": current_status,
                    "to_state": target_status,
                    "available_transitions": available,
                    "workflow_transitions": [c.describe() for c in candidates],
                }
            )
        
        for candidate in matches:
            if candidate.allows(role):
                return candidate.transition
        
        allowed = sorted({r.value for c in matches for r in c.allowed_roles})
        raise TransitionForbiddenError(
            f"Transition from {current_status} to {target_status} is not allowed for your role",
            details={
                "workflow_id": workflow.workflow_id,
                "role": role.value,
                "allowed_roles": allowed,
            }
        )
    
    def list_available(
        self,
        workflow: EffectiveWorkflow,
        current_status: str,
        role: UserRole
    ) -> List[ResolvedTransition]:
        """Transitions the role may execute from the current status"""
        return [
            c.transition
            for c in self.adapter_for(workflow).candidates()
            if c.starts_at(current_status) and c.allows(role)
        ]
