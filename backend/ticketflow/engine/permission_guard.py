"""Permission Guard - Role gates for workflow, reporting and ticket operations"""
from typing import Any, Dict, Iterable

from ..domain.models import ActorContext, Ticket
from ..domain.enums import UserRole
from ..domain.errors import PermissionDeniedError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionGuard:
    """
    Role enforcement
    
    Rules:
    - Only ADMIN mutates workflows and their transitions
    - ADMIN and SUPPORT_MANAGER list and inspect workflows
    - SUPPORT_STAFF additionally reads status categorization
    - Everyone reads the default workflow and their own dashboard
    - END_USER only sees tickets they requested
    """
    
    ADMIN_ROLES = {UserRole.ADMIN}
    MANAGER_ROLES = {UserRole.ADMIN, UserRole.SUPPORT_MANAGER}
    STAFF_ROLES = {UserRole.ADMIN, UserRole.SUPPORT_MANAGER, UserRole.SUPPORT_STAFF}
    
    def require_roles(self, actor: ActorContext, roles: Iterable[UserRole], action: str) -> None:
        """Raise unless the actor's role is one of roles"""
        allowed = set(roles)
        if actor.role not in allowed:
            logger.warning(
                f"Role {actor.role.value} denied for {action}",
                extra={"user_id": actor.user_id, "action": action}
            )
            raise PermissionDeniedError(
                f"Your role is not allowed to {action}",
                details={
                    "role": actor.role.value,
                    "allowed_roles": sorted(r.value for r in allowed)
                }
            )
    
    def require_admin(self, actor: ActorContext, action: str = "manage workflows") -> None:
        self.require_roles(actor, self.ADMIN_ROLES, action)
    
    def require_manager(self, actor: ActorContext, action: str) -> None:
        self.require_roles(actor, self.MANAGER_ROLES, action)
    
    def require_staff(self, actor: ActorContext, action: str) -> None:
        self.require_roles(actor, self.STAFF_ROLES, action)
    
    def can_view_ticket(self, actor: ActorContext, ticket: Ticket) -> bool:
        if actor.role == UserRole.END_USER:
            return ticket.requester_id == actor.user_id
        return True
    
    def require_ticket_access(self, actor: ActorContext, ticket: Ticket) -> None:
        if not self.can_view_ticket(actor, ticket):
            raise PermissionDeniedError(
                "You do not have access to this ticket",
                details={"ticket_id": ticket.ticket_id}
            )
    
    def dashboard_scope(self, user_id: str, role: UserRole) -> Dict[str, Any]:
        """Ticket filter a role's dashboard is limited to"""
        if role == UserRole.END_USER:
            return {"requester_id": user_id}
        if role == UserRole.SUPPORT_STAFF:
            return {"assigned_to_id": user_id}
        return {}
