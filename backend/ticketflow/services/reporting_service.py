"""Reporting Service - Dashboard counts and staff performance

Tickets are bucketed with the ACTIVE workflow's categorization. Entries
are either plain status names, which apply to the active workflow, or
"workflow-<workflow_id>-<status>" keys produced by the status registry.
Status comparison ignores case and space/underscore/hyphen differences.
"""
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..domain.models import DashboardStats, StaffPerformance, Workflow
from ..domain.enums import UserRole, DEFAULT_WORKING_STATUSES, DEFAULT_DONE_STATUSES
from ..engine.permission_guard import PermissionGuard
from ..engine.transition_resolver import normalize_state
from ..repositories.ticket_repo import TicketRepository
from ..repositories.workflow_repo import WorkflowRepository
from .workflow_service import WorkflowService
from ..utils.time import ensure_utc, is_overdue, utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

STATUS_KEY_PREFIX = "workflow-"
UNASSIGNED_ID = "unassigned"
UNASSIGNED_NAME = "Unassigned"


def js_round(value: float) -> int:
    """Round half up, the way dashboards have always shown percentages"""
    return int(math.floor(value + 0.5))


class StatusMatcher:
    """Membership test for one bucket (working or done) of a categorization"""
    
    def __init__(self, entries: Iterable[str], active_workflow_id: str, known_workflow_ids: Iterable[str]):
        self.active_workflow_id = active_workflow_id
        self._known_ids = sorted(set(known_workflow_ids), key=len, reverse=True)
        self._pairs: Set[Tuple[str, str]] = set()
        for entry in entries:
            workflow_id, status = self._parse_entry(entry)
            mapped = workflow_id or active_workflow_id
            key = normalize_state(status)
            self._pairs.add((mapped, key))
            # Statuses categorized for another workflow also count for the active one
            if mapped != active_workflow_id:
                self._pairs.add((active_workflow_id, key))
    
    def _parse_entry(self, entry: str) -> Tuple[Optional[str], str]:
        if not entry.startswith(STATUS_KEY_PREFIX):
            return None, entry
        
        rest = entry[len(STATUS_KEY_PREFIX):]
        for workflow_id in self._known_ids:
            if rest.startswith(workflow_id + "-") and len(rest) > len(workflow_id) + 1:
                return workflow_id, rest[len(workflow_id) + 1:]
        
        last_hyphen = rest.rfind("-")
        if 0 < last_hyphen < len(rest) - 1:
            return rest[:last_hyphen], rest[last_hyphen + 1:]
        return None, entry
    
    def matches(self, ticket: Dict[str, Any]) -> bool:
        # Tickets without a workflow are governed by the active one
        workflow_id = ticket.get("workflow_id") or self.active_workflow_id
        return (workflow_id, normalize_state(ticket.get("status") or "")) in self._pairs


class ReportingService:
    """Service for dashboard and performance queries"""
    
    def __init__(self):
        self.ticket_repo = TicketRepository()
        self.workflow_repo = WorkflowRepository()
        self.workflow_service = WorkflowService()
        self.permission_guard = PermissionGuard()
    
    def _matchers(self, tenant_id: str) -> Optional[Tuple[StatusMatcher, StatusMatcher]]:
        active = self.workflow_service.find_default(tenant_id)
        if active is None:
            return None
        
        working, done = self._categorization(active)
        known_ids = [w.workflow_id for w in self.workflow_repo.list_workflows(tenant_id, include_deleted=True)]
        return (
            StatusMatcher(working, active.workflow_id, known_ids),
            StatusMatcher(done, active.workflow_id, known_ids),
        )
    
    def _categorization(self, workflow: Workflow) -> Tuple[List[str], List[str]]:
        working = workflow.working_statuses or list(DEFAULT_WORKING_STATUSES)
        done = workflow.done_statuses or list(DEFAULT_DONE_STATUSES)
        return working, done
    
    # =========================================================================
    # Dashboard
    # =========================================================================
    
    def get_dashboard_stats(
        self,
        tenant_id: str,
        user_id: Optional[str] = None,
        user_role: Optional[UserRole] = None
    ) -> DashboardStats:
        """
        Count tickets by bucket
        
        END_USER sees tickets they requested, SUPPORT_STAFF tickets
        assigned to them, managers and admins everything. Tickets in no
        categorized status are on hold.
        """
        matchers = self._matchers(tenant_id)
        if matchers is None:
            return DashboardStats()
        working_matcher, done_matcher = matchers
        
        scope: Dict[str, Any] = {}
        if user_id and user_role is not None:
            scope = self.permission_guard.dashboard_scope(user_id, user_role)
        
        tickets = self.ticket_repo.find_for_reporting(tenant_id, scope)
        total = len(tickets)
        working = sum(1 for t in tickets if working_matcher.matches(t))
        done = sum(1 for t in tickets if done_matcher.matches(t))
        
        stats = DashboardStats(
            all=total,
            working=working,
            done=done,
            hold=max(total - working - done, 0)
        )
        logger.debug(
            f"Dashboard stats: {stats.model_dump()}",
            extra={"tenant_id": tenant_id, "user_id": user_id}
        )
        return stats
    
    # =========================================================================
    # Staff Performance
    # =========================================================================
    
    def get_staff_performance(
        self,
        tenant_id: str,
        now: Optional[datetime] = None
    ) -> List[StaffPerformance]:
        """
        Per-assignee counts and on-time percentage
        
        A ticket counts as on time when it is done and was closed by its
        due date, or still being worked and not yet past it. Tickets
        without a due date are always on time. Unassigned tickets are
        grouped last.
        """
        matchers = self._matchers(tenant_id)
        if matchers is None:
            return []
        working_matcher, done_matcher = matchers
        now = ensure_utc(now) if now else utc_now()
        
        grouped: Dict[str, Dict[str, Any]] = {}
        for ticket in self.ticket_repo.find_for_reporting(tenant_id):
            staff_id = ticket.get("assigned_to_id") or UNASSIGNED_ID
            row = grouped.setdefault(staff_id, {
                "name": None, "all": 0, "working": 0, "done": 0, "overdue": 0, "on_time": 0
            })
            if staff_id != UNASSIGNED_ID and not row["name"]:
                row["name"] = ticket.get("assigned_to_name")
            
            is_working = working_matcher.matches(ticket)
            is_done = done_matcher.matches(ticket)
            due = ensure_utc(ticket.get("due_date"))
            closed_at = ensure_utc(ticket.get("closed_at"))
            
            row["all"] += 1
            if is_working:
                row["working"] += 1
                if is_overdue(due, now):
                    row["overdue"] += 1
            if is_done:
                row["done"] += 1
            
            done_on_time = is_done and (due is None or (closed_at is not None and closed_at <= due))
            working_on_time = is_working and (due is None or due >= now)
            if done_on_time or working_on_time:
                row["on_time"] += 1
        
        results = []
        for staff_id, row in grouped.items():
            if staff_id == UNASSIGNED_ID:
                name = UNASSIGNED_NAME
            else:
                name = row["name"] or staff_id
            total = row["all"]
            results.append(StaffPerformance(
                staff_id=staff_id,
                name=name,
                all=total,
                working=row["working"],
                done=row["done"],
                hold=max(total - row["working"] - row["done"], 0),
                overdue=row["overdue"],
                performance=js_round(row["on_time"] / total * 100) if total > 0 else 100
            ))
        
        results.sort(key=lambda s: (s.staff_id == UNASSIGNED_ID, s.name))
        return results
