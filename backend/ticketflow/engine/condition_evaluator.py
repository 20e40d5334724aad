"""Condition Evaluator - Guard checks run before a transition mutates anything"""
from typing import List, Optional

from ..domain.models import Ticket, ResolvedCondition
from ..domain.enums import ConditionType, TicketPriority
from ..domain.errors import ConditionNotMetError, ConditionNotImplementedError
from ..utils.logger import get_logger

logger = get_logger(__name__)

HIGH_PRIORITIES = {TicketPriority.HIGH, TicketPriority.CRITICAL}


class ConditionEvaluator:
    """
    Evaluate transition guard conditions
    
    All required conditions must pass. The first failure raises with a
    message that can be shown to the user as is. Read-only.
    """
    
    def validate(
        self,
        ticket: Ticket,
        conditions: List[ResolvedCondition],
        comment: Optional[str] = None,
        resolution: Optional[str] = None
    ) -> None:
        """
        Validate every required condition
        
        Args:
            ticket: Ticket as currently stored
            conditions: Conditions of the resolved transition
            comment: Comment supplied with the request
            resolution: Resolution supplied with the request
        
        Raises:
            ConditionNotMetError: A condition is not satisfied
            ConditionNotImplementedError: A condition cannot be evaluated yet
        """
        for condition in conditions:
            if not condition.is_required:
                continue
            self._check(ticket, condition, comment, resolution)
    
    def _check(
        self,
        ticket: Ticket,
        condition: ResolvedCondition,
        comment: Optional[str],
        resolution: Optional[str]
    ) -> None:
        try:
            condition_type = ConditionType(condition.type)
        except ValueError:
            raise ConditionNotImplementedError(
                f"Condition '{condition.type}' is not supported",
                details={"condition": condition.type}
            )
        
        if condition_type == ConditionType.REQUIRES_COMMENT:
            if not _has_text(comment):
                raise ConditionNotMetError(
                    "A comment is required to perform this transition",
                    details={"condition": condition_type.value}
                )
        
        elif condition_type == ConditionType.REQUIRES_RESOLUTION:
            if not _has_text(resolution) and not _has_text(ticket.resolution):
                raise ConditionNotMetError(
                    "A resolution is required to perform this transition",
                    details={"condition": condition_type.value}
                )
        
        elif condition_type == ConditionType.REQUIRES_ASSIGNMENT:
            if not ticket.assigned_to_id:
                raise ConditionNotMetError(
                    "Ticket must be assigned before performing this transition",
                    details={"condition": condition_type.value}
                )
        
        elif condition_type == ConditionType.PRIORITY_HIGH:
            if ticket.priority not in HIGH_PRIORITIES:
                raise ConditionNotMetError(
                    "This transition is only available for high or critical priority tickets",
                    details={"condition": condition_type.value, "priority": ticket.priority.value}
                )
        
        elif condition_type == ConditionType.REQUIRES_APPROVAL:
            raise ConditionNotImplementedError(
                "This transition requires approval, which is not available yet",
                details={"condition": condition_type.value}
            )
        
        elif condition_type == ConditionType.CUSTOM_FIELD_VALUE:
            raise ConditionNotImplementedError(
                "Custom field conditions are not available yet",
                details={"condition": condition_type.value, "value": condition.value}
            )


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())
