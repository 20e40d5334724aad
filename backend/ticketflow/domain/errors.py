"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""
    
    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Role is not allowed to call this operation"""
    error_code = "PERMISSION_DENIED"


class TransitionForbiddenError(AuthorizationError):
    """Transition exists but the acting role may not execute it"""
    error_code = "TRANSITION_FORBIDDEN"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class WorkflowValidationError(ValidationError):
    """Workflow definition validation failed"""
    error_code = "WORKFLOW_VALIDATION_ERROR"


class SystemWorkflowProtectedError(ValidationError):
    """Forbidden mutation of the system default workflow"""
    error_code = "SYSTEM_WORKFLOW_PROTECTED"


class NoWorkflowError(ValidationError):
    """No workflow could be resolved for a ticket"""
    error_code = "NO_WORKFLOW"


class WorkflowInactiveError(ValidationError):
    """Live workflow governing a ticket is not active"""
    error_code = "WORKFLOW_INACTIVE"


class ConditionNotMetError(ValidationError):
    """A transition guard condition is not satisfied"""
    error_code = "CONDITION_NOT_MET"


class ConditionNotImplementedError(ValidationError):
    """A transition guard relies on a capability that does not exist yet"""
    error_code = "CONDITION_NOT_IMPLEMENTED"


class TransitionNotFoundError(ValidationError):
    """No transition defined for the requested state pair"""
    error_code = "TRANSITION_NOT_FOUND"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class WorkflowNotFoundError(NotFoundError):
    """Workflow not found"""
    error_code = "WORKFLOW_NOT_FOUND"


class WorkflowTransitionNotFoundError(NotFoundError):
    """Relational workflow transition row not found"""
    error_code = "WORKFLOW_TRANSITION_NOT_FOUND"


class TicketNotFoundError(NotFoundError):
    """Ticket not found"""
    error_code = "TICKET_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"


class AlreadyExistsError(ConflictError):
    """Resource already exists"""
    error_code = "ALREADY_EXISTS"


# External Service Errors
class ExternalServiceError(DomainError):
    """External service failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class EmailSendError(ExternalServiceError):
    """Email sending failed"""
    error_code = "EMAIL_SEND_ERROR"
