"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class UserRole(str, Enum):
    """Roles carried by authenticated users"""
    END_USER = "END_USER"
    SUPPORT_STAFF = "SUPPORT_STAFF"
    SUPPORT_MANAGER = "SUPPORT_MANAGER"
    ADMIN = "ADMIN"


class WorkflowStatus(str, Enum):
    """Workflow lifecycle status"""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ConditionType(str, Enum):
    """Guard conditions evaluated before a transition executes"""
    REQUIRES_COMMENT = "REQUIRES_COMMENT"
    REQUIRES_RESOLUTION = "REQUIRES_RESOLUTION"
    REQUIRES_ASSIGNMENT = "REQUIRES_ASSIGNMENT"
    REQUIRES_APPROVAL = "REQUIRES_APPROVAL"  # Approval subsystem not built yet, always rejects
    PRIORITY_HIGH = "PRIORITY_HIGH"
    CUSTOM_FIELD_VALUE = "CUSTOM_FIELD_VALUE"  # Custom-field lookup not built yet, always rejects


class ActionType(str, Enum):
    """Side effects executed after a transition commits"""
    SEND_NOTIFICATION = "SEND_NOTIFICATION"
    ASSIGN_TO_USER = "ASSIGN_TO_USER"
    CALCULATE_RESOLUTION_TIME = "CALCULATE_RESOLUTION_TIME"
    UPDATE_PRIORITY = "UPDATE_PRIORITY"
    SEND_EMAIL = "SEND_EMAIL"
    LOG_ACTIVITY = "LOG_ACTIVITY"


class TicketPriority(str, Enum):
    """Ticket priority"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TransitionSource(str, Enum):
    """Which workflow representation a transition was resolved from"""
    GRAPH = "GRAPH"
    RELATIONAL = "RELATIONAL"


class NotificationStatus(str, Enum):
    """Notification outbox status"""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class NotificationTemplateKey(str, Enum):
    """Email template keys"""
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_STATUS_CHANGED = "TICKET_STATUS_CHANGED"
    WORKFLOW_NOTIFICATION = "WORKFLOW_NOTIFICATION"
    WORKFLOW_EMAIL = "WORKFLOW_EMAIL"


# Statuses offered when no workflow defines any
SYSTEM_STATUSES = ["NEW", "OPEN", "IN_PROGRESS", "ON_HOLD", "RESOLVED", "CLOSED", "REOPENED"]

# Categorization used for a default workflow that stores none
DEFAULT_WORKING_STATUSES = ["NEW", "OPEN", "IN_PROGRESS", "REOPENED"]
DEFAULT_DONE_STATUSES = ["CLOSED", "RESOLVED"]
