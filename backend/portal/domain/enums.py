"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class RequestType(str, Enum):
    """Kind of work a client is asking for"""
    WEB_DEV = "web_dev"
    APP_DEV = "app_dev"
    PROTOTYPE = "prototype"
    RESEARCH = "research"


class RequestStatus(str, Enum):
    """Client request lifecycle status"""
    SUBMITTED = "submitted"
    WORKFLOW_GENERATED = "workflow_generated"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"  # Transient: recorded right before conversion runs
    REJECTED = "rejected"
    CONVERTED = "converted"


# Statuses in which managers may edit, staff, and sign off on a workflow
REVIEWABLE_STATUSES = (RequestStatus.WORKFLOW_GENERATED, RequestStatus.UNDER_REVIEW)

# approveRequest may be retried from APPROVED after a failed conversion
APPROVABLE_STATUSES = REVIEWABLE_STATUSES + (RequestStatus.APPROVED,)

REJECTABLE_STATUSES = (RequestStatus.SUBMITTED,) + APPROVABLE_STATUSES


class ProjectStatus(str, Enum):
    """Project status"""
    PENDING = "Pending"
    APPROVED = "Approved"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ProjectFramework(str, Enum):
    """Delivery framework"""
    AGILE = "Agile"
    WATERFALL = "Waterfall"
    HYBRID = "Hybrid"


class TaskStatus(str, Enum):
    """Project task status"""
    PENDING = "Pending"
    TO_DO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"
    COMPLETED = "Completed"


# A sprint can close only when every one of its tasks is in one of these
FINISHED_TASK_STATUSES = (TaskStatus.DONE, TaskStatus.COMPLETED)


class TaskPriority(str, Enum):
    """Project task priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActorKind(str, Enum):
    """Which directory an authenticated user belongs to"""
    CLIENT = "client"
    EMPLOYEE = "employee"


class EmployeeRole(str, Enum):
    """Employee roles with meaning to the lifecycle engine"""
    MANAGER = "manager"
    EMPLOYEE = "employee"


class Availability(str, Enum):
    """Employee availability"""
    AVAILABLE = "Available"
    BUSY = "Busy"
    ON_LEAVE = "On Leave"


class LedgerDecision(str, Enum):
    """Decision recorded on an approval ledger entry"""
    APPROVE = "approve"
    REJECT = "reject"


class AuditEntityType(str, Enum):
    """Entity an audit event belongs to"""
    REQUEST = "request"
    PROJECT = "project"
    TASK = "task"


class AuditEventType(str, Enum):
    """Types of audit events"""
    CREATE_REQUEST = "CREATE_REQUEST"
    UPDATE_REQUEST = "UPDATE_REQUEST"
    DELETE_REQUEST = "DELETE_REQUEST"
    GENERATE_WORKFLOW = "GENERATE_WORKFLOW"
    MODIFY_WORKFLOW = "MODIFY_WORKFLOW"
    REFRESH_SUGGESTIONS = "REFRESH_SUGGESTIONS"
    ASSIGN_EMPLOYEES = "ASSIGN_EMPLOYEES"
    DEPARTMENT_APPROVE = "DEPARTMENT_APPROVE"
    DEPARTMENT_REJECT = "DEPARTMENT_REJECT"
    APPROVE_REQUEST = "APPROVE_REQUEST"
    REJECT_REQUEST = "REJECT_REQUEST"
    CONVERT_REQUEST = "CONVERT_REQUEST"
    CONVERSION_FAILED = "CONVERSION_FAILED"
    ADVANCE_SPRINT = "ADVANCE_SPRINT"
    UPDATE_TASK_STATUS = "UPDATE_TASK_STATUS"
