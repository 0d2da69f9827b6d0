"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict

from .enums import (
    RequestType, RequestStatus, ProjectStatus, ProjectFramework, TaskStatus,
    TaskPriority, ActorKind, EmployeeRole, Availability, AuditEntityType,
    AuditEventType, FINISHED_TASK_STATUSES
)


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor resolved from the session token and the directory"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="Internal client or employee reference")
    kind: ActorKind = Field(..., description="Client or employee")
    email: EmailStr = Field(..., description="User email")
    display_name: str = Field(..., description="User display name")
    role: Optional[str] = Field(None, description="Employee role (e.g. manager)")
    employee_id: Optional[int] = Field(None, description="External numeric employee ID")
    approves_departments: List[str] = Field(default_factory=list)

    @property
    def is_client(self) -> bool:
        return self.kind == ActorKind.CLIENT

    @property
    def is_employee(self) -> bool:
        return self.kind == ActorKind.EMPLOYEE and self.employee_id is not None

    @property
    def is_manager(self) -> bool:
        return self.is_employee and self.role == EmployeeRole.MANAGER.value


class ActorSnapshot(BaseModel):
    """Snapshot of actor identity at a point in time"""
    model_config = ConfigDict(extra="forbid")

    user_id: str
    display_name: str
    email: EmailStr
    role_at_time: Optional[str] = None

    @classmethod
    def from_actor(cls, actor: ActorContext) -> "ActorSnapshot":
        return cls(
            user_id=actor.user_id,
            display_name=actor.display_name,
            email=actor.email,
            role_at_time=actor.role or actor.kind.value
        )


# ============================================================================
# Directory
# ============================================================================

class Client(BaseModel):
    """Client organization contact"""
    model_config = ConfigDict(extra="ignore")

    client_ref: str = Field(..., description="Internal client reference")
    client_name: str
    contact_email: EmailStr
    active: bool = True
    created_at: Optional[datetime] = None


class Employee(BaseModel):
    """Employee directory record"""
    model_config = ConfigDict(extra="ignore")

    employee_ref: str = Field(..., description="Internal employee reference")
    employee_id: int = Field(..., description="External numeric employee ID")
    name: str
    email: EmailStr
    role: str = Field(default=EmployeeRole.EMPLOYEE.value)
    department: str
    approves_departments: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    availability: Availability = Field(default=Availability.AVAILABLE)
    active: bool = True


# ============================================================================
# Workflow Record
# ============================================================================

class SuggestedEmployee(BaseModel):
    """Ranked staffing candidate for a workflow task (informational only)"""
    employee_ref: str
    match_score: int = Field(..., ge=0, le=100)
    reason: str = ""


class WorkflowTask(BaseModel):
    """One proposed task in a generated workflow"""
    model_config = ConfigDict(extra="ignore")

    task_id: str = Field(..., description="Identifier scoped within the request")
    task_name: str
    team: str = Field(..., description="Free-text department label, never normalized in place")
    estimated_hours: Optional[float] = None
    required_skills: List[str] = Field(default_factory=list)
    suggested_employees: List[SuggestedEmployee] = Field(default_factory=list)


class GeneratedWorkflow(BaseModel):
    """Task breakdown produced by the workflow generator"""
    model_config = ConfigDict(extra="ignore")

    estimated_duration: Optional[float] = None
    task_breakdown: List[WorkflowTask] = Field(default_factory=list)

    def task_ids(self) -> List[str]:
        return [t.task_id for t in self.task_breakdown]

    def task_index(self, task_id: str) -> Optional[int]:
        for index, task in enumerate(self.task_breakdown):
            if task.task_id == task_id:
                return index
        return None


# ============================================================================
# Client Request
# ============================================================================

class ApprovalEntry(BaseModel):
    """Approval ledger entry for one required department"""
    model_config = ConfigDict(extra="ignore")

    department: str = Field(..., description="Label as it appeared in the workflow")
    approved: bool = False
    rejected: bool = False
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None


class ClientRequest(BaseModel):
    """Client-submitted project request"""
    model_config = ConfigDict(extra="ignore")

    request_id: str = Field(..., description="Unique request ID")
    client: str = Field(..., description="Submitting client reference")
    request_type: RequestType
    title: str
    description: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)
    status: RequestStatus = Field(default=RequestStatus.SUBMITTED)
    generated_workflow: Optional[GeneratedWorkflow] = None
    required_departments: List[str] = Field(default_factory=list)
    approvals_by_department: List[ApprovalEntry] = Field(default_factory=list)
    task_assignments: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Workflow task ID -> employee references"
    )
    converted_to_project: Optional[int] = None
    conversion_attempt: Optional[str] = Field(None, description="Token of the conversion currently holding the request")
    conversion_claimed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def pending_departments(self) -> List[str]:
        """Ledger departments not yet approved"""
        return [e.department for e in self.approvals_by_department if not e.approved]

    def assignees_for(self, task_id: str) -> List[str]:
        return list(self.task_assignments.get(task_id) or [])

    def unassigned_task_ids(self) -> List[str]:
        if not self.generated_workflow:
            return []
        return [
            task_id for task_id in self.generated_workflow.task_ids()
            if not self.assignees_for(task_id)
        ]


# ============================================================================
# Project & Tasks
# ============================================================================

class Project(BaseModel):
    """Project materialized from an approved request"""
    model_config = ConfigDict(extra="ignore")

    project_id: int
    project_title: str
    client: str
    client_name: str = ""
    category: str
    framework: ProjectFramework = Field(default=ProjectFramework.AGILE)
    status: ProjectStatus = Field(default=ProjectStatus.APPROVED)
    requirements: str = ""
    active_sprint_number: int = 1
    total_sprints: int = 1
    source_request_id: Optional[str] = None
    conversion_attempt: Optional[str] = None
    version: int = Field(default=1, description="Optimistic concurrency version")
    created_at: datetime
    updated_at: datetime

    @property
    def all_sprints_finished(self) -> bool:
        return self.active_sprint_number > self.total_sprints


class ProjectTask(BaseModel):
    """Sprint-scoped task belonging to a project"""
    model_config = ConfigDict(extra="ignore")

    task_id: int
    task_name: str
    description: str = ""
    assigned_to: List[int] = Field(default_factory=list, description="Numeric employee IDs")
    project_id: int
    sprint: str
    sprint_number: int
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    dependencies: List[int] = Field(default_factory=list)
    estimated_hours: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_TASK_STATUSES


# ============================================================================
# Audit Event
# ============================================================================

class AuditEvent(BaseModel):
    """Append-only audit event"""
    model_config = ConfigDict(extra="forbid")

    audit_event_id: str
    entity_type: AuditEntityType
    entity_id: str
    event_type: AuditEventType
    actor: ActorSnapshot
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    correlation_id: Optional[str] = None
