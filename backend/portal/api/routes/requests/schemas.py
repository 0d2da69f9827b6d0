"""
Request Schemas

Request and response models for client request API endpoints.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ....domain.enums import RequestType


# =============================================================================
# Request CRUD Schemas
# =============================================================================

class CreateRequestBody(BaseModel):
    """Request to submit a new client request"""
    request_type: RequestType
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    requirements: List[str] = Field(default_factory=list)


class UpdateRequestBody(BaseModel):
    """Client edits allowed while a request is still submitted"""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    requirements: Optional[List[str]] = None


class RequestListResponse(BaseModel):
    """Response for request list"""
    items: List[Dict[str, Any]]
    page: int
    page_size: int
    total: int


# =============================================================================
# Workflow Schemas
# =============================================================================

class WorkflowTaskUpdate(BaseModel):
    """Fields to merge onto one workflow task; omitted fields are kept"""
    model_config = ConfigDict(extra="forbid")

    task_id: str = Field(..., min_length=1)
    task_name: Optional[str] = Field(None, min_length=1, max_length=200)
    team: Optional[str] = Field(None, min_length=1, max_length=100)
    estimated_hours: Optional[float] = Field(None, ge=0)
    required_skills: Optional[List[str]] = None


class ModifyWorkflowBody(BaseModel):
    """Manager edits to a generated workflow"""
    task_updates: List[WorkflowTaskUpdate] = Field(default_factory=list)
    estimated_duration: Optional[float] = Field(None, ge=0)
    review_notes: Optional[str] = Field(None, max_length=2000)


class AssignEmployeesBody(BaseModel):
    """Workflow task ID -> employee references to staff on it"""
    assignments: Dict[str, List[str]] = Field(..., min_length=1)


# =============================================================================
# Review Schemas
# =============================================================================

class DepartmentDecisionBody(BaseModel):
    """Department sign-off; omit department to let the server pick yours"""
    department: Optional[str] = Field(None, max_length=100)


class RejectRequestBody(BaseModel):
    """Final rejection"""
    review_notes: Optional[str] = Field(None, max_length=2000)


class ActionResponse(BaseModel):
    """Response after a lifecycle action"""
    message: str
    request: Dict[str, Any]


class ApproveResponse(BaseModel):
    """Response after approval and conversion"""
    message: str
    request: Dict[str, Any]
    project: Dict[str, Any]
    tasks: List[Dict[str, Any]]
