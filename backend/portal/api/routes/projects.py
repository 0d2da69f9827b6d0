"""
Project Routes

Projects created by request conversion, their sprint tasks,
and sprint progression.
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ..deps import get_current_user_dep, get_correlation_id_dep
from ...domain.models import ActorContext
from ...domain.enums import TaskStatus
from ...domain.errors import DomainError
from ...services.project_service import ProjectService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()
tasks_router = APIRouter()


class AdvanceSprintResponse(BaseModel):
    """Response after advancing a sprint"""
    message: str
    completed: bool
    project: Dict[str, Any]


class ProjectListResponse(BaseModel):
    """One page of projects"""
    items: List[Dict[str, Any]]
    page: int
    page_size: int


class TaskListResponse(BaseModel):
    """Tasks of a project, optionally for one sprint"""
    items: List[Dict[str, Any]]
    total: int


class UpdateTaskStatusBody(BaseModel):
    """New status for a project task"""
    status: TaskStatus


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List projects, newest first (clients only see their own)"""
    try:
        projects = ProjectService().list_projects(
            actor, skip=(page - 1) * page_size, limit=page_size
        )
        return ProjectListResponse(
            items=[p.model_dump(mode="json") for p in projects],
            page=page,
            page_size=page_size
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{project_id}")
async def get_project(
    project_id: int,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get a project (clients only see their own)"""
    try:
        project = ProjectService().get_project(project_id, actor)
        return project.model_dump(mode="json")

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{project_id}/tasks", response_model=TaskListResponse)
async def list_project_tasks(
    project_id: int,
    sprint_number: Optional[int] = Query(None, ge=1),
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List project tasks ordered by task ID"""
    try:
        tasks = ProjectService().list_tasks(project_id, actor, sprint_number=sprint_number)
        return TaskListResponse(
            items=[t.model_dump(mode="json") for t in tasks],
            total=len(tasks)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{project_id}/advance-sprint", response_model=AdvanceSprintResponse)
async def advance_sprint(
    project_id: int,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Advance the active sprint (managers only)

    Every task in the active sprint must be Done or Completed. Advancing
    past the last sprint marks the project Completed.
    """
    try:
        result = ProjectService().advance_sprint(project_id, actor)
        return AdvanceSprintResponse(
            message=result.message,
            completed=result.completed,
            project=result.project.model_dump(mode="json")
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{project_id}/audit")
async def get_project_audit(
    project_id: int,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Audit trail of a project, newest first (employees only)"""
    try:
        events = ProjectService().get_audit_trail(project_id, actor)
        return {"items": [e.model_dump(mode="json") for e in events]}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@tasks_router.patch("/{task_id}/status")
async def update_task_status(
    task_id: int,
    body: UpdateTaskStatusBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Move a project task to a new status (employees only)"""
    try:
        task = ProjectService().update_task_status(task_id, body.status, actor)
        return task.model_dump(mode="json")

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
