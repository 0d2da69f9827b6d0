"""
Request Workflow Routes

Generate, inspect and edit a request's workflow, and staff its tasks.
"""

from fastapi import APIRouter, Depends, HTTPException

from ...deps import get_current_user_dep, get_correlation_id_dep, get_workflow_generator_dep
from ....domain.models import ActorContext
from ....domain.errors import DomainError
from ....services.request_service import RequestService
from ....services.workflow_generator import WorkflowGenerator
from ....utils.logger import get_logger
from .schemas import ModifyWorkflowBody, AssignEmployeesBody, ActionResponse

logger = get_logger(__name__)
router = APIRouter()


@router.post("/{request_id}/generate-workflow", response_model=ActionResponse)
async def generate_workflow(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    generator: WorkflowGenerator = Depends(get_workflow_generator_dep)
):
    """
    Generate the task breakdown for a submitted request

    Opens one approval ledger entry per distinct task team.
    May take a while when the breakdown is drafted by Azure OpenAI.
    """
    try:
        service = RequestService(workflow_generator=generator)
        request = service.generate_workflow(request_id, actor)
        return ActionResponse(
            message="Workflow generated",
            request=service.serialize_request(request, actor)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{request_id}/workflow")
async def get_workflow(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Workflow tasks with their suggestions and current assignees"""
    try:
        return RequestService().get_workflow(request_id, actor)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{request_id}/workflow", response_model=ActionResponse)
async def modify_workflow(
    request_id: str,
    body: ModifyWorkflowBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Merge edits onto workflow tasks (managers only)

    Fields left out of a task update keep their current values.
    """
    try:
        service = RequestService()
        request = service.modify_workflow(
            request_id,
            [u.model_dump(exclude_none=True) for u in body.task_updates],
            actor,
            estimated_duration=body.estimated_duration,
            review_notes=body.review_notes
        )
        return ActionResponse(
            message="Workflow updated",
            request=service.serialize_request(request, actor)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{request_id}/refresh-suggestions", response_model=ActionResponse)
async def refresh_suggestions(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    generator: WorkflowGenerator = Depends(get_workflow_generator_dep)
):
    """Re-rank employee suggestions for every task (managers only)"""
    try:
        service = RequestService(workflow_generator=generator)
        request = service.refresh_suggestions(request_id, actor)
        return ActionResponse(
            message="Suggestions refreshed",
            request=service.serialize_request(request, actor)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{request_id}/assign-employees", response_model=ActionResponse)
async def assign_employees(
    request_id: str,
    body: AssignEmployeesBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Staff workflow tasks (managers only)

    Assignments are merged per task; the manager must manage every team touched.
    """
    try:
        service = RequestService()
        request = service.assign_employees(request_id, body.assignments, actor)
        return ActionResponse(
            message="Employees assigned",
            request=service.serialize_request(request, actor)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
