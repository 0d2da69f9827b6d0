"""
Request Review Routes

Department sign-off and the final approve/reject decision.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException

from ...deps import get_current_user_dep, get_correlation_id_dep
from ....domain.models import ActorContext
from ....domain.errors import DomainError
from ....services.request_service import RequestService
from ....utils.logger import get_logger
from .schemas import DepartmentDecisionBody, RejectRequestBody, ActionResponse, ApproveResponse

logger = get_logger(__name__)
router = APIRouter()


@router.post("/{request_id}/department-approve", response_model=ActionResponse)
async def department_approve(
    request_id: str,
    body: Optional[DepartmentDecisionBody] = None,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Approve the request on behalf of one of your departments

    If no department is given and exactly one of yours is pending it is used;
    several candidates return AMBIGUOUS_REQUEST.
    """
    try:
        service = RequestService()
        request = service.department_approve(request_id, actor, body.department if body else None)
        return ActionResponse(
            message="Department approved",
            request=service.serialize_request(request, actor)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{request_id}/department-reject", response_model=ActionResponse)
async def department_reject(
    request_id: str,
    body: Optional[DepartmentDecisionBody] = None,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Reject the request on behalf of one of your departments"""
    try:
        service = RequestService()
        request = service.department_reject(request_id, actor, body.department if body else None)
        return ActionResponse(
            message="Department rejected",
            request=service.serialize_request(request, actor)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{request_id}/approve", response_model=ApproveResponse)
async def approve_request(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Approve and convert the request into a project

    Requires every department approved and every task staffed.
    """
    try:
        service = RequestService()
        result = service.approve_request(request_id, actor)
        logger.info(
            f"Request {request_id} approved and converted",
            extra={"request_id": request_id, "project_id": result.project.project_id}
        )
        return ApproveResponse(
            message="Request approved and converted to project",
            request=service.serialize_request(result.request, actor),
            project=result.project.model_dump(mode="json"),
            tasks=[t.model_dump(mode="json") for t in result.tasks]
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{request_id}/reject", response_model=ActionResponse)
async def reject_request(
    request_id: str,
    body: Optional[RejectRequestBody] = None,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Reject the request at any status before conversion (managers only)"""
    try:
        service = RequestService()
        request = service.reject_request(request_id, actor, body.review_notes if body else None)
        return ActionResponse(
            message="Request rejected",
            request=service.serialize_request(request, actor)
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{request_id}/audit")
async def get_request_audit(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Audit trail of a request, newest first (employees only)"""
    try:
        events = RequestService().get_audit_trail(request_id, actor)
        return {"items": [e.model_dump(mode="json") for e in events]}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
