"""
Request CRUD Routes

Create, read, list, update and delete client requests.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...deps import get_current_user_dep, get_correlation_id_dep
from ....domain.models import ActorContext
from ....domain.enums import RequestStatus
from ....domain.errors import DomainError, ValidationError
from ....services.request_service import RequestService
from ....utils.logger import get_logger
from .schemas import CreateRequestBody, UpdateRequestBody, RequestListResponse

logger = get_logger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_request(
    body: CreateRequestBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Submit a new request

    Only clients can submit; the request always starts as submitted.
    """
    try:
        service = RequestService()
        request = service.create_request(
            actor=actor,
            request_type=body.request_type,
            title=body.title,
            description=body.description,
            requirements=body.requirements
        )
        return service.serialize_request(request, actor)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/", response_model=RequestListResponse)
async def list_requests(
    statuses: Optional[str] = Query(None, description="Filter by statuses (comma-separated)"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    List requests

    Clients see only their own requests; employees see all of them.
    """
    try:
        status_list: Optional[List[RequestStatus]] = None
        if statuses:
            try:
                status_list = [RequestStatus(s.strip()) for s in statuses.split(",") if s.strip()]
            except ValueError:
                raise ValidationError(
                    "Unknown status filter",
                    details={"statuses": statuses, "allowed": [s.value for s in RequestStatus]}
                )

        service = RequestService()
        items, total = service.list_requests(
            actor=actor,
            statuses=status_list,
            skip=(page - 1) * page_size,
            limit=page_size
        )
        return RequestListResponse(
            items=[service.serialize_request(r, actor) for r in items],
            page=page,
            page_size=page_size,
            total=total
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{request_id}")
async def get_request(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get a single request"""
    try:
        service = RequestService()
        request = service.get_request(request_id, actor)
        return service.serialize_request(request, actor)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{request_id}")
async def update_request(
    request_id: str,
    body: UpdateRequestBody,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Edit a request

    Only the owning client, and only while the request is submitted.
    """
    try:
        service = RequestService()
        request = service.update_request(request_id, body.model_dump(exclude_unset=True), actor)
        return service.serialize_request(request, actor)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(
    request_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Delete a request that has not been converted"""
    try:
        RequestService().delete_request(request_id, actor)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
