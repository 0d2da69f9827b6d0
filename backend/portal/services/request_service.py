"""Request Service - Client request business logic"""
from typing import Any, Dict, List, Optional, Tuple

from ..domain.enums import RequestStatus, RequestType, AuditEntityType
from ..domain.errors import PermissionDeniedError, InvalidStateError
from ..domain.models import ActorContext, ClientRequest, AuditEvent
from ..engine.request_engine import RequestLifecycleEngine
from ..engine.conversion import ConversionResult
from ..engine.permission_guard import PermissionGuard
from ..repositories.request_repo import RequestRepository
from ..repositories.audit_repo import AuditRepository
from .directory_service import DirectoryService
from .workflow_generator import WorkflowGenerator
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Internal review data clients never see
CLIENT_HIDDEN_FIELDS = {
    "generated_workflow", "task_assignments", "approvals_by_department",
    "conversion_attempt", "conversion_claimed_at"
}


class RequestService:
    """Service for client request operations"""

    def __init__(self, workflow_generator: Optional[WorkflowGenerator] = None):
        self.request_repo = RequestRepository()
        self.audit_repo = AuditRepository()
        self.directory_service = DirectoryService()
        self.permission_guard = PermissionGuard()
        self.engine = RequestLifecycleEngine(workflow_generator=workflow_generator)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_request(self, request_id: str, actor: ActorContext) -> ClientRequest:
        request = self.request_repo.get_request_or_raise(request_id)
        if not self.permission_guard.can_view_request(actor, request):
            raise PermissionDeniedError(
                "You cannot view this request",
                details={"request_id": request_id}
            )
        return request

    def list_requests(
        self,
        actor: ActorContext,
        statuses: Optional[List[RequestStatus]] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[ClientRequest], int]:
        """Clients list their own requests, employees list all of them"""
        client = actor.user_id if actor.is_client else None
        items = self.request_repo.list_requests(client=client, statuses=statuses, skip=skip, limit=limit)
        total = self.request_repo.count_requests(client=client, statuses=statuses)
        return items, total

    def serialize_request(self, request: ClientRequest, actor: ActorContext) -> Dict[str, Any]:
        """API view of a request for this actor"""
        data = request.model_dump(mode="json")
        if actor.is_client:
            for key in CLIENT_HIDDEN_FIELDS:
                data.pop(key, None)
        return data

    def get_workflow(self, request_id: str, actor: ActorContext) -> Dict[str, Any]:
        """Workflow with each task's current assignees merged in"""
        self.permission_guard.require_employee(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        workflow = request.generated_workflow
        if workflow is None:
            raise InvalidStateError(
                "Workflow has not been generated yet",
                details={"status": request.status.value}
            )

        tasks = []
        for task in workflow.task_breakdown:
            item = task.model_dump(mode="json")
            refs = request.assignees_for(task.task_id)
            item["assigned_employees"] = refs
            item["assigned_employee_details"] = self.directory_service.get_employees_summary(refs)
            tasks.append(item)

        return {
            "request_id": request.request_id,
            "status": request.status.value,
            "estimated_duration": workflow.estimated_duration,
            "required_departments": request.required_departments,
            "approvals_by_department": [e.model_dump(mode="json") for e in request.approvals_by_department],
            "task_breakdown": tasks,
        }

    def get_audit_trail(self, request_id: str, actor: ActorContext, skip: int = 0, limit: int = 100) -> List[AuditEvent]:
        self.permission_guard.require_employee(actor)
        self.request_repo.get_request_or_raise(request_id)
        return self.audit_repo.get_events_for_entity(AuditEntityType.REQUEST, request_id, skip=skip, limit=limit)

    # =========================================================================
    # Lifecycle (delegated to the engine)
    # =========================================================================

    def create_request(
        self,
        actor: ActorContext,
        request_type: RequestType,
        title: str,
        description: Optional[str],
        requirements: List[str]
    ) -> ClientRequest:
        return self.engine.create_request(actor, request_type, title, description, requirements)

    def update_request(self, request_id: str, fields: Dict[str, Any], actor: ActorContext) -> ClientRequest:
        return self.engine.update_request(request_id, fields, actor)

    def delete_request(self, request_id: str, actor: ActorContext) -> None:
        self.engine.delete_request(request_id, actor)

    def generate_workflow(self, request_id: str, actor: ActorContext) -> ClientRequest:
        return self.engine.generate_workflow(request_id, actor)

    def modify_workflow(
        self,
        request_id: str,
        task_updates: List[Dict[str, Any]],
        actor: ActorContext,
        estimated_duration: Optional[float] = None,
        review_notes: Optional[str] = None
    ) -> ClientRequest:
        return self.engine.modify_workflow(
            request_id, task_updates, actor,
            estimated_duration=estimated_duration, review_notes=review_notes
        )

    def refresh_suggestions(self, request_id: str, actor: ActorContext) -> ClientRequest:
        return self.engine.refresh_suggestions(request_id, actor)

    def assign_employees(self, request_id: str, assignments: Dict[str, List[str]], actor: ActorContext) -> ClientRequest:
        return self.engine.assign_employees(request_id, assignments, actor)

    def department_approve(self, request_id: str, actor: ActorContext, department: Optional[str] = None) -> ClientRequest:
        return self.engine.department_approve(request_id, actor, department)

    def department_reject(self, request_id: str, actor: ActorContext, department: Optional[str] = None) -> ClientRequest:
        return self.engine.department_reject(request_id, actor, department)

    def approve_request(self, request_id: str, actor: ActorContext) -> ConversionResult:
        return self.engine.approve_request(request_id, actor)

    def reject_request(self, request_id: str, actor: ActorContext, review_notes: Optional[str] = None) -> ClientRequest:
        return self.engine.reject_request(request_id, actor, review_notes)
