"""
Request Lifecycle Engine - state machine for client requests

    submitted -> workflow_generated -> under_review -> approved -> converted
         \\______________\\_________________\\______________\\--> rejected

Responsibilities:
- Enforce who may act at which status
- Keep the approval ledger and assignment map consistent with the workflow
- Route every departmental authority check through the department normalizer
- Gate approval on full sign-off and full staffing, then run the conversion
- Write an audit event for every mutation
"""
from typing import Any, Dict, List, Optional

from ..domain import departments
from ..domain.enums import (
    RequestStatus, RequestType, LedgerDecision, AuditEventType,
    REVIEWABLE_STATUSES, APPROVABLE_STATUSES, REJECTABLE_STATUSES
)
from ..domain.errors import (
    PermissionDeniedError, InvalidStateError, ValidationError, AmbiguousRequestError
)
from ..domain.models import (
    ActorContext, ClientRequest, ApprovalEntry, GeneratedWorkflow, WorkflowTask
)
from ..repositories.request_repo import RequestRepository
from ..repositories.directory_repo import DirectoryRepository
from ..services.workflow_generator import WorkflowGenerator
from .approval_resolver import resolve_department, Ambiguous, Unauthorized, Ineligible
from .audit_writer import AuditWriter
from .conversion import ConversionTransaction, ConversionResult, check_conversion_gates
from .permission_guard import PermissionGuard
from ..config.settings import settings
from ..utils.idgen import generate_request_id
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

# Fields a client may edit while the request is still submitted
EDITABLE_REQUEST_FIELDS = ("title", "description", "requirements")

# Workflow task fields a manager may overwrite
EDITABLE_TASK_FIELDS = ("task_name", "team", "estimated_hours", "required_skills")


def derive_required_departments(workflow: GeneratedWorkflow) -> List[str]:
    """
    Distinct task teams in breakdown order.

    Teams that normalize to the same department ("QA", "Testing") count once;
    the first label seen is the one stored.
    """
    seen = set()
    labels: List[str] = []
    for task in workflow.task_breakdown:
        key = departments.normalize(task.team)
        if key and key not in seen:
            seen.add(key)
            labels.append(task.team)
    return labels


class RequestLifecycleEngine:
    """Central orchestrator for client request operations"""

    def __init__(self, workflow_generator: Optional[WorkflowGenerator] = None):
        self.request_repo = RequestRepository()
        self.directory_repo = DirectoryRepository()
        self.audit_writer = AuditWriter()
        self.permission_guard = PermissionGuard()
        self.workflow_generator = workflow_generator or WorkflowGenerator()
        self.conversion = ConversionTransaction(
            request_repo=self.request_repo,
            directory_repo=self.directory_repo,
            audit_writer=self.audit_writer
        )

    # =========================================================================
    # Client operations
    # =========================================================================

    def create_request(
        self,
        actor: ActorContext,
        request_type: RequestType,
        title: str,
        description: Optional[str],
        requirements: List[str]
    ) -> ClientRequest:
        """Submit a new request on behalf of the acting client"""
        self.permission_guard.require_client(actor)
        if not title or not title.strip():
            raise ValidationError("Title is required", details={"field": "title"})

        now = utc_now()
        request = ClientRequest(
            request_id=generate_request_id(),
            client=actor.user_id,
            request_type=request_type,
            title=title.strip(),
            description=description,
            requirements=[r for r in requirements if r and r.strip()],
            status=RequestStatus.SUBMITTED,
            created_at=now,
            updated_at=now
        )
        self.request_repo.create_request(request)
        self.audit_writer.write_request_event(
            request.request_id,
            AuditEventType.CREATE_REQUEST,
            actor,
            details={"request_type": request_type.value, "title": request.title}
        )
        return request

    def update_request(self, request_id: str, fields: Dict[str, Any], actor: ActorContext) -> ClientRequest:
        """Edit title/description/requirements while still submitted"""
        request = self.request_repo.get_request_or_raise(request_id)
        self.permission_guard.require_request_owner(actor, request)
        self._require_status(request, [RequestStatus.SUBMITTED], "edit the request")

        unknown = [k for k in fields if k not in EDITABLE_REQUEST_FIELDS]
        if unknown:
            raise ValidationError(
                "Only title, description and requirements can be edited",
                details={"invalid_fields": unknown}
            )
        updates = {k: v for k, v in fields.items() if v is not None}
        if "title" in updates and not str(updates["title"]).strip():
            raise ValidationError("Title cannot be empty", details={"field": "title"})
        if not updates:
            return request

        updated = self.request_repo.update_request(request_id, updates, [RequestStatus.SUBMITTED])
        self.audit_writer.write_request_event(
            request_id, AuditEventType.UPDATE_REQUEST, actor, details={"fields": sorted(updates)}
        )
        return updated

    def delete_request(self, request_id: str, actor: ActorContext) -> None:
        """Owner client or a manager may delete a request until it is converted"""
        request = self.request_repo.get_request_or_raise(request_id)
        if not (self.permission_guard.is_request_owner(actor, request) or actor.is_manager):
            raise PermissionDeniedError(
                "Only the submitting client or a manager can delete this request",
                details={"request_id": request_id}
            )
        deletable = [s for s in RequestStatus if s != RequestStatus.CONVERTED]
        self._require_status(request, deletable, "delete the request")

        self.request_repo.delete_request(request_id, deletable)
        self.audit_writer.write_request_event(request_id, AuditEventType.DELETE_REQUEST, actor)

    # =========================================================================
    # Workflow
    # =========================================================================

    def generate_workflow(self, request_id: str, actor: ActorContext) -> ClientRequest:
        """Attach a generated workflow and open one ledger entry per department"""
        self.permission_guard.require_employee(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        if request.status != RequestStatus.SUBMITTED:
            raise InvalidStateError(
                "Workflow already generated",
                details={"status": request.status.value}
            )

        workflow = self.workflow_generator.generate_workflow_with_suggestions(
            request.request_type, request.description, request.requirements
        )
        required = derive_required_departments(workflow)
        ledger = [ApprovalEntry(department=label) for label in required]

        updated = self.request_repo.attach_workflow(request_id, workflow, required, ledger)
        logger.info(
            f"Workflow generated for {request_id}: {len(workflow.task_breakdown)} task(s), "
            f"departments {required}",
            extra={"request_id": request_id, "actor_id": actor.user_id, "status": updated.status.value}
        )
        self.audit_writer.write_request_event(
            request_id,
            AuditEventType.GENERATE_WORKFLOW,
            actor,
            details={"task_count": len(workflow.task_breakdown), "required_departments": required}
        )
        return updated

    def modify_workflow(
        self,
        request_id: str,
        task_updates: List[Dict[str, Any]],
        actor: ActorContext,
        estimated_duration: Optional[float] = None,
        review_notes: Optional[str] = None
    ) -> ClientRequest:
        """Merge caller-supplied fields onto workflow tasks and move into review"""
        self.permission_guard.require_manager(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        self._require_status(request, REVIEWABLE_STATUSES, "modify the workflow")
        workflow = self._require_workflow(request)

        per_index: Dict[int, Dict[str, Any]] = {}
        task_ids: Dict[int, str] = {}
        invalid_ids: List[str] = []
        for update in task_updates:
            task_id = str(update.get("task_id") or "")
            index = workflow.task_index(task_id)
            if index is None:
                invalid_ids.append(task_id)
                continue

            fields = {
                k: v for k, v in update.items()
                if k in EDITABLE_TASK_FIELDS and v is not None
            }
            merged = workflow.task_breakdown[index].model_dump()
            merged.update(per_index.get(index, {}))
            merged.update(fields)
            validated = WorkflowTask.model_validate(merged)
            if not validated.team.strip():
                raise ValidationError("Task team cannot be empty", details={"task_id": task_id})

            per_index.setdefault(index, {}).update(
                {k: getattr(validated, k) for k in fields}
            )
            task_ids[index] = task_id

        if invalid_ids:
            raise ValidationError(
                "Unknown workflow task ids",
                details={"invalid_task_ids": invalid_ids}
            )

        top_level: Dict[str, Any] = {"status": RequestStatus.UNDER_REVIEW.value}
        if estimated_duration is not None:
            top_level["generated_workflow.estimated_duration"] = estimated_duration
        if review_notes is not None:
            top_level["review_notes"] = review_notes

        updated = self.request_repo.update_workflow(
            request_id, per_index, task_ids, top_level, REVIEWABLE_STATUSES
        )
        self.audit_writer.write_request_event(
            request_id,
            AuditEventType.MODIFY_WORKFLOW,
            actor,
            details={"task_ids": list(task_ids.values()), "estimated_duration": estimated_duration}
        )
        return updated

    def refresh_suggestions(self, request_id: str, actor: ActorContext) -> ClientRequest:
        """Re-rank candidates for every task; status and assignments are untouched"""
        self.permission_guard.require_manager(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        self._require_status(request, REVIEWABLE_STATUSES, "refresh suggestions")
        workflow = self._require_workflow(request)

        per_index: Dict[int, Dict[str, Any]] = {}
        task_ids: Dict[int, str] = {}
        for index, task in enumerate(workflow.task_breakdown):
            suggested = self.workflow_generator.suggest_employees_for_task(task)
            per_index[index] = {"suggested_employees": [s.model_dump() for s in suggested]}
            task_ids[index] = task.task_id

        updated = self.request_repo.update_workflow(
            request_id, per_index, task_ids, {}, REVIEWABLE_STATUSES
        )
        self.audit_writer.write_request_event(request_id, AuditEventType.REFRESH_SUGGESTIONS, actor)
        return updated

    # =========================================================================
    # Staffing
    # =========================================================================

    def assign_employees(
        self,
        request_id: str,
        assignments: Dict[str, List[str]],
        actor: ActorContext
    ) -> ClientRequest:
        """Merge task assignments; the actor must manage every affected team"""
        self.permission_guard.require_manager(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        self._require_status(request, REVIEWABLE_STATUSES, "assign employees")
        workflow = self._require_workflow(request)

        if not assignments:
            raise ValidationError("No assignments supplied", details={"field": "assignments"})

        invalid_ids = [task_id for task_id in assignments if workflow.task_index(task_id) is None]
        if invalid_ids:
            raise ValidationError(
                "Unknown workflow task ids",
                details={"invalid_task_ids": invalid_ids}
            )

        teams = [workflow.task_breakdown[workflow.task_index(task_id)].team for task_id in assignments]
        disallowed = self.permission_guard.disallowed_teams(actor, teams)
        if disallowed:
            raise PermissionDeniedError(
                f"You cannot assign employees to team(s): {', '.join(disallowed)}",
                details={
                    "disallowed_teams": disallowed,
                    "approves_departments": list(actor.approves_departments)
                }
            )

        cleaned: Dict[str, List[str]] = {}
        for task_id, refs in assignments.items():
            unique: List[str] = []
            for ref in refs or []:
                if ref and ref not in unique:
                    unique.append(ref)
            cleaned[task_id] = unique

        all_refs = {ref for refs in cleaned.values() for ref in refs}
        known = self.directory_repo.get_employees_by_refs(all_refs)
        unknown = sorted(all_refs - set(known))
        if unknown:
            raise ValidationError(
                "Unknown employee references",
                details={"invalid_employee_refs": unknown}
            )

        updated = self.request_repo.merge_assignments(
            request_id, cleaned, REVIEWABLE_STATUSES, RequestStatus.UNDER_REVIEW
        )
        logger.info(
            f"Assigned employees on {len(cleaned)} task(s) of {request_id}",
            extra={"request_id": request_id, "actor_id": actor.user_id, "action": "assign_employees"}
        )
        self.audit_writer.write_request_event(
            request_id, AuditEventType.ASSIGN_EMPLOYEES, actor, details={"assignments": cleaned}
        )
        return updated

    # =========================================================================
    # Department sign-off
    # =========================================================================

    def department_approve(
        self,
        request_id: str,
        actor: ActorContext,
        department: Optional[str] = None
    ) -> ClientRequest:
        return self._department_decision(request_id, actor, LedgerDecision.APPROVE, department)

    def department_reject(
        self,
        request_id: str,
        actor: ActorContext,
        department: Optional[str] = None
    ) -> ClientRequest:
        return self._department_decision(request_id, actor, LedgerDecision.REJECT, department)

    def _department_decision(
        self,
        request_id: str,
        actor: ActorContext,
        decision: LedgerDecision,
        department: Optional[str]
    ) -> ClientRequest:
        self.permission_guard.require_manager(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        self._require_status(request, REVIEWABLE_STATUSES, f"{decision.value} a department")
        self._require_workflow(request)

        resolution = resolve_department(
            request.approvals_by_department,
            actor.approves_departments,
            decision,
            department
        )

        if isinstance(resolution, Unauthorized):
            if resolution.department:
                message = f"You do not have authority over the {resolution.department} department"
            else:
                message = f"You have no department on this request left to {decision.value}"
            raise PermissionDeniedError(
                message,
                details={
                    "department": resolution.department,
                    "approves_departments": list(actor.approves_departments),
                    "required_departments": list(request.required_departments)
                }
            )
        if isinstance(resolution, Ambiguous):
            raise AmbiguousRequestError(
                "Several of your departments qualify; specify which one",
                details={"candidates": resolution.candidates}
            )
        if isinstance(resolution, Ineligible):
            raise InvalidStateError(
                f"Department {resolution.department} cannot be {decision.value}d: {resolution.reason}",
                details={"department": resolution.department, "reason": resolution.reason}
            )

        updated = self.request_repo.record_ledger_decision(
            request_id,
            resolution.index,
            resolution.department,
            decision,
            actor.user_id,
            utc_now(),
            REVIEWABLE_STATUSES
        )
        logger.info(
            f"Department {resolution.department} {decision.value}d on {request_id}",
            extra={
                "request_id": request_id,
                "actor_id": actor.user_id,
                "department": resolution.department,
                "action": f"department_{decision.value}"
            }
        )
        self.audit_writer.write_department_decision(
            request_id, actor, resolution.department, decision == LedgerDecision.APPROVE
        )
        return updated

    # =========================================================================
    # Final decision
    # =========================================================================

    def approve_request(self, request_id: str, actor: ActorContext) -> ConversionResult:
        """Approve a fully signed-off, fully staffed request and convert it"""
        self.permission_guard.require_manager(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        self._require_status(request, APPROVABLE_STATUSES, "approve the request")
        self._require_workflow(request)

        self.permission_guard.require_department_overlap(
            actor, request.required_departments, "approve this request"
        )

        check_conversion_gates(request)
        return self.conversion.run(request, actor)

    def reject_request(
        self,
        request_id: str,
        actor: ActorContext,
        review_notes: Optional[str] = None
    ) -> ClientRequest:
        """Reject at any pre-conversion status; ledger and assignments are kept"""
        self.permission_guard.require_manager(actor)
        request = self.request_repo.get_request_or_raise(request_id)
        self._require_status(request, REJECTABLE_STATUSES, "reject the request")

        note = review_notes if review_notes and review_notes.strip() else settings.default_rejection_note
        updated = self.request_repo.update_request(
            request_id,
            {"status": RequestStatus.REJECTED.value, "review_notes": note},
            REJECTABLE_STATUSES
        )
        logger.info(
            f"Request {request_id} rejected",
            extra={"request_id": request_id, "actor_id": actor.user_id, "status": RequestStatus.REJECTED.value}
        )
        self.audit_writer.write_request_event(
            request_id, AuditEventType.REJECT_REQUEST, actor, details={"review_notes": note}
        )
        return updated

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_status(self, request: ClientRequest, allowed, action: str) -> None:
        allowed = list(allowed)
        if request.status not in allowed:
            raise InvalidStateError(
                f"Cannot {action} while the request is {request.status.value}",
                details={
                    "status": request.status.value,
                    "allowed_statuses": [s.value for s in allowed]
                }
            )

    def _require_workflow(self, request: ClientRequest) -> GeneratedWorkflow:
        if request.generated_workflow is None:
            raise InvalidStateError(
                "Workflow has not been generated yet",
                details={"status": request.status.value}
            )
        return request.generated_workflow
