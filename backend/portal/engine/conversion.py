"""Conversion Transaction - Materialize an approved request as a project

Runs as a saga over independent writes:

    1. claim: request -> approved under a per-attempt token, conditional on
       the approval gates; from approved only if the claim is free or stale
    2. remove any orphaned project left by an earlier attempt
    3. reserve one project id and a contiguous block of task ids
    4. insert project, then all tasks
    5. request approved -> converted, only while this attempt holds the claim

Any failure after step 1 deletes what steps 3-4 created, releases the claim
and raises ConversionError, leaving the request in `approved` for a retry.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional

from ..config.settings import settings
from ..domain.enums import (
    RequestStatus, RequestType, ProjectStatus, ProjectFramework, TaskStatus,
    TaskPriority, AuditEventType, APPROVABLE_STATUSES
)
from ..domain.errors import ConversionError, ConcurrencyError, InvalidStateError
from ..domain.models import ActorContext, ClientRequest, Project, ProjectTask, Employee
from ..repositories.request_repo import RequestRepository
from ..repositories.project_repo import ProjectRepository
from ..repositories.directory_repo import DirectoryRepository
from ..repositories.counter_repo import CounterRepository
from .audit_writer import AuditWriter
from ..utils.idgen import generate_conversion_attempt_id
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

CATEGORY_BY_REQUEST_TYPE: Dict[RequestType, str] = {
    RequestType.WEB_DEV: "Web Dev",
    RequestType.APP_DEV: "App Dev",
    RequestType.PROTOTYPE: "Prototyping",
}
DEFAULT_CATEGORY = "Research"

TASKS_PER_SPRINT = 2


def category_for(request_type: RequestType) -> str:
    return CATEGORY_BY_REQUEST_TYPE.get(request_type, DEFAULT_CATEGORY)


def sprint_number_for(index: int) -> int:
    """Tasks are paired into sprints: 1, 1, 2, 2, 3, ..."""
    return index // TASKS_PER_SPRINT + 1


def check_conversion_gates(request: ClientRequest) -> None:
    """
    Every required department approved and every workflow task staffed.

    Raises:
        InvalidStateError: naming the pending departments or unassigned tasks
    """
    pending = request.pending_departments()
    if pending:
        raise InvalidStateError(
            f"Departments still pending approval: {', '.join(pending)}",
            details={"pending_departments": pending}
        )

    if request.generated_workflow is None or not request.generated_workflow.task_breakdown:
        raise InvalidStateError("Workflow has no tasks to convert", details={"task_count": 0})

    unassigned = request.unassigned_task_ids()
    if unassigned:
        raise InvalidStateError(
            f"{len(unassigned)} task(s) have no assigned employees",
            details={"unassigned_task_count": len(unassigned), "unassigned_task_ids": unassigned}
        )


@dataclass
class ConversionResult:
    request: ClientRequest
    project: Project
    tasks: List[ProjectTask] = field(default_factory=list)


class ConversionTransaction:
    """Turn an approved request into a project with sprint-scoped tasks"""

    def __init__(
        self,
        request_repo: Optional[RequestRepository] = None,
        project_repo: Optional[ProjectRepository] = None,
        directory_repo: Optional[DirectoryRepository] = None,
        counter_repo: Optional[CounterRepository] = None,
        audit_writer: Optional[AuditWriter] = None
    ):
        self.request_repo = request_repo or RequestRepository()
        self.project_repo = project_repo or ProjectRepository()
        self.directory_repo = directory_repo or DirectoryRepository()
        self.counter_repo = counter_repo or CounterRepository()
        self.audit_writer = audit_writer or AuditWriter()

    def run(self, request: ClientRequest, actor: ActorContext) -> ConversionResult:
        """Convert the request; the gates are checked again as part of the claim"""
        request_id = request.request_id
        attempt = generate_conversion_attempt_id()
        request = self._claim(request, attempt)
        logger.info(
            f"Request {request_id} approved, converting",
            extra={"request_id": request_id, "actor_id": actor.user_id, "status": RequestStatus.APPROVED.value}
        )
        self.audit_writer.write_request_event(request_id, AuditEventType.APPROVE_REQUEST, actor)

        project_id: Optional[int] = None
        try:
            self._remove_orphan(request_id, attempt)

            project, tasks = self._build_records(request, attempt)
            project_id = project.project_id

            self.project_repo.create_project(project)
            self.project_repo.create_tasks(tasks)

            converted = self.request_repo.complete_conversion(request_id, attempt, project_id)
            if converted is None:
                raise ConcurrencyError(
                    f"Conversion claim on request {request_id} was taken over by another attempt",
                    details={"request_id": request_id, "attempt": attempt}
                )
            request = converted
        except Exception as e:
            self._compensate(request_id, attempt, project_id)
            logger.error(
                f"Conversion of request {request_id} failed: {e}",
                exc_info=True,
                extra={"request_id": request_id, "project_id": project_id, "error_code": "CONVERSION_FAILED"}
            )
            self.audit_writer.write_conversion_failed(request_id, actor, str(e), project_id)
            raise ConversionError(
                f"Conversion of request {request_id} failed; the request was left approved",
                details={"request_id": request_id, "project_id": project_id}
            ) from e

        logger.info(
            f"Request {request_id} converted to project {project_id} with {len(tasks)} task(s)",
            extra={"request_id": request_id, "project_id": project_id, "status": RequestStatus.CONVERTED.value}
        )
        self.audit_writer.write_request_event(
            request_id,
            AuditEventType.CONVERT_REQUEST,
            actor,
            details={"project_id": project_id, "task_count": len(tasks)}
        )
        self.audit_writer.write_project_event(
            project_id,
            AuditEventType.CONVERT_REQUEST,
            actor,
            details={"request_id": request_id}
        )
        return ConversionResult(request=request, project=project, tasks=tasks)

    # =========================================================================
    # Claim
    # =========================================================================

    def _claim(self, request: ClientRequest, attempt: str) -> ClientRequest:
        """Take the request for this attempt or explain why it cannot be taken"""
        request_id = request.request_id
        stale_before = utc_now() - timedelta(seconds=settings.conversion_claim_timeout_seconds)
        claimed = self.request_repo.claim_conversion(
            request_id, request.generated_workflow.task_ids(), attempt, stale_before
        )
        if claimed is not None:
            return claimed

        current = self.request_repo.get_request_or_raise(request_id)
        if current.status not in APPROVABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot approve the request while it is {current.status.value}",
                details={
                    "status": current.status.value,
                    "allowed_statuses": [s.value for s in APPROVABLE_STATUSES]
                }
            )
        check_conversion_gates(current)
        if current.status == RequestStatus.APPROVED and current.conversion_attempt:
            raise InvalidStateError(
                f"Request {request_id} is already being converted",
                details={"status": current.status.value, "conversion_in_progress": True}
            )
        raise ConcurrencyError(
            f"Request {request_id} was modified. Please refresh and try again.",
            details={"request_id": request_id}
        )

    # =========================================================================
    # Record construction
    # =========================================================================

    def _build_records(self, request: ClientRequest, attempt: str):
        breakdown = request.generated_workflow.task_breakdown
        now = utc_now()

        employees = self.directory_repo.get_employees_by_refs(
            ref for refs in request.task_assignments.values() for ref in refs
        )
        client = self.directory_repo.get_client(request.client)

        project_id = self.counter_repo.next_project_id()
        base = self.counter_repo.reserve_task_ids(len(breakdown))

        tasks: List[ProjectTask] = []
        for index, workflow_task in enumerate(breakdown):
            task_id = base + index
            tasks.append(ProjectTask(
                task_id=task_id,
                task_name=workflow_task.task_name,
                description=f"Generated from client request: {request.title}",
                assigned_to=self._resolve_assignees(
                    request.assignees_for(workflow_task.task_id), employees
                ),
                project_id=project_id,
                sprint=f"Sprint {sprint_number_for(index)}",
                sprint_number=sprint_number_for(index),
                status=TaskStatus.PENDING,
                priority=TaskPriority.HIGH if index == 0 else TaskPriority.MEDIUM,
                dependencies=[task_id - 1] if index > 0 else [],
                estimated_hours=workflow_task.estimated_hours,
                created_at=now,
                updated_at=now
            ))

        project = Project(
            project_id=project_id,
            project_title=request.title,
            client=request.client,
            client_name=client.client_name if client else "",
            category=category_for(request.request_type),
            framework=ProjectFramework.AGILE,
            status=ProjectStatus.APPROVED,
            requirements=", ".join(request.requirements),
            active_sprint_number=1,
            total_sprints=max(t.sprint_number for t in tasks),
            source_request_id=request.request_id,
            conversion_attempt=attempt,
            created_at=now,
            updated_at=now
        )
        return project, tasks

    def _resolve_assignees(self, employee_refs: List[str], employees: Dict[str, Employee]) -> List[int]:
        """Numeric ids of assigned employees; stale references are dropped"""
        resolved: List[int] = []
        for ref in employee_refs:
            employee = employees.get(ref)
            if employee is None:
                logger.warning(f"Dropping unresolvable employee reference {ref}")
                continue
            if employee.employee_id not in resolved:
                resolved.append(employee.employee_id)
        return resolved

    # =========================================================================
    # Compensation
    # =========================================================================

    def _remove_orphan(self, request_id: str, attempt: str) -> None:
        """Delete a project left by an earlier attempt; only the claim holder gets here"""
        orphan = self.project_repo.find_by_source_request(request_id, exclude_attempt=attempt)
        if orphan:
            logger.warning(
                f"Removing orphaned project {orphan.project_id} from an earlier conversion attempt",
                extra={"request_id": request_id, "project_id": orphan.project_id}
            )
            self.project_repo.delete_project(orphan.project_id)

    def _compensate(self, request_id: str, attempt: str, project_id: Optional[int]) -> None:
        if project_id is not None:
            try:
                self.project_repo.delete_project(project_id)
            except Exception:
                # The orphan is removed by the next attempt via source_request_id
                logger.exception(
                    f"Compensation failed for project {project_id}",
                    extra={"project_id": project_id}
                )
        try:
            self.request_repo.release_conversion(request_id, attempt)
        except Exception:
            # An unreleased claim goes stale after conversion_claim_timeout_seconds
            logger.exception(
                f"Could not release conversion claim on request {request_id}",
                extra={"request_id": request_id}
            )
