"""Sprint Progression Engine - forward-only sprint counter on projects"""
from dataclasses import dataclass
from typing import List

from ..config.settings import settings
from ..domain import departments
from ..domain.enums import ProjectStatus, AuditEventType
from ..domain.errors import InvalidStateError, TaskNotFoundError, PermissionDeniedError
from ..domain.models import ActorContext, Project, ProjectTask
from ..repositories.project_repo import ProjectRepository
from ..repositories.directory_repo import DirectoryRepository
from .audit_writer import AuditWriter
from .permission_guard import PermissionGuard
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SprintAdvanceResult:
    project: Project
    message: str

    @property
    def completed(self) -> bool:
        return self.project.status == ProjectStatus.COMPLETED


class SprintProgressionEngine:
    """
    Advance a project's active sprint once all of its tasks are finished

    Gates, in order:
    1. project not already past its last sprint
    2. the active sprint has tasks
    3. every one of them is Done or Completed
    4. the manager shares a department with the employees assigned to them
    The increment itself is a compare-and-set on sprint number and version.
    """

    def __init__(self):
        self.project_repo = ProjectRepository()
        self.directory_repo = DirectoryRepository()
        self.audit_writer = AuditWriter()
        self.permission_guard = PermissionGuard()

    def advance_sprint(self, project_id: int, actor: ActorContext) -> SprintAdvanceResult:
        self.permission_guard.require_manager(actor)
        project = self.project_repo.get_project_or_raise(project_id)

        if project.all_sprints_finished:
            raise InvalidStateError(
                "All sprints are already completed",
                details={
                    "active_sprint_number": project.active_sprint_number,
                    "total_sprints": project.total_sprints
                }
            )

        sprint = project.active_sprint_number
        tasks = self.project_repo.list_tasks(project_id, sprint_number=sprint)
        if not tasks:
            raise TaskNotFoundError(
                f"No tasks found for sprint {sprint}",
                details={"project_id": project_id, "sprint_number": sprint}
            )

        incomplete = [t.task_id for t in tasks if not t.is_finished]
        if incomplete:
            raise InvalidStateError(
                f"{len(incomplete)} task(s) in sprint {sprint} are not completed",
                details={"incomplete_count": len(incomplete), "incomplete_task_ids": incomplete}
            )

        self._authorize(project, tasks, actor)

        next_sprint = sprint + 1
        updates = {"active_sprint_number": next_sprint}
        if next_sprint > project.total_sprints:
            updates["status"] = ProjectStatus.COMPLETED.value

        updated = self.project_repo.compare_and_set_sprint(
            project_id, sprint, project.version, updates
        )

        if updated.status == ProjectStatus.COMPLETED:
            message = "Project completed successfully!"
        else:
            message = f"Advanced to Sprint {next_sprint}"

        logger.info(
            f"Project {project_id}: {message}",
            extra={"project_id": project_id, "actor_id": actor.user_id, "status": updated.status.value}
        )
        self.audit_writer.write_project_event(
            project_id,
            AuditEventType.ADVANCE_SPRINT,
            actor,
            details={"from_sprint": sprint, "to_sprint": next_sprint, "status": updated.status.value}
        )
        return SprintAdvanceResult(project=updated, message=message)

    def sprint_departments(self, tasks: List[ProjectTask]) -> List[str]:
        """Departments of the employees assigned to the tasks, one label per department"""
        employee_ids = [employee_id for t in tasks for employee_id in t.assigned_to]
        employees = self.directory_repo.get_employees_by_ids(employee_ids)

        seen = set()
        labels: List[str] = []
        for employee_id in employee_ids:
            employee = employees.get(employee_id)
            if employee is None or not employee.department:
                continue
            key = departments.normalize(employee.department)
            if key and key not in seen:
                seen.add(key)
                labels.append(employee.department)
        return labels

    def _authorize(self, project: Project, tasks: List[ProjectTask], actor: ActorContext) -> None:
        required = self.sprint_departments(tasks)
        if required:
            self.permission_guard.require_department_overlap(actor, required, "advance this sprint")
            return

        if settings.sprint_advance_requires_department:
            raise PermissionDeniedError(
                "Sprint tasks have no assigned department to authorize against",
                details={"project_id": project.project_id, "sprint_number": project.active_sprint_number}
            )
        logger.warning(
            f"Sprint {project.active_sprint_number} of project {project.project_id} has no "
            f"resolvable department; department authorization skipped",
            extra={"project_id": project.project_id, "actor_id": actor.user_id}
        )
