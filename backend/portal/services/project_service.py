"""Project Service - Project, task and sprint operations"""
from typing import List, Optional

from ..domain.enums import TaskStatus, AuditEventType, AuditEntityType
from ..domain.errors import PermissionDeniedError
from ..domain.models import ActorContext, Project, ProjectTask, AuditEvent
from ..engine.sprint_engine import SprintProgressionEngine, SprintAdvanceResult
from ..engine.audit_writer import AuditWriter
from ..engine.permission_guard import PermissionGuard
from ..repositories.project_repo import ProjectRepository
from ..repositories.audit_repo import AuditRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ProjectService:
    """Service for project operations"""

    def __init__(self):
        self.project_repo = ProjectRepository()
        self.audit_repo = AuditRepository()
        self.audit_writer = AuditWriter()
        self.permission_guard = PermissionGuard()
        self.sprint_engine = SprintProgressionEngine()

    def get_project(self, project_id: int, actor: ActorContext) -> Project:
        project = self.project_repo.get_project_or_raise(project_id)
        self._require_visible(project, actor)
        return project

    def list_projects(self, actor: ActorContext, skip: int = 0, limit: int = 50) -> List[Project]:
        """Clients list their own projects, employees list all of them"""
        client = actor.user_id if actor.is_client else None
        return self.project_repo.list_projects(client=client, skip=skip, limit=limit)

    def list_tasks(
        self,
        project_id: int,
        actor: ActorContext,
        sprint_number: Optional[int] = None
    ) -> List[ProjectTask]:
        project = self.get_project(project_id, actor)
        return self.project_repo.list_tasks(project.project_id, sprint_number=sprint_number)

    def advance_sprint(self, project_id: int, actor: ActorContext) -> SprintAdvanceResult:
        return self.sprint_engine.advance_sprint(project_id, actor)

    def update_task_status(self, task_id: int, status: TaskStatus, actor: ActorContext) -> ProjectTask:
        """Employees move tasks through their statuses; this is what closes sprints"""
        self.permission_guard.require_employee(actor)
        previous = self.project_repo.get_task_or_raise(task_id)
        task = self.project_repo.update_task_status(task_id, status)
        self.audit_writer.write_project_event(
            task.project_id,
            AuditEventType.UPDATE_TASK_STATUS,
            actor,
            details={"task_id": task_id, "from": previous.status.value, "to": status.value}
        )
        return task

    def get_audit_trail(self, project_id: int, actor: ActorContext, limit: int = 100) -> List[AuditEvent]:
        self.permission_guard.require_employee(actor)
        self.project_repo.get_project_or_raise(project_id)
        return self.audit_repo.get_events_for_entity(AuditEntityType.PROJECT, str(project_id), limit=limit)

    def _require_visible(self, project: Project, actor: ActorContext) -> None:
        if actor.is_client and project.client != actor.user_id:
            raise PermissionDeniedError(
                "You cannot view this project",
                details={"project_id": project.project_id}
            )
