"""Project Repository - Data access for projects and their tasks"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import Project, ProjectTask
from ..domain.enums import TaskStatus
from ..domain.errors import ProjectNotFoundError, TaskNotFoundError, ConcurrencyError
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


class ProjectRepository:
    """Repository for project and task operations"""

    def __init__(self):
        self._projects: Collection = get_collection("projects")
        self._tasks: Collection = get_collection("tasks")

    # =========================================================================
    # Projects
    # =========================================================================

    def create_project(self, project: Project) -> Project:
        """Create a new project"""
        doc = project.model_dump()
        doc["_id"] = project.project_id

        self._projects.insert_one(doc)
        logger.info(f"Created project: {project.project_id}", extra={"project_id": project.project_id})
        return project

    def get_project(self, project_id: int) -> Optional[Project]:
        """Get project by ID"""
        doc = self._projects.find_one({"project_id": project_id})
        if doc:
            doc.pop("_id", None)
            return Project.model_validate(doc)
        return None

    def get_project_or_raise(self, project_id: int) -> Project:
        """Get project by ID or raise error"""
        project = self.get_project(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return project

    def find_by_source_request(self, request_id: str, exclude_attempt: Optional[str] = None) -> Optional[Project]:
        """Project previously materialized from a request, if any"""
        query: Dict[str, Any] = {"source_request_id": request_id}
        if exclude_attempt:
            query["conversion_attempt"] = {"$ne": exclude_attempt}
        doc = self._projects.find_one(query)
        if doc:
            doc.pop("_id", None)
            return Project.model_validate(doc)
        return None

    def list_projects(self, client: Optional[str] = None, skip: int = 0, limit: int = 50) -> List[Project]:
        query: Dict[str, Any] = {}
        if client:
            query["client"] = client
        cursor = self._projects.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
        projects = []
        for doc in cursor:
            doc.pop("_id", None)
            projects.append(Project.model_validate(doc))
        return projects

    def delete_project(self, project_id: int) -> int:
        """Delete a project together with its tasks; returns deleted task count"""
        task_result = self._tasks.delete_many({"project_id": project_id})
        self._projects.delete_one({"project_id": project_id})
        logger.info(
            f"Deleted project {project_id} and {task_result.deleted_count} task(s)",
            extra={"project_id": project_id}
        )
        return task_result.deleted_count

    def compare_and_set_sprint(
        self,
        project_id: int,
        expected_sprint: int,
        expected_version: int,
        updates: Dict[str, Any]
    ) -> Project:
        """
        Apply sprint progression only if nobody advanced the project meanwhile.

        Raises:
            ProjectNotFoundError: project does not exist
            ConcurrencyError: sprint number or version changed since read
        """
        updates = dict(updates)
        updates["updated_at"] = utc_now()

        result = self._projects.find_one_and_update(
            {
                "project_id": project_id,
                "active_sprint_number": expected_sprint,
                "version": expected_version,
            },
            {"$set": updates, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            if self._projects.find_one({"project_id": project_id}):
                raise ConcurrencyError(
                    f"Project {project_id} was modified. Please refresh and try again.",
                    details={"expected_sprint": expected_sprint, "expected_version": expected_version}
                )
            raise ProjectNotFoundError(f"Project {project_id} not found")

        result.pop("_id", None)
        logger.info(f"Updated project: {project_id}", extra={"project_id": project_id})
        return Project.model_validate(result)

    # =========================================================================
    # Tasks
    # =========================================================================

    def create_tasks(self, tasks: List[ProjectTask]) -> List[ProjectTask]:
        """Insert a batch of tasks"""
        if not tasks:
            return []

        docs = []
        for task in tasks:
            doc = task.model_dump()
            doc["_id"] = task.task_id
            docs.append(doc)

        self._tasks.insert_many(docs)
        logger.info(
            f"Created {len(tasks)} task(s) for project {tasks[0].project_id}",
            extra={"project_id": tasks[0].project_id}
        )
        return tasks

    def get_task(self, task_id: int) -> Optional[ProjectTask]:
        doc = self._tasks.find_one({"task_id": task_id})
        if doc:
            doc.pop("_id", None)
            return ProjectTask.model_validate(doc)
        return None

    def get_task_or_raise(self, task_id: int) -> ProjectTask:
        task = self.get_task(task_id)
        if not task:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task

    def list_tasks(self, project_id: int, sprint_number: Optional[int] = None) -> List[ProjectTask]:
        """Tasks of a project in creation order, optionally for one sprint"""
        query: Dict[str, Any] = {"project_id": project_id}
        if sprint_number is not None:
            query["sprint_number"] = sprint_number

        cursor = self._tasks.find(query).sort("task_id", ASCENDING)
        tasks = []
        for doc in cursor:
            doc.pop("_id", None)
            tasks.append(ProjectTask.model_validate(doc))
        return tasks

    def update_task_status(self, task_id: int, status: TaskStatus) -> ProjectTask:
        result = self._tasks.find_one_and_update(
            {"task_id": task_id},
            {"$set": {"status": status.value, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            raise TaskNotFoundError(f"Task {task_id} not found")

        result.pop("_id", None)
        logger.info(
            f"Task {task_id} status -> {status.value}",
            extra={"task_id": task_id, "status": status.value}
        )
        return ProjectTask.model_validate(result)
