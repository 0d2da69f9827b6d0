"""Sprint progression: completion gate, department authority, forward-only counter"""
import pytest

from portal.config.settings import settings
from portal.domain.enums import ProjectStatus, TaskStatus
from portal.domain.errors import (
    InvalidStateError, PermissionDeniedError, TaskNotFoundError, ConcurrencyError
)
from portal.domain.models import Project, ProjectTask
from portal.engine.sprint_engine import SprintProgressionEngine
from portal.repositories.project_repo import ProjectRepository
from portal.services.project_service import ProjectService
from portal.utils.time import utc_now


PROJECT_ID = 500


def make_project(sprints, project_id=PROJECT_ID):
    """
    sprints: one list per sprint of (status, assigned employee ids) tuples
    """
    now = utc_now()
    repo = ProjectRepository()
    repo.create_project(Project(
        project_id=project_id,
        project_title="Warehouse dashboard",
        client="CLI-ACME",
        category="Web Dev",
        total_sprints=len(sprints),
        source_request_id=f"REQ-{project_id}",
        created_at=now,
        updated_at=now,
    ))
    tasks = []
    task_id = project_id * 10
    for sprint_number, sprint_tasks in enumerate(sprints, start=1):
        for status, assigned_to in sprint_tasks:
            task_id += 1
            tasks.append(ProjectTask(
                task_id=task_id,
                task_name=f"Task {task_id}",
                assigned_to=assigned_to,
                project_id=project_id,
                sprint=f"Sprint {sprint_number}",
                sprint_number=sprint_number,
                status=status,
                created_at=now,
                updated_at=now,
            ))
    if tasks:
        repo.create_tasks(tasks)
    return repo.get_project(project_id)


DONE = TaskStatus.DONE
COMPLETED = TaskStatus.COMPLETED
IN_PROGRESS = TaskStatus.IN_PROGRESS

# Employee ids from the test directory
DEVELOPERS = [301, 302]
DESIGNER = [201]


@pytest.fixture
def sprint_engine():
    return SprintProgressionEngine()


class TestAdvanceSprint:

    def test_advances_when_all_tasks_finished(self, sprint_engine, dev_manager):
        make_project([[(DONE, DEVELOPERS), (COMPLETED, [301])], [(IN_PROGRESS, DEVELOPERS)]])

        result = sprint_engine.advance_sprint(PROJECT_ID, dev_manager)
        assert result.project.active_sprint_number == 2
        assert result.project.status == ProjectStatus.APPROVED
        assert result.project.version == 2
        assert result.message == "Advanced to Sprint 2"
        assert not result.completed

    def test_incomplete_tasks_block_advance(self, sprint_engine, dev_manager):
        make_project([[(DONE, DEVELOPERS), (IN_PROGRESS, [301])]])

        with pytest.raises(InvalidStateError) as exc:
            sprint_engine.advance_sprint(PROJECT_ID, dev_manager)
        assert exc.value.details["incomplete_count"] == 1
        assert exc.value.details["incomplete_task_ids"] == [PROJECT_ID * 10 + 2]
        assert ProjectRepository().get_project(PROJECT_ID).active_sprint_number == 1

    def test_last_sprint_completes_project(self, sprint_engine, dev_manager):
        make_project([[(DONE, DEVELOPERS)]])

        result = sprint_engine.advance_sprint(PROJECT_ID, dev_manager)
        assert result.completed
        assert result.project.status == ProjectStatus.COMPLETED
        assert result.project.active_sprint_number == 2
        assert result.message == "Project completed successfully!"

        with pytest.raises(InvalidStateError):
            sprint_engine.advance_sprint(PROJECT_ID, dev_manager)

    def test_sprint_without_tasks(self, sprint_engine, dev_manager):
        make_project([[(DONE, DEVELOPERS)], []])
        sprint_engine.advance_sprint(PROJECT_ID, dev_manager)

        with pytest.raises(TaskNotFoundError):
            sprint_engine.advance_sprint(PROJECT_ID, dev_manager)

    def test_requires_manager(self, sprint_engine, employee_actor):
        make_project([[(DONE, DEVELOPERS)]])
        with pytest.raises(PermissionDeniedError):
            sprint_engine.advance_sprint(PROJECT_ID, employee_actor)


class TestSprintAuthority:

    def test_manager_of_another_department_is_forbidden(self, sprint_engine, qa_manager):
        make_project([[(DONE, DEVELOPERS), (DONE, DEVELOPERS)]])

        with pytest.raises(PermissionDeniedError) as exc:
            sprint_engine.advance_sprint(PROJECT_ID, qa_manager)
        assert exc.value.details["required_departments"] == ["Engineering"]

    def test_department_aliases_are_honoured(self, sprint_engine, design_manager):
        # DESIGNER works in "UI/UX"; the manager approves "Design"
        make_project([[(DONE, DESIGNER)], [(DONE, DESIGNER)]])
        result = sprint_engine.advance_sprint(PROJECT_ID, design_manager)
        assert result.project.active_sprint_number == 2

    def test_mixed_sprint_needs_one_shared_department(self, sprint_engine, design_manager):
        make_project([[(DONE, DESIGNER), (DONE, DEVELOPERS)], [(DONE, DESIGNER)]])
        assert sprint_engine.sprint_departments(
            ProjectRepository().list_tasks(PROJECT_ID, sprint_number=1)
        ) == ["UI/UX", "Engineering"]
        assert sprint_engine.advance_sprint(PROJECT_ID, design_manager).project.active_sprint_number == 2

    def test_unassigned_sprint_is_open_by_default(self, sprint_engine, qa_manager):
        make_project([[(DONE, []), (DONE, [999])]])
        result = sprint_engine.advance_sprint(PROJECT_ID, qa_manager)
        assert result.completed

    def test_unassigned_sprint_can_be_closed(self, sprint_engine, qa_manager, monkeypatch):
        monkeypatch.setattr(settings, "sprint_advance_requires_department", True)
        make_project([[(DONE, [])]])
        with pytest.raises(PermissionDeniedError):
            sprint_engine.advance_sprint(PROJECT_ID, qa_manager)


def test_stale_version_is_a_conflict(dev_manager):
    project = make_project([[(DONE, DEVELOPERS)], [(DONE, DEVELOPERS)]])
    repo = ProjectRepository()
    repo.compare_and_set_sprint(PROJECT_ID, 1, project.version, {"active_sprint_number": 2})

    with pytest.raises(ConcurrencyError):
        repo.compare_and_set_sprint(PROJECT_ID, 1, project.version, {"active_sprint_number": 2})
    assert repo.get_project(PROJECT_ID).active_sprint_number == 2


def test_converted_project_runs_to_completion(engine, ready_request, dev_manager, design_manager, employee_actor):
    project = engine.approve_request(ready_request.request_id, dev_manager).project
    service = ProjectService()

    for task in service.list_tasks(project.project_id, employee_actor, sprint_number=1):
        assert task.assigned_to == [201]
        service.update_task_status(task.task_id, TaskStatus.DONE, employee_actor)
    with pytest.raises(PermissionDeniedError):
        service.advance_sprint(project.project_id, dev_manager)
    assert service.advance_sprint(project.project_id, design_manager).message == "Advanced to Sprint 2"

    for task in service.list_tasks(project.project_id, employee_actor, sprint_number=2):
        service.update_task_status(task.task_id, TaskStatus.COMPLETED, employee_actor)
    result = service.advance_sprint(project.project_id, dev_manager)
    assert result.completed
    assert service.get_project(project.project_id, employee_actor).status == ProjectStatus.COMPLETED
