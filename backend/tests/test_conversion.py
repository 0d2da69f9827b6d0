"""Conversion of an approved request into a project with sprint-paired tasks"""
from datetime import timedelta

import pytest

from portal.domain.enums import (
    RequestStatus, RequestType, ProjectStatus, ProjectFramework, TaskStatus,
    TaskPriority, AuditEntityType, AuditEventType
)
from portal.domain.errors import ConversionError, DomainError, InvalidStateError
from portal.engine.conversion import category_for, sprint_number_for
from portal.repositories.audit_repo import AuditRepository
from portal.repositories.project_repo import ProjectRepository
from portal.repositories.request_repo import RequestRepository
from portal.utils.time import utc_now

from .conftest import DEVELOPER_2


@pytest.mark.parametrize("request_type,category", [
    (RequestType.WEB_DEV, "Web Dev"),
    (RequestType.APP_DEV, "App Dev"),
    (RequestType.PROTOTYPE, "Prototyping"),
    (RequestType.RESEARCH, "Research"),
])
def test_category_for(request_type, category):
    assert category_for(request_type) == category


def test_sprints_pair_tasks():
    assert [sprint_number_for(i) for i in range(7)] == [1, 1, 2, 2, 3, 3, 4]


class TestConvert:

    def test_project_and_tasks(self, engine, ready_request, dev_manager):
        result = engine.approve_request(ready_request.request_id, dev_manager)
        project, tasks = result.project, result.tasks

        assert project.project_title == "Storefront rebuild"
        assert project.category == "Web Dev"
        assert project.status == ProjectStatus.APPROVED
        assert project.framework == ProjectFramework.AGILE
        assert project.client == ready_request.client
        assert project.client_name == "Acme Retail"
        assert project.requirements == "Responsive layout, Checkout flow"
        assert project.active_sprint_number == 1
        assert project.total_sprints == 2
        assert project.source_request_id == ready_request.request_id

        assert len(tasks) == 4
        assert [t.sprint_number for t in tasks] == [1, 1, 2, 2]
        assert [t.sprint for t in tasks] == ["Sprint 1", "Sprint 1", "Sprint 2", "Sprint 2"]
        assert tasks[0].dependencies == []
        assert tasks[0].priority == TaskPriority.HIGH
        for previous, task in zip(tasks, tasks[1:]):
            assert task.task_id == previous.task_id + 1
            assert task.dependencies == [previous.task_id]
            assert task.priority == TaskPriority.MEDIUM
        assert all(t.status == TaskStatus.PENDING for t in tasks)
        assert all(t.project_id == project.project_id for t in tasks)
        assert [t.task_name for t in tasks] == [
            t.task_name for t in ready_request.generated_workflow.task_breakdown
        ]

    def test_assignees_resolve_to_employee_ids(self, engine, ready_request, dev_manager):
        tasks = engine.approve_request(ready_request.request_id, dev_manager).tasks
        assert [t.assigned_to for t in tasks] == [[201], [201], [301, 302], [301, 302]]

    def test_stale_employee_refs_are_dropped(self, engine, ready_request, dev_manager, mongo_db):
        mongo_db["employees"].delete_one({"employee_ref": DEVELOPER_2})
        tasks = engine.approve_request(ready_request.request_id, dev_manager).tasks
        assert tasks[2].assigned_to == [301]

    def test_records_are_persisted(self, engine, ready_request, dev_manager):
        result = engine.approve_request(ready_request.request_id, dev_manager)
        repo = ProjectRepository()
        assert repo.get_project(result.project.project_id) is not None
        assert [t.task_id for t in repo.list_tasks(result.project.project_id)] == [t.task_id for t in result.tasks]

        stored = RequestRepository().get_request(ready_request.request_id)
        assert stored.status == RequestStatus.CONVERTED
        assert stored.converted_to_project == result.project.project_id

    def test_task_ids_never_overlap_between_conversions(self, engine, ready_request, dev_manager, client_actor,
                                                        employee_actor, design_manager):
        first = engine.approve_request(ready_request.request_id, dev_manager)

        other = engine.create_request(client_actor, RequestType.APP_DEV, "Loyalty app", None, [])
        other = engine.generate_workflow(other.request_id, employee_actor)
        for task in other.generated_workflow.task_breakdown:
            manager = design_manager if task.team == "Design" else dev_manager
            engine.assign_employees(other.request_id, {task.task_id: [manager.user_id]}, manager)
        engine.department_approve(other.request_id, design_manager)
        engine.department_approve(other.request_id, dev_manager)
        second = engine.approve_request(other.request_id, dev_manager)

        assert second.project.project_id != first.project.project_id
        assert min(t.task_id for t in second.tasks) > max(t.task_id for t in first.tasks)
        assert second.project.category == "App Dev"

    def test_audit_trail(self, engine, ready_request, dev_manager):
        result = engine.approve_request(ready_request.request_id, dev_manager)
        audit = AuditRepository()

        request_events = [e.event_type for e in audit.get_events_for_entity(
            AuditEntityType.REQUEST, ready_request.request_id
        )]
        assert AuditEventType.APPROVE_REQUEST in request_events
        assert AuditEventType.CONVERT_REQUEST in request_events

        project_events = audit.get_events_for_entity(AuditEntityType.PROJECT, str(result.project.project_id))
        assert [e.event_type for e in project_events] == [AuditEventType.CONVERT_REQUEST]


class TestConversionFailure:

    def _fail_task_creation(self, patch, engine):
        def boom(tasks):
            raise RuntimeError("insert failed")
        patch.setattr(engine.conversion.project_repo, "create_tasks", boom)

    def test_failure_leaves_request_approved_and_no_project(self, engine, ready_request, dev_manager, monkeypatch):
        self._fail_task_creation(monkeypatch, engine)

        with pytest.raises(ConversionError) as exc:
            engine.approve_request(ready_request.request_id, dev_manager)
        assert exc.value.http_status == 500

        stored = RequestRepository().get_request(ready_request.request_id)
        assert stored.status == RequestStatus.APPROVED
        assert stored.converted_to_project is None
        assert ProjectRepository().find_by_source_request(ready_request.request_id) is None

        events = AuditRepository().get_events_for_entity(
            AuditEntityType.REQUEST, ready_request.request_id,
            event_types=[AuditEventType.CONVERSION_FAILED]
        )
        assert len(events) == 1
        assert "insert failed" in events[0].details["error"]

    def test_retry_after_failure_converts(self, engine, ready_request, dev_manager, monkeypatch):
        with monkeypatch.context() as patch:
            self._fail_task_creation(patch, engine)
            with pytest.raises(ConversionError):
                engine.approve_request(ready_request.request_id, dev_manager)

        result = engine.approve_request(ready_request.request_id, dev_manager)
        assert result.request.status == RequestStatus.CONVERTED
        assert len(result.tasks) == 4

    def test_retry_replaces_orphaned_project(self, engine, ready_request, dev_manager, monkeypatch, mongo_db):
        def cannot_delete(project_id):
            raise RuntimeError("delete failed")

        with monkeypatch.context() as patch:
            self._fail_task_creation(patch, engine)
            patch.setattr(engine.conversion.project_repo, "delete_project", cannot_delete)
            with pytest.raises(ConversionError):
                engine.approve_request(ready_request.request_id, dev_manager)

        orphan = ProjectRepository().find_by_source_request(ready_request.request_id)
        assert orphan is not None

        result = engine.approve_request(ready_request.request_id, dev_manager)
        assert result.project.project_id != orphan.project_id
        assert mongo_db["projects"].count_documents({"source_request_id": ready_request.request_id}) == 1
        assert ProjectRepository().get_project(orphan.project_id) is None


class TestConcurrentApproval:
    """Only one approval at a time may hold a request's conversion"""

    def _run_rival_during(self, patch, target, name, rival):
        original = getattr(target, name)
        outcome = {}

        def interleaved(*args, **kwargs):
            patch.setattr(target, name, original)
            try:
                outcome["rival"] = rival()
            except DomainError as e:
                outcome["rival"] = e
            return original(*args, **kwargs)

        patch.setattr(target, name, interleaved)
        return outcome

    def _assert_converted_once(self, request_id, result, mongo_db):
        stored = RequestRepository().get_request(request_id)
        assert stored.status == RequestStatus.CONVERTED
        assert stored.converted_to_project == result.project.project_id
        assert stored.conversion_attempt is None
        assert ProjectRepository().get_project(result.project.project_id) is not None
        assert len(ProjectRepository().list_tasks(result.project.project_id)) == 4
        assert mongo_db["projects"].count_documents({"source_request_id": request_id}) == 1

    def test_rival_while_tasks_are_created(self, engine, ready_request, dev_manager, monkeypatch, mongo_db):
        request_id = ready_request.request_id
        with monkeypatch.context() as patch:
            outcome = self._run_rival_during(
                patch, engine.conversion.project_repo, "create_tasks",
                lambda: engine.approve_request(request_id, dev_manager)
            )
            result = engine.approve_request(request_id, dev_manager)

        assert isinstance(outcome["rival"], InvalidStateError)
        assert outcome["rival"].details["conversion_in_progress"] is True
        self._assert_converted_once(request_id, result, mongo_db)

    def test_rival_just_before_completion(self, engine, ready_request, dev_manager, monkeypatch, mongo_db):
        request_id = ready_request.request_id
        with monkeypatch.context() as patch:
            outcome = self._run_rival_during(
                patch, engine.conversion.request_repo, "complete_conversion",
                lambda: engine.approve_request(request_id, dev_manager)
            )
            result = engine.approve_request(request_id, dev_manager)

        assert isinstance(outcome["rival"], InvalidStateError)
        self._assert_converted_once(request_id, result, mongo_db)

    def test_superseded_attempt_cleans_up(self, engine, ready_request, dev_manager, monkeypatch, mongo_db):
        request_id = ready_request.request_id

        def take_over():
            mongo_db["requests"].update_one(
                {"request_id": request_id},
                {"$set": {"conversion_attempt": "CNV-other", "conversion_claimed_at": utc_now()}}
            )

        with monkeypatch.context() as patch:
            self._run_rival_during(patch, engine.conversion.project_repo, "create_tasks", take_over)
            with pytest.raises(ConversionError):
                engine.approve_request(request_id, dev_manager)

        stored = RequestRepository().get_request(request_id)
        assert stored.status == RequestStatus.APPROVED
        assert stored.conversion_attempt == "CNV-other"
        assert stored.converted_to_project is None
        assert mongo_db["projects"].count_documents({"source_request_id": request_id}) == 0

    def test_live_claim_blocks_and_stale_claim_is_taken_over(self, engine, ready_request, dev_manager, mongo_db):
        request_id = ready_request.request_id
        mongo_db["requests"].update_one(
            {"request_id": request_id},
            {"$set": {
                "status": RequestStatus.APPROVED.value,
                "conversion_attempt": "CNV-crashed",
                "conversion_claimed_at": utc_now(),
            }}
        )
        with pytest.raises(InvalidStateError):
            engine.approve_request(request_id, dev_manager)

        mongo_db["requests"].update_one(
            {"request_id": request_id},
            {"$set": {"conversion_claimed_at": utc_now() - timedelta(hours=1)}}
        )
        result = engine.approve_request(request_id, dev_manager)
        self._assert_converted_once(request_id, result, mongo_db)
