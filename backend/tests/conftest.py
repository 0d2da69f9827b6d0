"""
Pytest Configuration and Fixtures

Every test gets a fresh in-memory MongoDB (mongomock) seeded with a small
directory: one client, three managers and four employees.
"""

import os
import tempfile

# Settings are read at import time; point them at test values first
os.environ["LOGS_PATH"] = tempfile.mkdtemp(prefix="portal-test-logs-")
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "portal-test-signing-key-0123456789abcdef"
os.environ["AZURE_OPENAI_ENDPOINT"] = ""
os.environ["AZURE_OPENAI_API_KEY"] = ""

import mongomock
import pytest
from fastapi.testclient import TestClient

from portal.repositories import mongo_client
from portal.repositories.directory_repo import DirectoryRepository
from portal.domain.enums import ActorKind, Availability, EmployeeRole, RequestType
from portal.domain.models import Client, Employee
from portal.services.directory_service import DirectoryService
from portal.services.workflow_generator import WorkflowGenerator
from portal.utils.jwt import issue_token


# Four tasks across Design and Development, as a generator would return them
STUB_BREAKDOWN = {
    "estimated_duration": 200,
    "task_breakdown": [
        {"task_name": "Wireframes", "team": "Design", "estimated_hours": 30,
         "required_skills": ["Figma", "UI/UX"]},
        {"task_name": "Visual Design", "team": "Design", "estimated_hours": 40,
         "required_skills": ["Figma"]},
        {"task_name": "Frontend Build", "team": "Development", "estimated_hours": 80,
         "required_skills": ["React", "TypeScript"]},
        {"task_name": "API Build", "team": "Development", "estimated_hours": 50,
         "required_skills": ["Python", "REST API"]},
    ],
}


class StubWorkflowGenerator(WorkflowGenerator):
    """Returns STUB_BREAKDOWN (or a supplied one) instead of a template"""

    def __init__(self, breakdown=None):
        super().__init__()
        self.breakdown = breakdown or STUB_BREAKDOWN
        self.calls = 0

    def generate_workflow_with_suggestions(self, request_type, description, requirements):
        self.calls += 1
        workflow = self._build_workflow(self.breakdown)
        for task in workflow.task_breakdown:
            task.suggested_employees = self.suggest_employees_for_task(task)
        return workflow


CLIENT_REF = "CLI-ACME"
OTHER_CLIENT_REF = "CLI-GLOBEX"

DESIGN_MANAGER = "EMP-DESMGR"
DEV_MANAGER = "EMP-DEVMGR"
QA_MANAGER = "EMP-QAMGR"
DESIGNER_1 = "EMP-DES1"
DESIGNER_2 = "EMP-DES2"
DEVELOPER_1 = "EMP-DEV1"
DEVELOPER_2 = "EMP-DEV2"

EMPLOYEES = [
    # ref, employee_id, name, role, department, approves, skills, availability
    (DESIGN_MANAGER, 100, "Ana Design", EmployeeRole.MANAGER, "Design", ["Design"], ["UI/UX"], Availability.AVAILABLE),
    (DEV_MANAGER, 101, "Ben Dev", EmployeeRole.MANAGER, "Development", ["Development"], ["Python"], Availability.AVAILABLE),
    (QA_MANAGER, 102, "Cy Tester", EmployeeRole.MANAGER, "QA", ["Testing"], ["Selenium"], Availability.AVAILABLE),
    (DESIGNER_1, 201, "Dee Figma", EmployeeRole.EMPLOYEE, "UI/UX", [], ["Figma", "UI/UX"], Availability.AVAILABLE),
    (DESIGNER_2, 202, "Eli Sketch", EmployeeRole.EMPLOYEE, "Design", [], ["Figma"], Availability.BUSY),
    (DEVELOPER_1, 301, "Fay React", EmployeeRole.EMPLOYEE, "Engineering", [], ["React", "TypeScript"], Availability.AVAILABLE),
    (DEVELOPER_2, 302, "Gus Python", EmployeeRole.EMPLOYEE, "Development", [], ["Python", "REST API"], Availability.AVAILABLE),
]


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    """Fresh mongomock database with production indexes"""
    db = mongomock.MongoClient()["portal_test"]
    monkeypatch.setattr(mongo_client, "_database", db)
    mongo_client.create_indexes()
    return db


@pytest.fixture(autouse=True)
def directory(mongo_db):
    """Seed clients and employees"""
    repo = DirectoryRepository()
    repo.upsert_client(Client(client_ref=CLIENT_REF, client_name="Acme Retail", contact_email="it@acme.io"))
    repo.upsert_client(Client(client_ref=OTHER_CLIENT_REF, client_name="Globex", contact_email="it@globex.io"))
    for ref, employee_id, name, role, department, approves, skills, availability in EMPLOYEES:
        repo.upsert_employee(Employee(
            employee_ref=ref,
            employee_id=employee_id,
            name=name,
            email=f"{ref.lower()}@portal.io",
            role=role.value,
            department=department,
            approves_departments=approves,
            skills=skills,
            availability=availability,
        ))
    return repo


def _actor(ref, kind):
    return DirectoryService().resolve_actor({"sub": ref, "kind": kind.value})


@pytest.fixture
def client_actor(directory):
    return _actor(CLIENT_REF, ActorKind.CLIENT)


@pytest.fixture
def other_client_actor(directory):
    return _actor(OTHER_CLIENT_REF, ActorKind.CLIENT)


@pytest.fixture
def design_manager(directory):
    return _actor(DESIGN_MANAGER, ActorKind.EMPLOYEE)


@pytest.fixture
def dev_manager(directory):
    return _actor(DEV_MANAGER, ActorKind.EMPLOYEE)


@pytest.fixture
def qa_manager(directory):
    return _actor(QA_MANAGER, ActorKind.EMPLOYEE)


@pytest.fixture
def employee_actor(directory):
    return _actor(DEVELOPER_1, ActorKind.EMPLOYEE)


@pytest.fixture
def stub_generator():
    return StubWorkflowGenerator()


@pytest.fixture
def engine(stub_generator):
    from portal.engine.request_engine import RequestLifecycleEngine
    return RequestLifecycleEngine(workflow_generator=stub_generator)


@pytest.fixture
def submitted_request(engine, client_actor):
    return engine.create_request(
        client_actor,
        RequestType.WEB_DEV,
        "Storefront rebuild",
        "Replace the legacy storefront",
        ["Responsive layout", "Checkout flow"],
    )


@pytest.fixture
def generated_request(engine, submitted_request, employee_actor):
    return engine.generate_workflow(submitted_request.request_id, employee_actor)


def task_ids_by_team(request, team):
    return [t.task_id for t in request.generated_workflow.task_breakdown if t.team == team]


@pytest.fixture
def ready_request(engine, generated_request, design_manager, dev_manager):
    """Both departments approved and every task staffed"""
    request_id = generated_request.request_id
    engine.assign_employees(
        request_id,
        {task_id: [DESIGNER_1] for task_id in task_ids_by_team(generated_request, "Design")},
        design_manager,
    )
    engine.assign_employees(
        request_id,
        {task_id: [DEVELOPER_1, DEVELOPER_2] for task_id in task_ids_by_team(generated_request, "Development")},
        dev_manager,
    )
    engine.department_approve(request_id, design_manager)
    return engine.department_approve(request_id, dev_manager)


# =============================================================================
# API
# =============================================================================

def auth_headers(ref, kind):
    return {"Authorization": f"Bearer {issue_token(ref, kind)}"}


@pytest.fixture
def api(stub_generator):
    from portal.main import app
    from portal.api.deps import get_workflow_generator_dep

    app.dependency_overrides[get_workflow_generator_dep] = lambda: stub_generator
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
