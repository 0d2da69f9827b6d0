"""HTTP surface: auth, error shapes and the full request-to-project journey"""
import mongomock

from portal.domain.enums import ActorKind
from portal.repositories import mongo_client
from scripts.seed_data import seed_directory

from .conftest import (
    auth_headers, CLIENT_REF, OTHER_CLIENT_REF, DESIGN_MANAGER, DEV_MANAGER, QA_MANAGER,
    DESIGNER_1, DEVELOPER_1, DEVELOPER_2
)

BASE = "/api/v1"

CLIENT = auth_headers(CLIENT_REF, ActorKind.CLIENT)
OTHER_CLIENT = auth_headers(OTHER_CLIENT_REF, ActorKind.CLIENT)
MANAGER_A = auth_headers(DESIGN_MANAGER, ActorKind.EMPLOYEE)
MANAGER_B = auth_headers(DEV_MANAGER, ActorKind.EMPLOYEE)
QA = auth_headers(QA_MANAGER, ActorKind.EMPLOYEE)
EMPLOYEE = auth_headers(DEVELOPER_1, ActorKind.EMPLOYEE)


def error_code(response):
    """Error code from either a handler-rendered or a route-rendered error body"""
    body = response.json()
    if "detail" in body:
        body = body["detail"]
    return body["error"]["code"]


def submit(api, headers=CLIENT):
    response = api.post(f"{BASE}/requests", headers=headers, json={
        "request_type": "web_dev",
        "title": "Storefront rebuild",
        "description": "Replace the legacy storefront",
        "requirements": ["Responsive layout", "Checkout flow"],
    })
    assert response.status_code == 201, response.text
    return response.json()


def generate(api, request_id):
    response = api.post(f"{BASE}/requests/{request_id}/generate-workflow", headers=MANAGER_A)
    assert response.status_code == 200, response.text
    return response.json()["request"]


def tasks_for(request, team):
    return [t["task_id"] for t in request["generated_workflow"]["task_breakdown"] if t["team"] == team]


class TestAuth:

    def test_missing_token(self, api):
        response = api.get(f"{BASE}/requests")
        assert response.status_code == 401

    def test_token_for_unknown_user(self, api):
        response = api.get(f"{BASE}/requests", headers=auth_headers("CLI-nobody", ActorKind.CLIENT))
        assert response.status_code == 401
        assert error_code(response) == "AUTHENTICATION_ERROR"

    def test_garbage_token(self, api):
        response = api.get(f"{BASE}/requests", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_correlation_id_is_echoed(self, api):
        response = api.get(f"{BASE}/requests", headers={**CLIENT, "X-Correlation-Id": "COR-test-1"})
        assert response.headers["X-Correlation-Id"] == "COR-test-1"


class TestRequestEndpoints:

    def test_client_view_hides_review_data(self, api):
        created = submit(api)
        generate(api, created["request_id"])

        client_view = api.get(f"{BASE}/requests/{created['request_id']}", headers=CLIENT).json()
        assert client_view["status"] == "workflow_generated"
        assert "generated_workflow" not in client_view
        assert "approvals_by_department" not in client_view

        employee_view = api.get(f"{BASE}/requests/{created['request_id']}", headers=EMPLOYEE).json()
        assert employee_view["required_departments"] == ["Design", "Development"]

    def test_other_clients_request_is_forbidden(self, api):
        created = submit(api)
        response = api.get(f"{BASE}/requests/{created['request_id']}", headers=OTHER_CLIENT)
        assert response.status_code == 403
        assert error_code(response) == "PERMISSION_DENIED"

    def test_list_is_scoped_to_client(self, api):
        submit(api)
        submit(api, headers=OTHER_CLIENT)

        mine = api.get(f"{BASE}/requests", headers=CLIENT).json()
        assert mine["total"] == 1
        everyone = api.get(f"{BASE}/requests?statuses=submitted", headers=EMPLOYEE).json()
        assert everyone["total"] == 2

    def test_unknown_status_filter(self, api):
        response = api.get(f"{BASE}/requests?statuses=archived", headers=EMPLOYEE)
        assert response.status_code == 400
        assert error_code(response) == "VALIDATION_ERROR"

    def test_not_found(self, api):
        response = api.get(f"{BASE}/requests/REQ-missing", headers=EMPLOYEE)
        assert response.status_code == 404
        assert error_code(response) == "REQUEST_NOT_FOUND"

    def test_invalid_body_is_400(self, api):
        response = api.post(f"{BASE}/requests", headers=CLIENT, json={"request_type": "web_dev"})
        assert response.status_code == 400
        assert error_code(response) == "VALIDATION_ERROR"

    def test_update_after_generation_is_conflict(self, api):
        created = submit(api)
        generate(api, created["request_id"])
        response = api.patch(f"{BASE}/requests/{created['request_id']}", headers=CLIENT, json={"title": "New"})
        assert response.status_code == 409
        assert error_code(response) == "INVALID_STATE"

    def test_update_and_delete(self, api):
        created = submit(api)
        response = api.patch(f"{BASE}/requests/{created['request_id']}", headers=CLIENT, json={"title": "Shop v2"})
        assert response.json()["title"] == "Shop v2"

        assert api.delete(f"{BASE}/requests/{created['request_id']}", headers=CLIENT).status_code == 204
        assert api.get(f"{BASE}/requests/{created['request_id']}", headers=CLIENT).status_code == 404

    def test_second_generation_is_conflict(self, api):
        created = submit(api)
        generate(api, created["request_id"])
        response = api.post(f"{BASE}/requests/{created['request_id']}/generate-workflow", headers=MANAGER_A)
        assert response.status_code == 409

    def test_ambiguous_department_approval(self, api, directory):
        directory.set_employee_departments(QA_MANAGER, "QA", ["Design", "Development"])
        created = submit(api)
        generate(api, created["request_id"])

        response = api.post(f"{BASE}/requests/{created['request_id']}/department-approve", headers=QA)
        assert response.status_code == 400
        assert error_code(response) == "AMBIGUOUS_REQUEST"
        assert response.json()["detail"]["error"]["details"]["candidates"] == ["Design", "Development"]

        response = api.post(
            f"{BASE}/requests/{created['request_id']}/department-approve",
            headers=QA, json={"department": "Development"}
        )
        assert response.status_code == 200
        ledger = response.json()["request"]["approvals_by_department"]
        assert [e["approved"] for e in ledger] == [False, True]


def test_request_to_project_journey(api):
    created = submit(api)
    request_id = created["request_id"]
    assert created["status"] == "submitted"

    request = generate(api, request_id)
    assert request["required_departments"] == ["Design", "Development"]
    design_tasks = tasks_for(request, "Design")
    dev_tasks = tasks_for(request, "Development")

    # Manager A signs off for Design and staffs its tasks
    response = api.post(f"{BASE}/requests/{request_id}/department-approve", headers=MANAGER_A)
    assert response.json()["request"]["status"] == "under_review"
    response = api.patch(
        f"{BASE}/requests/{request_id}/assign-employees", headers=MANAGER_A,
        json={"assignments": {task_id: [DESIGNER_1] for task_id in design_tasks}}
    )
    assert response.status_code == 200, response.text

    # Manager B cannot staff Design tasks
    response = api.patch(
        f"{BASE}/requests/{request_id}/assign-employees", headers=MANAGER_B,
        json={"assignments": {design_tasks[0]: [DEVELOPER_1]}}
    )
    assert response.status_code == 403
    assert response.json()["detail"]["error"]["details"]["disallowed_teams"] == ["Design"]

    # Not approvable yet: Development pending, its tasks unstaffed
    response = api.post(f"{BASE}/requests/{request_id}/approve", headers=MANAGER_B)
    assert response.status_code == 409
    assert response.json()["detail"]["error"]["details"]["pending_departments"] == ["Development"]

    response = api.patch(
        f"{BASE}/requests/{request_id}/assign-employees", headers=MANAGER_B,
        json={"assignments": {task_id: [DEVELOPER_1, DEVELOPER_2] for task_id in dev_tasks}}
    )
    assert response.json()["request"]["status"] == "under_review"
    response = api.post(f"{BASE}/requests/{request_id}/department-approve", headers=MANAGER_B)
    assert response.json()["request"]["status"] == "under_review"

    workflow = api.get(f"{BASE}/requests/{request_id}/workflow", headers=MANAGER_B).json()
    assert all(t["assigned_employees"] for t in workflow["task_breakdown"])
    assert workflow["task_breakdown"][0]["assigned_employee_details"][0]["employee_id"] == 201

    response = api.post(f"{BASE}/requests/{request_id}/approve", headers=MANAGER_B)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["request"]["status"] == "converted"
    project = body["project"]
    assert project["total_sprints"] == 2
    assert project["active_sprint_number"] == 1
    assert project["category"] == "Web Dev"
    assert [t["sprint_number"] for t in body["tasks"]] == [1, 1, 2, 2]
    assert body["request"]["converted_to_project"] == project["project_id"]

    # The client can see its project
    project_id = project["project_id"]
    response = api.get(f"{BASE}/projects/{project_id}", headers=CLIENT)
    assert response.status_code == 200
    assert api.get(f"{BASE}/projects/{project_id}", headers=OTHER_CLIENT).status_code == 403
    assert [p["project_id"] for p in api.get(f"{BASE}/projects", headers=CLIENT).json()["items"]] == [project_id]
    assert api.get(f"{BASE}/projects", headers=OTHER_CLIENT).json()["items"] == []

    # Sprint 1 cannot close until its tasks are done
    response = api.patch(f"{BASE}/projects/{project_id}/advance-sprint", headers=MANAGER_A)
    assert response.status_code == 409
    assert response.json()["detail"]["error"]["details"]["incomplete_count"] == 2

    sprint_one = api.get(f"{BASE}/projects/{project_id}/tasks?sprint_number=1", headers=EMPLOYEE).json()
    for task in sprint_one["items"]:
        response = api.patch(f"{BASE}/tasks/{task['task_id']}/status", headers=EMPLOYEE, json={"status": "Done"})
        assert response.json()["status"] == "Done"

    response = api.patch(f"{BASE}/projects/{project_id}/advance-sprint", headers=MANAGER_A)
    assert response.status_code == 200, response.text
    assert response.json()["message"] == "Advanced to Sprint 2"
    assert response.json()["project"]["active_sprint_number"] == 2

    audit = api.get(f"{BASE}/requests/{request_id}/audit", headers=EMPLOYEE).json()["items"]
    assert {"CREATE_REQUEST", "GENERATE_WORKFLOW", "CONVERT_REQUEST"} <= {e["event_type"] for e in audit}


def test_sprint_advance_by_unrelated_manager_is_forbidden(api):
    created = submit(api)
    request_id = created["request_id"]
    request = generate(api, request_id)

    for headers, team, refs in ((MANAGER_A, "Design", [DEVELOPER_1]), (MANAGER_B, "Development", [DEVELOPER_2])):
        api.patch(
            f"{BASE}/requests/{request_id}/assign-employees", headers=headers,
            json={"assignments": {task_id: refs for task_id in tasks_for(request, team)}}
        )
        api.post(f"{BASE}/requests/{request_id}/department-approve", headers=headers)

    project_id = api.post(f"{BASE}/requests/{request_id}/approve", headers=MANAGER_B).json()["project"]["project_id"]
    for task in api.get(f"{BASE}/projects/{project_id}/tasks?sprint_number=1", headers=EMPLOYEE).json()["items"]:
        api.patch(f"{BASE}/tasks/{task['task_id']}/status", headers=EMPLOYEE, json={"status": "Completed"})

    # Sprint 1 is staffed only by Development employees
    response = api.patch(f"{BASE}/projects/{project_id}/advance-sprint", headers=QA)
    assert response.status_code == 403
    assert error_code(response) == "PERMISSION_DENIED"

    response = api.patch(f"{BASE}/projects/{project_id}/advance-sprint", headers=MANAGER_B)
    assert response.status_code == 200


def test_health(api, monkeypatch):
    monkeypatch.setattr(mongo_client, "_client", mongomock.MongoClient())
    response = api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_seeded_directory_tokens_authenticate(api):
    seed_directory()
    seed_directory()

    response = api.get(f"{BASE}/requests", headers=auth_headers("EMP-SMGR", ActorKind.EMPLOYEE))
    assert response.status_code == 200
    response = api.get(f"{BASE}/projects", headers=auth_headers("CLI-GLOBEX", ActorKind.CLIENT))
    assert response.status_code == 200
