"""
End to end checks of the HTTP surface: authentication, task lifecycle,
comments, users and analytics, driven through FastAPI's TestClient.
"""

import logging
import sqlite3
from datetime import timedelta

from fastapi import Depends

from app.database import get_db
from app.models import Task, User
from app.routers.tasks import get_lifecycle
from app.services.task_lifecycle import TaskLifecycleManager
from app.services.users import UserDirectory
from app.utils.timeutils import utcnow
from conftest import T0, auth_headers, intercept
from main import app


def due_in(days):
    return (utcnow() + timedelta(days=days)).isoformat()


def create_task(client, admin, assignee, **overrides):
    payload = {
        "title": "A",
        "description": "Prepare the release notes",
        "assigned_to": assignee.id,
        "due_date": due_in(5),
    }
    payload.update(overrides)
    response = client.post("/tasks/", json=payload, headers=auth_headers(admin))
    assert response.status_code == 201, response.text
    return response.json()


def test_root_and_health(client):
    assert client.get("/").status_code == 200
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "UP"


def test_metrics_endpoint(client, admin, employee):
    create_task(client, admin, employee)
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "tasks_total" in response.text


def test_register_login_and_me(client):
    response = client.post(
        "/auth/register",
        json={"name": "New Hire", "email": "hire@example.com", "password": "s3cret-pass", "department": "Sales"},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["user"]["role"] == "employee"
    assert body["user"]["tasks_completed"] == 0

    duplicate = client.post(
        "/auth/register",
        json={"name": "Copy", "email": "hire@example.com", "password": "s3cret-pass"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "email already exists"

    bad_login = client.post("/auth/login", json={"email": "hire@example.com", "password": "wrong"})
    assert bad_login.status_code == 401

    login = client.post("/auth/login", json={"email": "hire@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "hire@example.com"


def test_requests_without_token_are_rejected(client):
    assert client.get("/tasks/").status_code == 401
    response = client.get("/tasks/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_deactivated_user_cannot_authenticate(client, db, employee):
    employee.is_active = False
    db.commit()
    assert client.get("/tasks/", headers=auth_headers(employee)).status_code == 401


def test_task_flow_for_owner(client, db, admin, employee):
    task = create_task(client, admin, employee, tags=["release"])
    assert task["status"] == "pending"
    assert task["priority"] == "medium"
    assert task["assignee"]["email"] == employee.email
    assert task["assigner"]["id"] == admin.id

    headers = auth_headers(employee)
    listed = client.get("/tasks/", headers=headers).json()
    assert [t["id"] for t in listed] == [task["id"]]

    response = client.put(f"/tasks/{task['id']}/status", json={"status": "completed"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["completed_at"] is not None

    # Re-sending the completion is a no-op
    again = client.put(f"/tasks/{task['id']}", json={"status": "completed"}, headers=headers)
    assert again.status_code == 200
    db.refresh(employee)
    assert employee.tasks_completed == 1

    report = client.get(f"/analytics/employee/{employee.id}", headers=headers).json()
    assert report["on_time_rate"] == 100
    assert report["productivity_score"] == 100


def test_invalid_transition_is_409(client, admin, employee):
    task = create_task(client, admin, employee)
    headers = auth_headers(admin)
    client.put(f"/tasks/{task['id']}", json={"status": "completed"}, headers=headers)

    response = client.put(f"/tasks/{task['id']}", json={"status": "pending"}, headers=headers)

    assert response.status_code == 409
    assert response.json()["current_status"] == "completed"
    assert response.json()["attempted_status"] == "pending"
    assert client.get(f"/tasks/{task['id']}", headers=headers).json()["status"] == "completed"


def test_non_owner_gets_403_not_task_data(client, admin, employee, other_employee):
    task = create_task(client, admin, employee)
    headers = auth_headers(other_employee)

    response = client.get(f"/tasks/{task['id']}", headers=headers)
    assert response.status_code == 403
    assert response.json() == {"detail": "Not authorized"}

    assert client.get("/tasks/999", headers=headers).status_code == 404


def test_employee_cannot_create_edit_or_delete(client, admin, employee):
    task = create_task(client, admin, employee)
    headers = auth_headers(employee)

    payload = {"title": "x", "description": "y", "assigned_to": employee.id, "due_date": due_in(1)}
    assert client.post("/tasks/", json=payload, headers=headers).status_code == 403
    assert client.put(f"/tasks/{task['id']}", json={"title": "mine"}, headers=headers).status_code == 403
    assert client.delete(f"/tasks/{task['id']}", headers=headers).status_code == 403


def test_create_validation_errors(client, admin, employee):
    headers = auth_headers(admin)
    missing = client.post("/tasks/", json={"title": "only a title"}, headers=headers)
    assert missing.status_code == 422

    blank = client.post(
        "/tasks/",
        json={"title": " ", "description": "d", "assigned_to": employee.id, "due_date": due_in(1)},
        headers=headers,
    )
    assert blank.status_code == 400
    assert blank.json()["field"] == "title"

    unknown = client.post(
        "/tasks/",
        json={"title": "t", "description": "d", "assigned_to": 999, "due_date": due_in(1)},
        headers=headers,
    )
    assert unknown.status_code == 400
    assert unknown.json()["field"] == "assigned_to"


def test_comments(client, admin, employee, other_employee):
    task = create_task(client, admin, employee)

    response = client.post(
        f"/tasks/{task['id']}/comments", json={"text": "Started"}, headers=auth_headers(employee)
    )
    assert response.status_code == 200
    comments = response.json()["comments"]
    assert len(comments) == 1
    assert comments[0]["author_id"] == employee.id
    assert comments[0]["author"]["name"] == employee.name

    denied = client.post(
        f"/tasks/{task['id']}/comments", json={"text": "Me too"}, headers=auth_headers(other_employee)
    )
    assert denied.status_code == 403


def test_delete_task(client, admin, employee):
    task = create_task(client, admin, employee)
    headers = auth_headers(admin)

    assert client.delete(f"/tasks/{task['id']}", headers=headers).status_code == 200
    assert client.get(f"/tasks/{task['id']}", headers=headers).status_code == 404
    assert client.delete(f"/tasks/{task['id']}", headers=headers).status_code == 404


def test_user_endpoints(client, admin, employee, other_employee):
    admin_headers = auth_headers(admin)
    employee_headers = auth_headers(employee)

    assert len(client.get("/users/", headers=admin_headers).json()) == 3
    assert client.get("/users/", headers=employee_headers).status_code == 403

    assert client.get(f"/users/{employee.id}", headers=employee_headers).status_code == 200
    assert client.get(f"/users/{other_employee.id}", headers=employee_headers).status_code == 403
    assert client.get("/users/999", headers=admin_headers).status_code == 404

    updated = client.put(
        f"/users/{employee.id}", json={"position": "Lead", "department": "Platform"}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["position"] == "Lead"

    conflict = client.put(f"/users/{employee.id}", json={"email": other_employee.email}, headers=admin_headers)
    assert conflict.status_code == 409

    assert client.put(f"/users/{employee.id}", json={"name": "x"}, headers=employee_headers).status_code == 403


def test_derived_user_fields_are_not_client_writable(client, db, admin, employee):
    response = client.put(
        f"/users/{employee.id}",
        json={"tasks_completed": 50, "productivity_score": 99},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    db.refresh(employee)
    assert employee.tasks_completed == 0
    assert employee.productivity_score == 0


def test_delete_user_leaves_tasks_dangling(client, db, admin, employee):
    task = create_task(client, admin, employee)
    headers = auth_headers(admin)

    assert client.delete(f"/users/{admin.id}", headers=headers).status_code == 400
    assert client.delete(f"/users/{employee.id}", headers=headers).status_code == 204
    assert db.query(User).filter(User.email == "eve@example.com").first() is None

    body = client.get(f"/tasks/{task['id']}", headers=headers).json()
    assert body["assigned_to"] == task["assigned_to"]
    assert body["assignee"] is None


def test_analytics_endpoints(client, admin, employee, other_employee):
    create_task(client, admin, employee)
    overdue = create_task(client, admin, employee, due_date=due_in(-1))
    admin_headers = auth_headers(admin)

    dashboard = client.get("/analytics/dashboard", headers=admin_headers)
    assert dashboard.status_code == 200
    assert dashboard.json()["total_tasks"] == 2
    assert dashboard.json()["overdue_tasks"] == 1
    assert dashboard.json()["completion_rate"] == 0

    client.put(f"/tasks/{overdue['id']}", json={"status": "completed"}, headers=admin_headers)
    report = client.get(f"/analytics/employee/{employee.id}", headers=admin_headers).json()
    assert report["completion_rate"] == 50
    assert report["on_time_rate"] == 0
    assert report["productivity_score"] == 30

    team = client.get("/analytics/team", headers=admin_headers).json()
    assert team["total_employees"] == 2
    assert team["average_productivity"] == 15

    employee_headers = auth_headers(employee)
    assert client.get("/analytics/dashboard", headers=employee_headers).status_code == 403
    assert client.get("/analytics/team", headers=employee_headers).status_code == 403
    assert client.get(f"/analytics/employee/{other_employee.id}", headers=employee_headers).status_code == 403


def disk_failure(cursor):
    raise sqlite3.OperationalError("disk I/O error")


def test_storage_failure_on_write_is_500_and_rolled_back(client, db, engine, admin, employee, caplog):
    caplog.set_level(logging.ERROR, logger="app.services.storage")
    payload = {"title": "A", "description": "d", "assigned_to": employee.id, "due_date": due_in(1)}

    with intercept(engine, lambda statement: statement.startswith("INSERT INTO tasks "), disk_failure):
        response = client.post("/tasks/", json=payload, headers=auth_headers(admin))

    assert response.status_code == 500
    assert response.json() == {"detail": "Storage error"}
    assert any(
        record.name == "app.services.storage" and record.levelno == logging.ERROR
        for record in caplog.records
    )
    assert db.query(Task).count() == 0


def test_storage_failure_on_read_is_500(client, engine, admin):
    headers = auth_headers(admin)

    with intercept(engine, lambda statement: "FROM tasks" in statement, disk_failure):
        response = client.get("/tasks/", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Storage error"}
    assert client.get("/tasks/", headers=headers).status_code == 200


def test_duplicate_email_caught_by_database_is_409(client, monkeypatch):
    monkeypatch.setattr(UserDirectory, "_ensure_email_free", lambda self, email, exclude_id=None: None)
    payload = {"name": "New Hire", "email": "hire@example.com", "password": "s3cret-pass"}

    assert client.post("/auth/register", json=payload).status_code == 201
    duplicate = client.post("/auth/register", json=payload)

    assert duplicate.status_code == 409
    assert duplicate.json() == {"detail": "email already exists"}


def test_task_routes_use_the_lifecycle_dependency(client, clock, admin, employee):
    def lifecycle_with_clock(db=Depends(get_db)):
        return TaskLifecycleManager(db, clock=clock)

    app.dependency_overrides[get_lifecycle] = lifecycle_with_clock
    task = create_task(client, admin, employee)
    assert task["created_at"] == T0.isoformat()

    headers = auth_headers(employee)
    clock.advance(hours=1)
    done = client.put(f"/tasks/{task['id']}/status", json={"status": "completed"}, headers=headers).json()
    assert done["completed_at"] == (T0 + timedelta(hours=1)).isoformat()

    clock.advance(hours=1)
    commented = client.post(f"/tasks/{task['id']}/comments", json={"text": "Done"}, headers=headers).json()
    assert commented["comments"][0]["created_at"] == (T0 + timedelta(hours=2)).isoformat()
    assert commented["updated_at"] == (T0 + timedelta(hours=2)).isoformat()
