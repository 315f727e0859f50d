from datetime import datetime, timedelta, timezone

from gymdesk.auth.session import issue_session
from gymdesk.config import settings
from gymdesk.rbac import AccessLevel
from gymdesk.store import EMPLOYEES

from .conftest import run, session_headers


def test_no_cookie_is_401(client):
    response = client.get("/api/v1/members/")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "No session found"}


def test_invalid_cookie_is_401(client):
    response = client.get(
        "/api/v1/members/", headers={"cookie": f"{settings.session_cookie_name}=garbage"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid session"


def test_expired_cookie_is_401(client, staff):
    issued = datetime.now(timezone.utc) - timedelta(hours=settings.session_max_age_hours + 1)
    token, _ = issue_session(staff[AccessLevel.GERENTE], now=issued)

    response = client.get(
        "/api/v1/members/", headers={"cookie": f"{settings.session_cookie_name}={token}"}
    )

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Session expired"}


def test_missing_permission_is_403(client, as_role):
    response = client.get("/api/v1/employees/", headers=as_role(AccessLevel.VENTAS))
    assert response.status_code == 403
    assert response.json()["error"] == "Insufficient permissions"


def test_access_level_check_is_403(client, as_role):
    response = client.post(
        "/api/v1/schedule/",
        json={
            "class_name": "Spinning",
            "class_type": "cardio",
            "start_time": "2030-01-10T07:00:00Z",
            "end_time": "2030-01-10T08:00:00Z",
            "max_capacity": 10,
        },
        headers=as_role(AccessLevel.ENTRENADOR),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Insufficient access level"


def test_inactive_employee_session_is_invalidated(client, api_store, staff):
    employee = staff[AccessLevel.GERENTE]
    headers = session_headers(employee)
    run(api_store.update(EMPLOYEES, employee["id"], {"status": "inactive"}))

    response = client.get("/api/v1/members/", headers=headers)

    assert response.status_code == 401
    assert response.json()["error"] == "Account is inactive or no longer exists"
    set_cookie = response.headers.get("set-cookie", "")
    assert set_cookie.startswith(f"{settings.session_cookie_name}=")
    assert "Max-Age=0" in set_cookie


def test_deleted_employee_session_is_invalidated(client, api_store, staff):
    employee = staff[AccessLevel.VENTAS]
    headers = session_headers(employee)
    run(api_store.delete(EMPLOYEES, employee["id"]))

    response = client.get("/api/v1/auth/session", headers=headers)
    assert response.status_code == 401


def test_permissions_follow_the_current_employee_record(client, api_store, staff):
    employee = staff[AccessLevel.ENTRENADOR]
    headers = session_headers(employee)
    assert client.get("/api/v1/products/", headers=headers).status_code == 403

    run(api_store.update(EMPLOYEES, employee["id"], {"access_level": "gerente"}))

    assert client.get("/api/v1/products/", headers=headers).status_code == 200


def test_session_endpoint_reports_subject(client, as_role):
    response = client.get("/api/v1/auth/session", headers=as_role(AccessLevel.RECEPCIONISTA))
    assert response.status_code == 200
    subject = response.json()["data"]["subject"]
    assert subject["access_level"] == "recepcionista"
    assert "create_members" in subject["permissions"]
    assert "manage_inventory" not in subject["permissions"]
