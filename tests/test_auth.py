from gymdesk.auth.helpers import hash_password
from gymdesk.config import settings
from gymdesk.rbac import AccessLevel
from gymdesk.store import EMPLOYEE_CREDENTIALS, EMPLOYEES

from .conftest import run

PASSWORD = "correct-horse"


def _credentials(api_store, employee, password=PASSWORD, **fields):
    data = {
        "employee_id": employee["id"],
        "email": employee["email"],
        "password_hash": hash_password(password),
        "is_active": True,
        "login_attempts": 0,
    }
    data.update(fields)
    return run(api_store.create(EMPLOYEE_CREDENTIALS, data))


def test_login_sets_session_cookie(client, api_store, staff):
    employee = staff[AccessLevel.VENTAS]
    _credentials(api_store, employee)

    response = client.post(
        "/api/v1/auth/login", json={"email": "VENTAS@gymdesk.mx", "password": PASSWORD}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["employee"]["access_level"] == "ventas"
    assert "salary" not in data["employee"]
    assert data["session"]["employeeId"] == employee["id"]
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.session_cookie_name}=")
    assert "HttpOnly" in set_cookie

    session = client.get("/api/v1/auth/session")
    assert session.status_code == 200
    assert session.json()["data"]["subject"]["employee_id"] == employee["id"]


def test_wrong_password_counts_toward_lockout(client, api_store, staff):
    employee = staff[AccessLevel.RECEPCIONISTA]
    creds = _credentials(api_store, employee, login_attempts=settings.max_login_attempts - 1)

    response = client.post(
        "/api/v1/auth/login", json={"email": employee["email"], "password": "nope-nope"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"

    stored = run(api_store.get(EMPLOYEE_CREDENTIALS, creds["id"]))
    assert stored["locked_until"]

    locked = client.post("/api/v1/auth/login", json={"email": employee["email"], "password": PASSWORD})
    assert locked.status_code == 401
    assert locked.json()["error"].startswith("Account is locked")


def test_inactive_employee_cannot_log_in(client, api_store, staff):
    employee = staff[AccessLevel.ENTRENADOR]
    _credentials(api_store, employee)
    run(api_store.update(EMPLOYEES, employee["id"], {"status": "inactive"}))

    response = client.post("/api/v1/auth/login", json={"email": employee["email"], "password": PASSWORD})
    assert response.status_code == 403


def test_logout_clears_cookie(client):
    response = client.post("/api/v1/auth/logout")
    assert response.status_code == 200
    assert "Max-Age=0" in response.headers["set-cookie"]


def test_dev_login_hidden_outside_debug(client, staff):
    response = client.post("/api/v1/auth/dev-login", json={"email": "gerente@gymdesk.mx"})
    assert response.status_code == 404


def test_gerente_cannot_create_credentials_for_direccion(client, as_role, staff):
    response = client.post(
        "/api/v1/auth/credentials",
        json={"employee_id": staff[AccessLevel.DIRECCION]["id"], "password": "long-enough"},
        headers=as_role(AccessLevel.GERENTE),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Cannot manage this employee"


def test_gerente_creates_credentials_for_ventas(client, api_store, as_role, staff):
    target = staff[AccessLevel.VENTAS]
    response = client.post(
        "/api/v1/auth/credentials",
        json={"employee_id": target["id"], "password": "long-enough"},
        headers=as_role(AccessLevel.GERENTE),
    )

    assert response.status_code == 201
    assert run(api_store.get(EMPLOYEES, target["id"]))["has_login"] is True

    again = client.post(
        "/api/v1/auth/credentials",
        json={"employee_id": target["id"], "password": "long-enough"},
        headers=as_role(AccessLevel.GERENTE),
    )
    assert again.status_code == 409


def test_short_passwords_are_rejected(client, as_role, staff):
    response = client.post(
        "/api/v1/auth/credentials",
        json={"employee_id": staff[AccessLevel.VENTAS]["id"], "password": "short"},
        headers=as_role(AccessLevel.DIRECCION),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"


def test_change_password(client, api_store, as_role, staff):
    employee = staff[AccessLevel.VENTAS]
    _credentials(api_store, employee)
    headers = as_role(AccessLevel.VENTAS)

    wrong = client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "nope", "new_password": "brand-new-pass"},
        headers=headers,
    )
    right = client.post(
        "/api/v1/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-pass"},
        headers=headers,
    )

    assert wrong.status_code == 400
    assert right.status_code == 200
