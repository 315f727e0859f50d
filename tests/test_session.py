from datetime import datetime, timedelta, timezone

from jose import jwt

from gymdesk.auth.session import (
    EXPIRED_SESSION,
    INVALID_SESSION,
    NO_SESSION,
    issue_session,
    read_session,
    session_max_age,
)
from gymdesk.config import settings
from gymdesk.rbac import AccessLevel

EMPLOYEE = {
    "id": "emp-1",
    "email": "ana@gymdesk.mx",
    "first_name": "Ana",
    "paternal_last_name": "López",
    "access_level": "manager",
}


def test_issue_and_read_round_trip():
    token, record = issue_session(EMPLOYEE)
    lookup = read_session(token)

    assert lookup.present
    assert lookup.session.employee_id == "emp-1"
    assert lookup.session.name == "Ana López"
    assert lookup.session.access_level == AccessLevel.GERENTE
    assert record.expires_at - record.login_at == timedelta(hours=settings.session_max_age_hours)


def test_claims_use_camel_case_names():
    token, _ = issue_session(EMPLOYEE)
    claims = jwt.get_unverified_claims(token)
    assert {"employeeId", "email", "name", "accessLevel", "loginAt", "expiresAt"} <= set(claims)
    assert claims["accessLevel"] == "gerente"


def test_dev_sessions_last_longer():
    assert session_max_age(dev_mode=True) == settings.dev_session_max_age_hours * 3600
    assert session_max_age() == settings.session_max_age_hours * 3600


def test_missing_cookie():
    assert read_session(None).reason == NO_SESSION
    assert read_session("").reason == NO_SESSION


def test_garbage_cookie_is_invalid():
    lookup = read_session("not-a-token")
    assert not lookup.present
    assert lookup.reason == INVALID_SESSION


def test_tampered_cookie_is_invalid():
    token, _ = issue_session(EMPLOYEE)
    claims = jwt.get_unverified_claims(token)
    claims["accessLevel"] = "direccion"
    forged = jwt.encode(claims, "some-other-secret", algorithm=settings.algorithm)

    assert read_session(forged).reason == INVALID_SESSION


def test_expired_cookie():
    issued = datetime.now(timezone.utc) - timedelta(hours=settings.session_max_age_hours + 1)
    token, _ = issue_session(EMPLOYEE, now=issued)

    lookup = read_session(token)
    assert not lookup.present
    assert lookup.reason == EXPIRED_SESSION


def test_payload_without_employee_is_invalid():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"email": "x@gymdesk.mx", "exp": int((now + timedelta(hours=1)).timestamp())},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    assert read_session(token).reason == INVALID_SESSION
