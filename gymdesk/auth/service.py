"""Authentication service: employee login, lockout and credential management."""

import math
from datetime import datetime, timedelta, timezone

from gymdesk.config import settings
from gymdesk.rbac import get_permissions_for_role, get_role_display_name, normalize_role
from gymdesk.store import EMPLOYEE_CREDENTIALS, EMPLOYEES, EntityStore
from gymdesk.utils import Logger, as_datetime
from gymdesk.utils.exceptions import (
    AuthenticationRequired,
    DuplicateError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from .helpers import hash_password, verify_password
from .session import SessionRecord, issue_session

logger = Logger("auth.service")

INVALID_CREDENTIALS = "Invalid email or password"


def public_employee(employee: dict) -> dict:
    """Employee fields safe to hand back to the signed-in user."""
    level = normalize_role(employee.get("access_level"))
    data = {k: v for k, v in employee.items() if k not in ("salary", "password_hash")}
    data["access_level"] = level.value
    data["access_level_display"] = get_role_display_name(level)
    data["permissions"] = [p.value for p in get_permissions_for_role(level)]
    return data


class AuthService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def _credentials_for_email(self, email: str) -> dict | None:
        return await self.store.find_one(EMPLOYEE_CREDENTIALS, {"email": email.strip().lower()})

    async def login(self, email: str, password: str) -> tuple[str, SessionRecord, dict]:
        """
        1. Find credentials by email; reject deactivated or locked accounts.
        2. Verify the password, counting failures toward the lockout.
        3. Confirm the employee record is still active.
        4. Reset the failure counter and issue a session.
        """
        now = datetime.now(timezone.utc)

        # ── 1. Credentials ───────────────────────────────────────
        credentials = await self._credentials_for_email(email)
        if not credentials:
            raise AuthenticationRequired(INVALID_CREDENTIALS)

        if not credentials.get("is_active", True):
            raise PermissionDenied("Account is deactivated")

        locked_until = as_datetime(credentials.get("locked_until"))
        if locked_until and locked_until > now:
            minutes_left = math.ceil((locked_until - now).total_seconds() / 60)
            raise AuthenticationRequired(
                f"Account is locked. Try again in {minutes_left} minutes."
            )

        # ── 2. Password ──────────────────────────────────────────
        if not verify_password(password, credentials.get("password_hash")):
            await self._record_failed_attempt(credentials, now)
            raise AuthenticationRequired(INVALID_CREDENTIALS)

        # ── 3. Employee ──────────────────────────────────────────
        employee = await self.store.get(EMPLOYEES, credentials["employee_id"])
        if not employee:
            raise AuthenticationRequired("Employee record not found")
        if employee.get("status", "active") != "active":
            raise PermissionDenied("Employee account is not active")

        # ── 4. Session ───────────────────────────────────────────
        await self.store.update(
            EMPLOYEE_CREDENTIALS,
            credentials["id"],
            {"login_attempts": 0, "locked_until": None, "last_login": now},
        )
        employee = await self.store.update(EMPLOYEES, employee["id"], {"last_login": now}) or employee

        token, session = issue_session(employee, now=now)
        logger.info(f"Employee {employee['id']} signed in ({session.access_level.value})")
        return token, session, public_employee(employee)

    async def _record_failed_attempt(self, credentials: dict, now: datetime) -> None:
        attempts = int(credentials.get("login_attempts") or 0) + 1
        changes: dict = {"login_attempts": attempts}
        if attempts >= settings.max_login_attempts:
            changes["locked_until"] = now + timedelta(minutes=settings.lockout_minutes)
            logger.warning(
                f"Credentials {credentials['id']} locked after {attempts} failed attempts"
            )
        else:
            logger.warning(f"Failed login for credentials {credentials['id']} ({attempts})")
        await self.store.update(EMPLOYEE_CREDENTIALS, credentials["id"], changes)

    async def dev_login(self, email: str) -> tuple[str, SessionRecord, dict]:
        """Passwordless sign-in for local development; only exposed when ``debug``."""
        if not settings.debug:
            raise NotFoundError("Not found")
        employee = await self.store.find_one(EMPLOYEES, {"email": email.strip().lower()})
        if not employee or employee.get("status", "active") != "active":
            raise AuthenticationRequired(INVALID_CREDENTIALS)
        token, session = issue_session(employee, dev_mode=True)
        logger.warning(f"Dev login issued for employee {employee['id']}")
        return token, session, public_employee(employee)

    async def create_credentials(self, employee_id: str, password: str) -> dict:
        employee = await self.store.get(EMPLOYEES, employee_id)
        if not employee:
            raise NotFoundError("Employee not found")
        if not employee.get("email"):
            raise NotFoundError("Employee has no email address")

        email = employee["email"].strip().lower()
        existing = await self.store.find_one(EMPLOYEE_CREDENTIALS, {"employee_id": employee_id})
        if existing or await self._credentials_for_email(email):
            raise DuplicateError("Credentials already exist for this employee")

        await self.store.create(
            EMPLOYEE_CREDENTIALS,
            {
                "employee_id": employee_id,
                "email": email,
                "password_hash": hash_password(password),
                "is_active": True,
                "login_attempts": 0,
                "locked_until": None,
            },
        )
        await self.store.update(EMPLOYEES, employee_id, {"has_login": True})
        logger.info(f"Login credentials created for employee {employee_id}")
        return {"employee_id": employee_id, "email": email}

    async def reset_password(self, employee_id: str, new_password: str) -> dict:
        """Admin reset: new hash, failure counter cleared, account unlocked."""
        credentials = await self.store.find_one(EMPLOYEE_CREDENTIALS, {"employee_id": employee_id})
        if not credentials:
            raise NotFoundError("No login credentials found for this employee")
        await self.store.update(
            EMPLOYEE_CREDENTIALS,
            credentials["id"],
            {
                "password_hash": hash_password(new_password),
                "login_attempts": 0,
                "locked_until": None,
            },
        )
        logger.info(f"Password reset for employee {employee_id}")
        return {"employee_id": employee_id}

    async def change_password(
        self, employee_id: str, current_password: str, new_password: str
    ) -> dict:
        credentials = await self.store.find_one(EMPLOYEE_CREDENTIALS, {"employee_id": employee_id})
        if not credentials:
            raise NotFoundError("Account not found")
        if not verify_password(current_password, credentials.get("password_hash")):
            raise ValidationError("Current password is incorrect")
        await self.store.update(
            EMPLOYEE_CREDENTIALS,
            credentials["id"],
            {"password_hash": hash_password(new_password)},
        )
        return {"employee_id": employee_id}
