"""
Request-time authorization.

``AuthorizationGate`` resolves the caller's session, confirms the employee
record is still active and checks permissions against the static matrix.
Every check returns an ``AuthResult``; denials carry a ready-made response
with a fixed message.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from gymdesk.rbac import (
    AccessLevel,
    Permission,
    can_manage,
    get_permissions_for_role,
    has_any_permission,
    has_permission,
    meets_access_level,
    normalize_role,
)
from gymdesk.store import EMPLOYEES, EntityStore
from gymdesk.utils import Logger, error_response
from .session import SessionRecord, clear_session_cookie, resolve_session

logger = Logger("auth.gate")

INACTIVE_ACCOUNT = "Account is inactive or no longer exists"
INSUFFICIENT_PERMISSIONS = "Insufficient permissions"
INSUFFICIENT_ACCESS_LEVEL = "Insufficient access level"


@dataclass
class Subject:
    """The authenticated employee behind a request."""

    employee_id: str
    email: str
    name: str
    access_level: AccessLevel
    employee: dict = field(default_factory=dict, repr=False)

    @property
    def permissions(self) -> list[Permission]:
        return get_permissions_for_role(self.access_level)

    def has(self, permission: Permission) -> bool:
        return has_permission(self.access_level, permission)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "email": self.email,
            "name": self.name,
            "access_level": self.access_level.value,
            "permissions": [p.value for p in self.permissions],
        }


@dataclass
class AuthResult:
    authorized: bool
    subject: Optional[Subject] = None
    denial: Optional[JSONResponse] = None
    status_code: int = status.HTTP_200_OK
    reason: Optional[str] = None


def _deny(code: int, reason: str, invalidate: bool = False) -> AuthResult:
    response = error_response(reason, code=code)
    if invalidate:
        clear_session_cookie(response)
    return AuthResult(authorized=False, denial=response, status_code=code, reason=reason)


class AuthorizationGate:
    def __init__(self, store: EntityStore):
        self.store = store

    async def authenticate(self, request: Request) -> AuthResult:
        """
        Resolve the caller, at most once per request.

        A missing or inactive employee record denies with 401 and the denial
        response deletes the session cookie.
        """
        cached = getattr(request.state, "auth_result", None)
        if cached is not None:
            return cached

        lookup = resolve_session(request)
        if lookup.session is None:
            result = _deny(status.HTTP_401_UNAUTHORIZED, lookup.reason)
        else:
            result = await self._load_subject(request, lookup.session)

        request.state.auth_result = result
        return result

    async def _load_subject(self, request: Request, session: SessionRecord) -> AuthResult:
        employee = await self.store.get(EMPLOYEES, session.employee_id)
        if employee is None or employee.get("status", "active") != "active":
            logger.warning(
                f"Session for employee {session.employee_id} rejected: account inactive or missing"
            )
            return _deny(status.HTTP_401_UNAUTHORIZED, INACTIVE_ACCOUNT, invalidate=True)

        subject = Subject(
            employee_id=session.employee_id,
            email=employee.get("email", session.email),
            name=session.name,
            # Current record wins over the level frozen into the cookie
            access_level=normalize_role(employee.get("access_level")),
            employee=employee,
        )
        return AuthResult(authorized=True, subject=subject)

    async def require_permission(self, request: Request, permission: Permission) -> AuthResult:
        auth = await self.authenticate(request)
        if not auth.authorized:
            return auth
        if not auth.subject.has(permission):
            return _deny(status.HTTP_403_FORBIDDEN, INSUFFICIENT_PERMISSIONS)
        return auth

    async def require_any_permission(
        self, request: Request, permissions: Iterable[Permission]
    ) -> AuthResult:
        auth = await self.authenticate(request)
        if not auth.authorized:
            return auth
        if not has_any_permission(auth.subject.access_level, list(permissions)):
            return _deny(status.HTTP_403_FORBIDDEN, INSUFFICIENT_PERMISSIONS)
        return auth

    async def require_access_level(
        self, request: Request, min_level: AccessLevel | str
    ) -> AuthResult:
        auth = await self.authenticate(request)
        if not auth.authorized:
            return auth
        if not meets_access_level(auth.subject.access_level, min_level):
            return _deny(status.HTTP_403_FORBIDDEN, INSUFFICIENT_ACCESS_LEVEL)
        return auth

    async def can_manage_target_employee(self, subject: Subject, target_employee_id: str) -> bool:
        """Whether ``subject`` may manage the target's login credentials. Read-only."""
        target = await self.store.get(EMPLOYEES, target_employee_id)
        if target is None:
            return False
        if subject.has(Permission.MANAGE_ALL_EMPLOYEES):
            return True
        if subject.has(Permission.MANAGE_LOWER_EMPLOYEES):
            return can_manage(subject.access_level, target.get("access_level"))
        return False


def can_assign_access_level(subject: Subject, level: AccessLevel | str) -> bool:
    """Whether ``subject`` may create or promote an employee to ``level``."""
    if subject.has(Permission.MANAGE_ALL_EMPLOYEES):
        return True
    if subject.has(Permission.MANAGE_LOWER_EMPLOYEES):
        return can_manage(subject.access_level, level)
    return False
