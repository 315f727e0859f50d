"""
Employee session cookie.

The cookie carries the session record ``{employeeId, email, name,
accessLevel, loginAt, expiresAt}`` signed as an HS256 JWT. Only the login
handlers issue sessions; everything else reads them through
``resolve_session``, which decodes at most once per request.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, Response
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gymdesk.config import settings
from gymdesk.rbac import AccessLevel, normalize_role
from gymdesk.utils import Logger

logger = Logger("auth.session")

NO_SESSION = "No session found"
INVALID_SESSION = "Invalid session"
EXPIRED_SESSION = "Session expired"


class SessionRecord(BaseModel):
    """Decoded session payload, validated at the cookie boundary."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    employee_id: str = Field(..., alias="employeeId", min_length=1)
    email: str = Field(..., min_length=3)
    name: str = ""
    access_level: AccessLevel = Field(..., alias="accessLevel")
    login_at: datetime = Field(..., alias="loginAt")
    expires_at: datetime = Field(..., alias="expiresAt")

    @field_validator("access_level", mode="before")
    @classmethod
    def normalize_access_level(cls, v):
        return normalize_role(v)


@dataclass
class SessionLookup:
    session: Optional[SessionRecord] = None
    reason: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.session is not None


def session_max_age(dev_mode: bool = False) -> int:
    """Cookie lifetime in seconds."""
    hours = settings.dev_session_max_age_hours if dev_mode else settings.session_max_age_hours
    return hours * 60 * 60


def employee_display_name(employee: dict) -> str:
    parts = [employee.get("first_name"), employee.get("paternal_last_name")]
    name = " ".join(p for p in parts if p)
    return name or employee.get("name") or employee.get("email", "")


def issue_session(
    employee: dict, dev_mode: bool = False, now: Optional[datetime] = None
) -> tuple[str, SessionRecord]:
    """Build and sign a session for ``employee``."""
    login_at = now or datetime.now(timezone.utc)
    record = SessionRecord(
        employee_id=employee["id"],
        email=employee.get("email", ""),
        name=employee_display_name(employee),
        access_level=employee.get("access_level"),
        login_at=login_at,
        expires_at=login_at + timedelta(seconds=session_max_age(dev_mode)),
    )
    claims = record.model_dump(by_alias=True, mode="json")
    claims["iat"] = int(record.login_at.timestamp())
    claims["exp"] = int(record.expires_at.timestamp())
    token = jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)
    return token, record


def read_session(token: Optional[str]) -> SessionLookup:
    """Decode a cookie value. Never raises; failures come back as absent."""
    if not token:
        return SessionLookup(reason=NO_SESSION)

    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        return SessionLookup(reason=EXPIRED_SESSION)
    except JWTError as exc:
        logger.warning(f"Rejected session cookie: {exc}")
        return SessionLookup(reason=INVALID_SESSION)

    try:
        record = SessionRecord.model_validate(claims)
    except ValidationError:
        logger.warning("Rejected session cookie: payload failed validation")
        return SessionLookup(reason=INVALID_SESSION)

    if record.expires_at <= datetime.now(timezone.utc):
        return SessionLookup(reason=EXPIRED_SESSION)
    return SessionLookup(session=record)


def resolve_session(request: Request) -> SessionLookup:
    """Session for this request; the first lookup is cached on ``request.state``."""
    cached = getattr(request.state, "session_lookup", None)
    if cached is not None:
        return cached
    lookup = read_session(request.cookies.get(settings.session_cookie_name))
    request.state.session_lookup = lookup
    return lookup


def set_session_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.environment != "development",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.environment != "development",
    )
