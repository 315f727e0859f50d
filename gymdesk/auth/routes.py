from fastapi import APIRouter, Depends, Request

from gymdesk.config import get_store
from gymdesk.middleware import rate_limit
from gymdesk.rbac.decorators import require_authenticated
from gymdesk.store import EntityStore
from gymdesk.utils import error_response, success_response
from .gate import AuthorizationGate
from .schemas import (
    ChangePasswordRequest,
    CreateCredentialsRequest,
    DevLoginRequest,
    LoginRequest,
    ResetPasswordRequest,
)
from .service import AuthService
from .session import clear_session_cookie, session_max_age, set_session_cookie

auth_router = APIRouter()

CANNOT_MANAGE = "Cannot manage this employee"


def _session_payload(session, employee: dict) -> dict:
    return {
        "employee": employee,
        "session": session.model_dump(by_alias=True, mode="json"),
    }


@auth_router.post("/login", dependencies=[Depends(rate_limit("auth"))])
async def login(body: LoginRequest, store: EntityStore = Depends(get_store)):
    """Verify credentials and set the session cookie."""
    svc = AuthService(store)
    token, session, employee = await svc.login(body.email, body.password)
    response = success_response(data=_session_payload(session, employee), message="Login successful")
    set_session_cookie(response, token, session_max_age())
    return response


@auth_router.post("/dev-login", dependencies=[Depends(rate_limit("auth"))])
async def dev_login(body: DevLoginRequest, store: EntityStore = Depends(get_store)):
    """Passwordless login (debug mode only, 24 h cookie)."""
    svc = AuthService(store)
    token, session, employee = await svc.dev_login(body.email)
    response = success_response(data=_session_payload(session, employee), message="Dev login successful")
    set_session_cookie(response, token, session_max_age(dev_mode=True))
    return response


@auth_router.get("/session")
@require_authenticated()
async def current_session(request: Request):
    """The signed-in employee and their permissions."""
    lookup = request.state.session_lookup
    return success_response(
        data={
            "subject": request.state.subject.to_dict(),
            "session": lookup.session.model_dump(by_alias=True, mode="json"),
        }
    )


@auth_router.post("/logout")
async def logout():
    response = success_response(message="Logged out")
    clear_session_cookie(response)
    return response


@auth_router.post("/credentials")
@require_authenticated()
async def create_credentials(
    request: Request,
    body: CreateCredentialsRequest,
    store: EntityStore = Depends(get_store),
):
    """Create login credentials for an employee the caller may manage."""
    gate = AuthorizationGate(store)
    if not await gate.can_manage_target_employee(request.state.subject, body.employee_id):
        return error_response(CANNOT_MANAGE, code=403)
    result = await AuthService(store).create_credentials(body.employee_id, body.password)
    return success_response(data=result, message="Login credentials created", code=201)


@auth_router.post("/credentials/reset")
@require_authenticated()
async def reset_credentials(
    request: Request,
    body: ResetPasswordRequest,
    store: EntityStore = Depends(get_store),
):
    """Reset another employee's password and unlock the account."""
    gate = AuthorizationGate(store)
    if not await gate.can_manage_target_employee(request.state.subject, body.employee_id):
        return error_response(CANNOT_MANAGE, code=403)
    result = await AuthService(store).reset_password(body.employee_id, body.new_password)
    return success_response(data=result, message="Password reset")


@auth_router.post("/change-password")
@require_authenticated()
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    store: EntityStore = Depends(get_store),
):
    subject = request.state.subject
    result = await AuthService(store).change_password(
        subject.employee_id, body.current_password, body.new_password
    )
    return success_response(data=result, message="Password changed")
