from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from gymdesk.auth.gate import AuthorizationGate, can_assign_access_level
from gymdesk.config import get_store
from gymdesk.monday.sync import MondaySyncManager, get_sync_manager
from gymdesk.rbac import Permission, normalize_role
from gymdesk.rbac.decorators import require_any_permission, require_permission
from gymdesk.store import EMPLOYEES, EntityStore
from gymdesk.utils import drop_none, error_response, success_response
from gymdesk.utils.exceptions import ValidationError
from .schemas import CreateEmployeeRequest, UpdateEmployeeRequest
from .service import EmployeeService

employees_router = APIRouter()

CANNOT_MANAGE = "Cannot manage this employee"
CANNOT_ASSIGN = "Cannot assign this access level"

MANAGE_PERMISSIONS = (Permission.MANAGE_ALL_EMPLOYEES, Permission.MANAGE_LOWER_EMPLOYEES)


@employees_router.post("/")
@require_any_permission(*MANAGE_PERMISSIONS)
async def create_employee(
    request: Request,
    body: CreateEmployeeRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    """Create an employee at or below the caller's own level."""
    subject = request.state.subject
    if not can_assign_access_level(subject, normalize_role(body.access_level)):
        return error_response(CANNOT_ASSIGN, code=403)

    svc = EmployeeService(store)
    employee = await svc.create(body.model_dump(), created_by=subject.employee_id)
    background_tasks.add_task(sync.sync_record_quietly, EMPLOYEES, employee["id"])
    return success_response(data=svc.present(employee, subject), message="Employee created", code=201)


@employees_router.get("/")
@require_permission(Permission.VIEW_EMPLOYEE_DETAILS)
async def list_employees(
    request: Request,
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
    position: Optional[str] = Query(None),
    access_level: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: EntityStore = Depends(get_store),
):
    """List employees. Salaries are only included for callers allowed to see them."""
    svc = EmployeeService(store)
    employees, pagination = await svc.list(
        filters={
            "status": status,
            "department": department,
            "position": position,
            "access_level": normalize_role(access_level).value if access_level else None,
        },
        search=search,
        page=page,
        limit=limit,
    )
    subject = request.state.subject
    return success_response(data=[svc.present(e, subject) for e in employees], pagination=pagination)


@employees_router.get("/{employee_id}")
@require_permission(Permission.VIEW_EMPLOYEE_DETAILS)
async def get_employee(request: Request, employee_id: str, store: EntityStore = Depends(get_store)):
    svc = EmployeeService(store)
    employee = await svc.get(employee_id)
    return success_response(data=svc.present(employee, request.state.subject))


@employees_router.put("/{employee_id}")
@require_any_permission(*MANAGE_PERMISSIONS)
async def update_employee(
    request: Request,
    employee_id: str,
    body: UpdateEmployeeRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    subject = request.state.subject
    svc = EmployeeService(store)
    await svc.get(employee_id)

    if not await AuthorizationGate(store).can_manage_target_employee(subject, employee_id):
        return error_response(CANNOT_MANAGE, code=403)
    changes = drop_none(body.model_dump(exclude_unset=True))
    if "access_level" in changes and not can_assign_access_level(subject, changes["access_level"]):
        return error_response(CANNOT_ASSIGN, code=403)

    employee = await svc.update(employee_id, changes)
    background_tasks.add_task(sync.sync_record_quietly, EMPLOYEES, employee_id)
    return success_response(data=svc.present(employee, subject), message="Employee updated")


@employees_router.delete("/{employee_id}")
@require_any_permission(*MANAGE_PERMISSIONS)
async def delete_employee(request: Request, employee_id: str, store: EntityStore = Depends(get_store)):
    """Soft-delete an employee. Their session stops working on the next request."""
    subject = request.state.subject
    if employee_id == subject.employee_id:
        raise ValidationError("You cannot delete your own account")

    svc = EmployeeService(store)
    await svc.get(employee_id)
    if not await AuthorizationGate(store).can_manage_target_employee(subject, employee_id):
        return error_response(CANNOT_MANAGE, code=403)

    result = await svc.delete(employee_id)
    return success_response(data=result, message="Employee deleted")
