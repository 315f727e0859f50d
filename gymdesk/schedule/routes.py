from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from gymdesk.config import get_store
from gymdesk.rbac import AccessLevel, Permission
from gymdesk.rbac.decorators import (
    require_access_level,
    require_authenticated,
    require_permission,
)
from gymdesk.store import EntityStore
from gymdesk.utils import drop_none, success_response
from .schemas import BookingRequest, CreateClassRequest, UpdateClassRequest
from .service import ScheduleService

schedule_router = APIRouter()


@schedule_router.post("/")
@require_access_level(AccessLevel.RECEPCIONISTA)
async def create_class(
    request: Request,
    body: CreateClassRequest,
    store: EntityStore = Depends(get_store),
):
    scheduled = await ScheduleService(store).create(
        body.model_dump(), created_by=request.state.subject.employee_id
    )
    return success_response(data=scheduled, message="Class scheduled", code=201)


@schedule_router.get("/")
@require_authenticated()
async def list_classes(
    request: Request,
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    class_type: Optional[str] = Query(None),
    employee_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: EntityStore = Depends(get_store),
):
    """Classes ordered by start time."""
    classes, pagination = await ScheduleService(store).list(
        filters={"status": status, "class_type": class_type, "employee_id": employee_id},
        search=search,
        page=page,
        limit=limit,
        sort="start_time",
        descending=False,
    )
    return success_response(data=classes, pagination=pagination)


@schedule_router.get("/{class_id}")
@require_authenticated()
async def get_class(request: Request, class_id: str, store: EntityStore = Depends(get_store)):
    return success_response(data=await ScheduleService(store).get(class_id))


@schedule_router.put("/{class_id}")
@require_access_level(AccessLevel.RECEPCIONISTA)
async def update_class(
    request: Request,
    class_id: str,
    body: UpdateClassRequest,
    store: EntityStore = Depends(get_store),
):
    scheduled = await ScheduleService(store).update(
        class_id, drop_none(body.model_dump(exclude_unset=True))
    )
    return success_response(data=scheduled, message="Class updated")


@schedule_router.delete("/{class_id}")
@require_access_level(AccessLevel.RECEPCIONISTA)
async def delete_class(request: Request, class_id: str, store: EntityStore = Depends(get_store)):
    result = await ScheduleService(store).delete(class_id)
    return success_response(data=result, message="Class deleted")


@schedule_router.post("/{class_id}/bookings")
@require_permission(Permission.VIEW_MEMBERS)
async def book_class(
    request: Request,
    class_id: str,
    body: BookingRequest,
    store: EntityStore = Depends(get_store),
):
    scheduled = await ScheduleService(store).book(class_id, body.member_id)
    return success_response(data=scheduled, message="Booking confirmed", code=201)


@schedule_router.delete("/{class_id}/bookings/{member_id}")
@require_permission(Permission.VIEW_MEMBERS)
async def cancel_booking(
    request: Request,
    class_id: str,
    member_id: str,
    store: EntityStore = Depends(get_store),
):
    scheduled = await ScheduleService(store).cancel_booking(class_id, member_id)
    return success_response(data=scheduled, message="Booking cancelled")
