from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from gymdesk.config import get_store
from gymdesk.monday.sync import MondaySyncManager, get_sync_manager
from gymdesk.rbac import Permission
from gymdesk.rbac.decorators import require_permission
from gymdesk.store import MEMBERS, EntityStore
from gymdesk.utils import drop_none, success_response
from .schemas import CreateMemberRequest, UpdateMemberRequest
from .service import MemberService

members_router = APIRouter()


@members_router.post("/")
@require_permission(Permission.CREATE_MEMBERS)
async def create_member(
    request: Request,
    body: CreateMemberRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    """Create a member and queue the board push."""
    svc = MemberService(store)
    member = await svc.create(body.model_dump(), created_by=request.state.subject.employee_id)
    background_tasks.add_task(sync.sync_record_quietly, MEMBERS, member["id"])
    return success_response(data=member, message="Member created", code=201)


@members_router.get("/")
@require_permission(Permission.VIEW_MEMBERS)
async def list_members(
    request: Request,
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    selected_plan: Optional[str] = Query(None),
    sync_status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: EntityStore = Depends(get_store),
):
    """List members with search and status/plan filters."""
    svc = MemberService(store)
    members, pagination = await svc.list(
        filters={"status": status, "selected_plan": selected_plan, "sync_status": sync_status},
        search=search,
        page=page,
        limit=limit,
    )
    return success_response(data=members, pagination=pagination)


@members_router.get("/{member_id}")
@require_permission(Permission.VIEW_MEMBERS)
async def get_member(request: Request, member_id: str, store: EntityStore = Depends(get_store)):
    return success_response(data=await MemberService(store).get(member_id))


@members_router.put("/{member_id}")
@require_permission(Permission.EDIT_MEMBERS)
async def update_member(
    request: Request,
    member_id: str,
    body: UpdateMemberRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    svc = MemberService(store)
    member = await svc.update(member_id, drop_none(body.model_dump(exclude_unset=True)))
    background_tasks.add_task(sync.sync_record_quietly, MEMBERS, member_id)
    return success_response(data=member, message="Member updated")


@members_router.delete("/{member_id}")
@require_permission(Permission.DELETE_MEMBERS)
async def delete_member(request: Request, member_id: str, store: EntityStore = Depends(get_store)):
    """Soft-delete a member."""
    result = await MemberService(store).delete(member_id)
    return success_response(data=result, message="Member deleted")
