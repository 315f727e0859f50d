from fastapi import APIRouter, Depends, Request

from gymdesk.middleware import rate_limit
from gymdesk.rbac import Permission
from gymdesk.rbac.decorators import require_permission
from gymdesk.utils import error_response, success_response
from gymdesk.utils.exceptions import RemoteServiceUnavailable
from .schemas import SyncRequest, SyncType
from .sync import MondaySyncManager, get_sync_manager

monday_router = APIRouter()


@monday_router.post("/sync", dependencies=[Depends(rate_limit("strict"))])
@require_permission(Permission.SYSTEM_SETTINGS)
async def trigger_sync(
    request: Request,
    body: SyncRequest,
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    """Run a sync. Returns 409 while another bulk run is active."""
    if not sync.is_configured():
        raise RemoteServiceUnavailable("monday.com integration is not configured")

    if body.type == SyncType.SINGLE:
        result = await sync.sync_record_to_monday(body.entity, body.id)
        if not result.success:
            return error_response(result.error or "Sync failed", code=503, details=result.to_dict())
        return success_response(data=result.to_dict())

    if body.type == SyncType.TO_MONDAY:
        report = await sync.sync_entity_to_monday(body.entity, body.ids)
    elif body.type == SyncType.FROM_MONDAY:
        report = await sync.sync_entity_from_monday(body.entity)
    else:
        report = await sync.perform_full_bidirectional_sync()

    return success_response(data=report.to_dict(), message=f"{body.type.value} sync completed")


@monday_router.get("/sync")
@require_permission(Permission.SYSTEM_SETTINGS)
async def sync_status(
    request: Request,
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    """Guard state, configuration flags and per-entity sync counts."""
    return success_response(data=await sync.get_sync_status())


@monday_router.get("/connection")
@require_permission(Permission.SYSTEM_SETTINGS)
async def connection(
    request: Request,
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    return success_response(data={"connected": await sync.validate_connection()})
