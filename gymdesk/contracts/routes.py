from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from gymdesk.config import get_store
from gymdesk.monday.sync import MondaySyncManager, get_sync_manager
from gymdesk.rbac import Permission
from gymdesk.rbac.decorators import require_permission
from gymdesk.store import CONTRACTS, EntityStore
from gymdesk.utils import drop_none, success_response
from .schemas import CreateContractRequest, UpdateContractRequest
from .service import ContractService

contracts_router = APIRouter()


@contracts_router.post("/")
@require_permission(Permission.CREATE_MEMBERS)
async def create_contract(
    request: Request,
    body: CreateContractRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    svc = ContractService(store)
    contract = await svc.create(body.model_dump(), created_by=request.state.subject.employee_id)
    background_tasks.add_task(sync.sync_record_quietly, CONTRACTS, contract["id"])
    return success_response(data=contract, message="Contract created", code=201)


@contracts_router.get("/")
@require_permission(Permission.VIEW_MEMBERS)
async def list_contracts(
    request: Request,
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    member_id: Optional[str] = Query(None),
    contract_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: EntityStore = Depends(get_store),
):
    """List contracts, optionally for one member."""
    contracts, pagination = await ContractService(store).list(
        filters={"status": status, "member_id": member_id, "contract_type": contract_type},
        search=search,
        page=page,
        limit=limit,
    )
    return success_response(data=contracts, pagination=pagination)


@contracts_router.get("/{contract_id}")
@require_permission(Permission.VIEW_MEMBERS)
async def get_contract(request: Request, contract_id: str, store: EntityStore = Depends(get_store)):
    return success_response(data=await ContractService(store).get(contract_id))


@contracts_router.put("/{contract_id}")
@require_permission(Permission.EDIT_MEMBERS)
async def update_contract(
    request: Request,
    contract_id: str,
    body: UpdateContractRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    contract = await ContractService(store).update(
        contract_id, drop_none(body.model_dump(exclude_unset=True))
    )
    background_tasks.add_task(sync.sync_record_quietly, CONTRACTS, contract_id)
    return success_response(data=contract, message="Contract updated")


@contracts_router.delete("/{contract_id}")
@require_permission(Permission.DELETE_MEMBERS)
async def delete_contract(request: Request, contract_id: str, store: EntityStore = Depends(get_store)):
    result = await ContractService(store).delete(contract_id)
    return success_response(data=result, message="Contract deleted")
