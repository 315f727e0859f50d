from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from gymdesk.config import get_store
from gymdesk.monday.sync import MondaySyncManager, get_sync_manager
from gymdesk.rbac import Permission
from gymdesk.rbac.decorators import require_permission
from gymdesk.store import PAYMENTS, EntityStore
from gymdesk.utils import drop_none, success_response
from .schemas import CreatePaymentRequest, GeneratePaymentRequest, UpdatePaymentRequest
from .service import PaymentService

payments_router = APIRouter()


@payments_router.post("/")
@require_permission(Permission.EDIT_MEMBERS)
async def create_payment(
    request: Request,
    body: CreatePaymentRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    svc = PaymentService(store)
    payment = await svc.create(body.model_dump(), created_by=request.state.subject.employee_id)
    background_tasks.add_task(sync.sync_record_quietly, PAYMENTS, payment["id"])
    return success_response(data=payment, message="Payment created", code=201)


@payments_router.post("/generate")
@require_permission(Permission.EDIT_MEMBERS)
async def generate_payment(
    request: Request,
    body: GeneratePaymentRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    """Create a pending charge for a contract, ready for the payment gateway."""
    payment = await PaymentService(store).generate_for_contract(
        body.contract_id,
        amount=body.amount,
        payment_type=body.payment_type,
        due_date=body.due_date,
        description=body.description,
        created_by=request.state.subject.employee_id,
    )
    background_tasks.add_task(sync.sync_record_quietly, PAYMENTS, payment["id"])
    return success_response(data=payment, message="Payment generated", code=201)


@payments_router.get("/")
@require_permission(Permission.VIEW_MEMBERS)
async def list_payments(
    request: Request,
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    member_id: Optional[str] = Query(None),
    contract_id: Optional[str] = Query(None),
    payment_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: EntityStore = Depends(get_store),
):
    payments, pagination = await PaymentService(store).list(
        filters={
            "status": status,
            "member_id": member_id,
            "contract_id": contract_id,
            "payment_type": payment_type,
        },
        search=search,
        page=page,
        limit=limit,
    )
    return success_response(data=payments, pagination=pagination)


@payments_router.get("/{payment_id}")
@require_permission(Permission.VIEW_MEMBERS)
async def get_payment(request: Request, payment_id: str, store: EntityStore = Depends(get_store)):
    return success_response(data=await PaymentService(store).get(payment_id))


@payments_router.put("/{payment_id}")
@require_permission(Permission.EDIT_MEMBERS)
async def update_payment(
    request: Request,
    payment_id: str,
    body: UpdatePaymentRequest,
    background_tasks: BackgroundTasks,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    payment = await PaymentService(store).update(
        payment_id, drop_none(body.model_dump(exclude_unset=True))
    )
    background_tasks.add_task(sync.sync_record_quietly, PAYMENTS, payment_id)
    return success_response(data=payment, message="Payment updated")


@payments_router.delete("/{payment_id}")
@require_permission(Permission.DELETE_MEMBERS)
async def delete_payment(request: Request, payment_id: str, store: EntityStore = Depends(get_store)):
    result = await PaymentService(store).delete(payment_id)
    return success_response(data=result, message="Payment deleted")
