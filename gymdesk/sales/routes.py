from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from gymdesk.config import get_store
from gymdesk.rbac import AccessLevel, Permission
from gymdesk.rbac.decorators import (
    require_access_level,
    require_any_permission,
    require_permission,
)
from gymdesk.store import EntityStore
from gymdesk.utils import drop_none, success_response
from .schemas import CreateSaleRequest, UpdateSaleRequest
from .service import SaleService

sales_router = APIRouter()


@sales_router.post("/")
@require_any_permission(Permission.REGISTER_PRODUCT_SALES, Permission.REGISTER_SERVICE_SALES)
async def register_sale(
    request: Request,
    body: CreateSaleRequest,
    store: EntityStore = Depends(get_store),
):
    """POS checkout: price lines, apply discount, take stock out."""
    sale = await SaleService(store).register_sale(body.model_dump(), request.state.subject)
    return success_response(data=sale, message="Sale completed successfully", code=201)


@sales_router.get("/")
@require_permission(Permission.VIEW_BASIC_METRICS)
async def list_sales(
    request: Request,
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    member_id: Optional[str] = Query(None),
    employee_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: EntityStore = Depends(get_store),
):
    sales, pagination = await SaleService(store).list(
        filters={"status": status, "member_id": member_id, "employee_id": employee_id},
        search=search,
        page=page,
        limit=limit,
    )
    return success_response(data=sales, pagination=pagination)


@sales_router.get("/{sale_id}")
@require_permission(Permission.VIEW_BASIC_METRICS)
async def get_sale(request: Request, sale_id: str, store: EntityStore = Depends(get_store)):
    return success_response(data=await SaleService(store).get(sale_id))


@sales_router.put("/{sale_id}")
@require_access_level(AccessLevel.GERENTE)
async def update_sale(
    request: Request,
    sale_id: str,
    body: UpdateSaleRequest,
    store: EntityStore = Depends(get_store),
):
    """Refund or cancel a sale, or annotate it."""
    sale = await SaleService(store).update(sale_id, drop_none(body.model_dump(exclude_unset=True)))
    return success_response(data=sale, message="Sale updated")


@sales_router.delete("/{sale_id}")
@require_access_level(AccessLevel.GERENTE)
async def delete_sale(request: Request, sale_id: str, store: EntityStore = Depends(get_store)):
    result = await SaleService(store).delete(sale_id)
    return success_response(data=result, message="Sale deleted")
