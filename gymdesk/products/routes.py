from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from gymdesk.config import get_store
from gymdesk.rbac import Permission
from gymdesk.rbac.decorators import require_permission
from gymdesk.store import EntityStore
from gymdesk.utils import drop_none, success_response
from .schemas import CreateProductRequest, StockAdjustmentRequest, UpdateProductRequest
from .service import ProductService

products_router = APIRouter()


@products_router.post("/")
@require_permission(Permission.MANAGE_INVENTORY)
async def create_product(
    request: Request,
    body: CreateProductRequest,
    store: EntityStore = Depends(get_store),
):
    product = await ProductService(store).create(
        body.model_dump(), created_by=request.state.subject.employee_id
    )
    return success_response(data=product, message="Product created", code=201)


@products_router.get("/")
@require_permission(Permission.VIEW_INVENTORY)
async def list_products(
    request: Request,
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: EntityStore = Depends(get_store),
):
    products, pagination = await ProductService(store).list(
        filters={"category": category, "status": status},
        search=search,
        page=page,
        limit=limit,
        sort="name",
        descending=False,
    )
    return success_response(data=products, pagination=pagination)


@products_router.get("/{product_id}")
@require_permission(Permission.VIEW_INVENTORY)
async def get_product(request: Request, product_id: str, store: EntityStore = Depends(get_store)):
    return success_response(data=await ProductService(store).get(product_id))


@products_router.put("/{product_id}")
@require_permission(Permission.MANAGE_INVENTORY)
async def update_product(
    request: Request,
    product_id: str,
    body: UpdateProductRequest,
    store: EntityStore = Depends(get_store),
):
    product = await ProductService(store).update(
        product_id, drop_none(body.model_dump(exclude_unset=True))
    )
    return success_response(data=product, message="Product updated")


@products_router.post("/{product_id}/stock")
@require_permission(Permission.MANAGE_INVENTORY)
async def adjust_stock(
    request: Request,
    product_id: str,
    body: StockAdjustmentRequest,
    store: EntityStore = Depends(get_store),
):
    """Manual stock correction (deliveries, breakage, counts)."""
    product = await ProductService(store).adjust_stock(product_id, body.delta, body.reason)
    return success_response(data=product, message="Stock adjusted")


@products_router.delete("/{product_id}")
@require_permission(Permission.MANAGE_INVENTORY)
async def delete_product(request: Request, product_id: str, store: EntityStore = Depends(get_store)):
    result = await ProductService(store).delete(product_id)
    return success_response(data=result, message="Product deleted")
