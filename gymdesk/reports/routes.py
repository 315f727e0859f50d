"""
Reports Routes: summaries for the front desk and management.

Endpoints:
    GET  /stats      Record totals and active counts (revenue with view_total_revenue)
    GET  /expiring   Active contracts ending within ``days``
    GET  /overdue    Pending/failed payments past their due date
"""

from fastapi import APIRouter, Depends, Query, Request

from gymdesk.config import get_store
from gymdesk.rbac import Permission
from gymdesk.rbac.decorators import require_permission
from gymdesk.store import EntityStore
from gymdesk.utils import success_response
from .service import ReportsService

reports_router = APIRouter()


@reports_router.get("/stats")
@require_permission(Permission.VIEW_BASIC_METRICS)
async def stats(request: Request, store: EntityStore = Depends(get_store)):
    subject = request.state.subject
    data = await ReportsService(store).get_stats(
        include_revenue=subject.has(Permission.VIEW_TOTAL_REVENUE)
    )
    return success_response(data=data)


@reports_router.get("/expiring")
@require_permission(Permission.VIEW_MEMBERS)
async def expiring_contracts(
    request: Request,
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(100, ge=1, le=500),
    store: EntityStore = Depends(get_store),
):
    """Contracts up for renewal, most urgent first."""
    return success_response(data=await ReportsService(store).get_expiring_contracts(days, limit))


@reports_router.get("/overdue")
@require_permission(Permission.VIEW_FINANCIAL_METRICS)
async def overdue_payments(
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    store: EntityStore = Depends(get_store),
):
    """Unpaid charges past due, longest overdue first."""
    return success_response(data=await ReportsService(store).get_overdue_payments(limit))
