from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from gymdesk.config import get_store, settings
from gymdesk.monday.sync import MondaySyncManager, get_sync_manager
from gymdesk.rbac import Permission
from gymdesk.rbac.decorators import require_permission
from gymdesk.store import EntityStore
from gymdesk.utils import error_response, success_response
from .service import (
    MondayWebhookService,
    PaymentWebhookService,
    WebhookLog,
    WebhookOutcome,
    parse_body,
)

webhooks_router = APIRouter()
webhook_logs_router = APIRouter()

PAYMENT_SIGNATURE_HEADERS = ("x-webhook-signature", "x-signature")


def _render(outcome: WebhookOutcome) -> JSONResponse:
    if outcome.ok:
        return success_response(data=outcome.data, message=outcome.message, code=outcome.code)
    return error_response(outcome.message, code=outcome.code, details=outcome.data)


@webhooks_router.post("/monday")
async def monday_webhook(
    request: Request,
    store: EntityStore = Depends(get_store),
    sync: MondaySyncManager = Depends(get_sync_manager),
):
    """Board change notifications. A ``challenge`` payload is echoed back untouched."""
    raw_body = await request.body()
    payload = parse_body(raw_body)
    if isinstance(payload, dict) and "challenge" in payload:
        return JSONResponse(content={"challenge": payload["challenge"]})

    svc = MondayWebhookService(store, sync, secret=settings.monday_webhook_secret)
    outcome = await svc.ingest(raw_body, payload, request.headers.get("authorization"))
    return _render(outcome)


@webhooks_router.post("/payments")
async def payment_webhook(request: Request, store: EntityStore = Depends(get_store)):
    """Signed payment status notifications from the gateway."""
    raw_body = await request.body()
    signature = next(
        (request.headers[h] for h in PAYMENT_SIGNATURE_HEADERS if h in request.headers), None
    )
    svc = PaymentWebhookService(store, secret=settings.payment_webhook_secret)
    return _render(await svc.ingest(raw_body, signature))


@webhook_logs_router.get("")
@require_permission(Permission.VIEW_AUDIT_LOGS)
async def list_webhook_logs(
    request: Request,
    source: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    store: EntityStore = Depends(get_store),
):
    items, pagination = await WebhookLog(store).list(source=source, status=status, page=page, limit=limit)
    return success_response(data=items, pagination=pagination)
