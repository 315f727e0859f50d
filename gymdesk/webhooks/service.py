"""
Inbound webhook processing.

Every event that reaches ``ingest`` produces exactly one ``webhook_logs``
entry with outcome ``processed``, ``rejected`` or ``error``.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from gymdesk.store import PAYMENTS, WEBHOOK_LOGS, EntityStore
from gymdesk.utils import Logger, as_datetime, build_pagination, page_to_offset
from gymdesk.utils.exceptions import AppError, NotFoundError
from .signature import verify_monday_signature, verify_signature

logger = Logger("webhooks.service")

PROCESSED = "processed"
REJECTED = "rejected"
ERROR = "error"

PAYMENTS_SOURCE = "payments"
MONDAY_SOURCE = "monday"

# Accepted payload keys per logical field, first match wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "payment_reference": (
        "payment_reference",
        "paymentReference",
        "reference",
        "order_id",
        "orderId",
    ),
    "external_payment_id": (
        "fiserv_payment_id",
        "payment_id",
        "paymentId",
        "ipgTransactionId",
        "transaction_id",
        "transactionId",
    ),
    "status": (
        "status",
        "payment_status",
        "paymentStatus",
        "transactionStatus",
    ),
    "paid_date": (
        "paid_date",
        "paidDate",
        "paid_at",
    ),
    "external_reference": (
        "external_reference",
        "externalReference",
        "transaction_id",
        "transactionId",
    ),
}

STATUS_SYNONYMS: dict[str, str] = {
    "paid": "paid",
    "approved": "paid",
    "completed": "paid",
    "succeeded": "paid",
    "success": "paid",
    "failed": "failed",
    "declined": "failed",
    "rejected": "failed",
    "pending": "pending",
    "processing": "pending",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "voided": "cancelled",
    "refunded": "refunded",
}


@dataclass
class PaymentStatusUpdate:
    payment_reference: str
    external_payment_id: str
    status: str
    paid_date: Optional[datetime] = None
    external_reference: Optional[str] = None
    raw: dict = field(default_factory=dict)


@dataclass
class WebhookOutcome:
    status: str
    code: int
    message: str
    data: Optional[dict] = None

    @property
    def ok(self) -> bool:
        return self.status == PROCESSED


def _resolve(payload: dict, aliases: tuple[str, ...]) -> Any:
    sources = [payload]
    if isinstance(payload.get("data"), dict):
        sources.append(payload["data"])
    for source in sources:
        for name in aliases:
            value = source.get(name)
            if value not in (None, ""):
                return value
    return None


def process_payload(payload: Any) -> Optional[PaymentStatusUpdate]:
    """Normalize a gateway payload; ``None`` when a required field is missing."""
    if not isinstance(payload, dict):
        return None

    reference = _resolve(payload, FIELD_ALIASES["payment_reference"])
    external_id = _resolve(payload, FIELD_ALIASES["external_payment_id"])
    raw_status = _resolve(payload, FIELD_ALIASES["status"])
    if reference is None or external_id is None or raw_status is None:
        return None

    status = STATUS_SYNONYMS.get(str(raw_status).strip().lower())
    if status is None:
        return None

    external_reference = _resolve(payload, FIELD_ALIASES["external_reference"])
    return PaymentStatusUpdate(
        payment_reference=str(reference),
        external_payment_id=str(external_id),
        status=status,
        paid_date=as_datetime(_resolve(payload, FIELD_ALIASES["paid_date"])),
        external_reference=str(external_reference) if external_reference is not None else None,
        raw=payload,
    )


class WebhookLog:
    """Append-only log of inbound webhook events."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def write(
        self,
        source: str,
        status: str,
        received_at: datetime,
        payload: Any = None,
        error: Optional[str] = None,
        event_type: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> None:
        """Write one entry. Storage failures are logged, never raised."""
        try:
            await self.store.create(
                WEBHOOK_LOGS,
                {
                    "source": source,
                    "status": status,
                    "event_type": event_type,
                    "payment_reference": reference,
                    "error": error,
                    "payload": payload,
                    "received_at": received_at,
                },
            )
        except Exception:
            logger.exception(f"Could not write {source} webhook log ({status})")

    async def list(
        self,
        source: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[dict], dict]:
        filters = {k: v for k, v in (("source", source), ("status", status)) if v}
        result = await self.store.list(
            WEBHOOK_LOGS,
            filters=filters,
            limit=limit,
            offset=page_to_offset(page, limit),
        )
        return result.items, build_pagination(page, limit, result.total)


def parse_body(raw_body: bytes) -> Any:
    try:
        return json.loads(raw_body or b"null")
    except ValueError:
        return None


class PaymentWebhookService:
    def __init__(self, store: EntityStore, secret: Optional[str] = None):
        self.store = store
        self.secret = secret
        self.log = WebhookLog(store)

    async def apply_status_update(self, update: PaymentStatusUpdate) -> dict:
        """
        Move a payment to the reported status.

        Replays are no-ops: a payment already in the target status is left
        untouched, and the write itself is conditional on the status so two
        concurrent deliveries cannot both apply.
        """
        payment = await self.store.find_one(PAYMENTS, {"payment_reference": update.payment_reference})
        if not payment:
            raise NotFoundError("Payment not found")

        result = {"payment_id": payment["id"], "status": update.status, "changed": False}
        if payment.get("status") == update.status:
            return result

        now = datetime.now(timezone.utc)
        changes: dict = {
            "status": update.status,
            "external_payment_id": update.external_payment_id,
            "sync_status": "pending",
            "sync_error": None,
        }
        if update.external_reference:
            changes["external_reference"] = update.external_reference
        if update.status == "paid":
            changes["paid_date"] = update.paid_date or now

        updated = await self.store.update(
            PAYMENTS,
            payment["id"],
            changes,
            append={
                "metadata.webhook_events": {
                    "received_at": now,
                    "status": update.status,
                    "external_payment_id": update.external_payment_id,
                    "payload": update.raw,
                }
            },
            unless={"status": update.status},
        )
        result["changed"] = updated is not None
        if updated is not None:
            logger.info(f"Payment {payment['id']} moved to '{update.status}'")
        return result

    async def ingest(self, raw_body: bytes, signature: Optional[str]) -> WebhookOutcome:
        """verify → parse → normalize → apply, then log the outcome once."""
        received_at = datetime.now(timezone.utc)
        payload: Any = None
        reference: Optional[str] = None

        try:
            if not verify_signature(raw_body, signature, self.secret):
                outcome = WebhookOutcome(REJECTED, 401, "Invalid webhook signature")
            else:
                payload = parse_body(raw_body)
                update = process_payload(payload)
                if payload is None:
                    outcome = WebhookOutcome(REJECTED, 400, "Invalid JSON payload")
                elif update is None:
                    outcome = WebhookOutcome(REJECTED, 400, "Missing or unrecognised payment fields")
                else:
                    reference = update.payment_reference
                    data = await self.apply_status_update(update)
                    message = "Webhook processed" if data["changed"] else "Payment already up to date"
                    outcome = WebhookOutcome(PROCESSED, 200, message, data)
        except AppError as exc:
            outcome = WebhookOutcome(ERROR, exc.status_code, exc.message)
        except Exception:
            logger.exception("Payment webhook processing failed")
            outcome = WebhookOutcome(ERROR, 500, "Webhook processing failed")

        if not outcome.ok:
            logger.warning(f"Payment webhook {outcome.status}: {outcome.message}")
        await self.log.write(
            PAYMENTS_SOURCE,
            outcome.status,
            received_at,
            payload=payload,
            error=None if outcome.ok else outcome.message,
            event_type="payment_status",
            reference=reference,
        )
        return outcome


class MondayWebhookService:
    """Board change notifications, applied through the sync manager."""

    def __init__(self, store: EntityStore, sync, secret: Optional[str] = None):
        self.sync = sync
        self.secret = secret
        self.log = WebhookLog(store)

    async def ingest(self, raw_body: bytes, payload: Any, signature: Optional[str]) -> WebhookOutcome:
        received_at = datetime.now(timezone.utc)
        event = payload.get("event") if isinstance(payload, dict) else None
        event_type = event.get("type") if isinstance(event, dict) else None

        try:
            if not verify_monday_signature(raw_body, signature, self.secret):
                outcome = WebhookOutcome(REJECTED, 401, "Invalid webhook signature")
            elif not isinstance(payload, dict):
                outcome = WebhookOutcome(REJECTED, 400, "Invalid JSON payload")
            else:
                result = await self.sync.handle_monday_webhook(payload)
                if result.success:
                    outcome = WebhookOutcome(PROCESSED, 200, "Webhook processed", result.to_dict())
                else:
                    outcome = WebhookOutcome(REJECTED, 200, result.error or "Event skipped", result.to_dict())
        except AppError as exc:
            outcome = WebhookOutcome(ERROR, exc.status_code, exc.message)
        except Exception:
            logger.exception("monday webhook processing failed")
            outcome = WebhookOutcome(ERROR, 500, "Webhook processing failed")

        await self.log.write(
            MONDAY_SOURCE,
            outcome.status,
            received_at,
            payload=payload,
            error=None if outcome.ok else outcome.message,
            event_type=event_type,
        )
        return outcome
