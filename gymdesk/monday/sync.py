"""
Bidirectional sync between the entity store and monday.com boards.

Push sends local records whose ``sync_status`` is ``pending`` or ``error``
(failed pushes stay eligible for the next pass). Pull pages through a board
and upserts by ``monday_item_id``, writing only the columns that carry a
value so local-only fields survive.

Bulk runs are serialized by a process-wide ``SyncGuard``: a second run
fails fast with ``SyncInProgressError`` and is never queued.
"""

import asyncio
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from gymdesk.config import Settings, get_store, settings
from gymdesk.store import CONTRACTS, EMPLOYEES, MEMBERS, PAYMENTS, SYNC_ENTITIES, EntityStore
from gymdesk.utils import Logger
from gymdesk.utils.exceptions import (
    RemoteServiceUnavailable,
    SyncInProgressError,
    ValidationError,
)
from .client import BoardClient, MondayClient
from .columns import from_board_item, item_name, link_mappings, required_defaults, to_column_values

logger = Logger("monday.sync")

SYNCED = "synced"
PENDING = "pending"
ERROR = "error"

# Records in these states are pushed by a bulk pass
PUSHABLE_STATUSES = (PENDING, ERROR)

UPSERT_EVENTS = frozenset(
    {
        "create_pulse",
        "create_item",
        "update_column_value",
        "change_column_value",
        "change_specific_column_value",
        "update_name",
        "change_name",
    }
)
REMOVE_EVENTS = frozenset(
    {"delete_pulse", "delete_item", "item_deleted", "archive_pulse", "archive_item", "item_archived"}
)

REMOVED_STATUS = {PAYMENTS: "cancelled"}


class SyncAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SKIPPED = "skipped"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _message(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


@dataclass
class SyncResult:
    success: bool
    entity: str
    action: SyncAction
    entity_id: Optional[str] = None
    monday_item_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "entity": self.entity,
            "action": self.action.value,
            "entity_id": self.entity_id,
            "monday_item_id": self.monday_item_id,
            "error": self.error,
        }


@dataclass
class SyncReport:
    entity: str
    direction: str
    results: list[SyncResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=_now)
    finished_at: Optional[datetime] = None
    # Set when the whole leg failed (e.g. the board could not be listed)
    error: Optional[str] = None
    # No board mapped for the entity; its records were left untouched
    skipped: bool = False

    @property
    def total_processed(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def duration_ms(self) -> int:
        end = self.finished_at or _now()
        return int((end - self.started_at).total_seconds() * 1000)

    def finish(self) -> "SyncReport":
        self.finished_at = _now()
        return self

    @classmethod
    def combine(cls, push: "SyncReport", pull: "SyncReport") -> "SyncReport":
        errors = [e for e in (push.error, pull.error) if e]
        return cls(
            entity=push.entity,
            direction="bidirectional",
            results=[*push.results, *pull.results],
            started_at=push.started_at,
            finished_at=pull.finished_at,
            error="; ".join(errors) or None,
        )

    def to_dict(self) -> dict:
        return {
            "entity": self.entity,
            "direction": self.direction,
            "total_processed": self.total_processed,
            "successful": self.successful,
            "failed": self.failed,
            "error": self.error,
            "skipped": self.skipped,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "duration_ms": self.duration_ms,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class FullSyncReport:
    reports: dict[str, SyncReport] = field(default_factory=dict)
    started_at: datetime = field(default_factory=_now)
    finished_at: Optional[datetime] = None

    @property
    def total_duration_ms(self) -> int:
        end = self.finished_at or _now()
        return int((end - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict:
        data = {entity: report.to_dict() for entity, report in self.reports.items()}
        data["successful"] = sum(r.successful for r in self.reports.values())
        data["failed"] = sum(r.failed for r in self.reports.values())
        data["total_duration_ms"] = self.total_duration_ms
        return data


class SyncGuard:
    """Process-wide "a bulk sync is running" flag with atomic check-and-set."""

    def __init__(self):
        self._lock = threading.Lock()
        self._in_progress = False
        self._current_entity: Optional[str] = None

    def try_acquire(self, entity: Optional[str] = None) -> bool:
        with self._lock:
            if self._in_progress:
                return False
            self._in_progress = True
            self._current_entity = entity
            return True

    def release(self) -> None:
        with self._lock:
            self._in_progress = False
            self._current_entity = None

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def current_entity(self) -> Optional[str]:
        return self._current_entity

    @current_entity.setter
    def current_entity(self, entity: Optional[str]) -> None:
        with self._lock:
            if self._in_progress:
                self._current_entity = entity

    @contextmanager
    def hold(self, entity: Optional[str] = None):
        if not self.try_acquire(entity):
            raise SyncInProgressError()
        try:
            yield self
        finally:
            self.release()


# ── Module-level singleton ──────────────────────────────────────
sync_guard = SyncGuard()


def check_sync_entity(entity: str) -> str:
    if entity not in SYNC_ENTITIES:
        raise ValidationError(
            f"Unknown sync entity '{entity}'",
            details={"allowed": list(SYNC_ENTITIES)},
        )
    return entity


class MondaySyncManager:
    def __init__(
        self,
        store: EntityStore,
        client: BoardClient,
        board_ids: dict[str, str],
        request_delay_ms: int = 0,
        enabled: bool = True,
        guard: SyncGuard = sync_guard,
    ):
        self.store = store
        self.client = client
        self.board_ids = {entity: str(board) for entity, board in board_ids.items() if board}
        self.request_delay = request_delay_ms / 1000
        self.enabled = enabled
        self.guard = guard

    @classmethod
    def from_settings(
        cls, store: EntityStore, client: BoardClient, config: Settings = settings
    ) -> "MondaySyncManager":
        return cls(
            store=store,
            client=client,
            board_ids=config.monday_board_ids,
            request_delay_ms=config.monday_request_delay_ms,
            enabled=bool(config.monday_api_token),
        )

    # ── Configuration ────────────────────────────────────────────
    def is_configured(self) -> bool:
        return self.enabled

    def board_id(self, entity: str) -> str:
        board = self.board_ids.get(entity)
        if not board:
            raise RemoteServiceUnavailable(f"monday board for '{entity}' is not configured")
        return board

    def entity_for_board(self, board_id) -> Optional[str]:
        if board_id is None:
            return None
        for entity, board in self.board_ids.items():
            if board == str(board_id):
                return entity
        return None

    def is_sync_in_progress(self) -> bool:
        return self.guard.in_progress

    def get_current_sync_entity(self) -> Optional[str]:
        return self.guard.current_entity

    async def _delay(self) -> None:
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

    async def _mark(
        self,
        entity: str,
        record_id: str,
        status: str,
        error: Optional[str] = None,
        monday_item_id: Optional[str] = None,
    ) -> None:
        changes: dict = {"sync_status": status, "sync_error": error}
        if status == SYNCED:
            changes["last_synced_at"] = _now()
        if monday_item_id:
            changes["monday_item_id"] = monday_item_id
        await self.store.update(entity, record_id, changes)

    # ── Links between boards ─────────────────────────────────────
    async def _linked_item_ids(self, entity: str, record: dict) -> dict:
        linked: dict = {}
        for mapping in link_mappings(entity):
            local_id = record.get(mapping.field)
            if not local_id:
                continue
            target = await self.store.get(mapping.link_entity, str(local_id))
            if target and target.get("monday_item_id"):
                linked[mapping.field] = target["monday_item_id"]
        return linked

    async def _resolve_links(self, entity: str, data: dict) -> dict:
        """Swap linked monday item ids for local ids; unknown links are dropped."""
        for mapping in link_mappings(entity):
            item_id = data.pop(mapping.field, None)
            if not item_id:
                continue
            target = await self.store.find_one(mapping.link_entity, {"monday_item_id": item_id})
            if target:
                data[mapping.field] = target["id"]
        return data

    # ── Single record: local → monday ────────────────────────────
    async def sync_record_to_monday(self, entity: str, record_id: str) -> SyncResult:
        """Push one record. Failures are recorded on the record and returned, not raised."""
        check_sync_entity(entity)
        record = await self.store.get(entity, record_id)
        if not record:
            return SyncResult(
                success=False,
                entity=entity,
                action=SyncAction.SKIPPED,
                entity_id=record_id,
                error=f"{entity[:-1].capitalize()} not found",
            )

        try:
            board = self.board_id(entity)
            columns = to_column_values(entity, record, await self._linked_item_ids(entity, record))
            name = item_name(entity, record)
            item_id = record.get("monday_item_id")

            if item_id:
                try:
                    await self.client.update_item(board, item_id, columns)
                    action = SyncAction.UPDATED
                except Exception as exc:
                    logger.warning(
                        f"Update of monday item {item_id} failed ({_message(exc)}), creating a new item"
                    )
                    item_id = await self.client.create_item(board, name, columns)
                    action = SyncAction.CREATED
            else:
                item_id = await self.client.create_item(board, name, columns)
                action = SyncAction.CREATED

            await self._mark(entity, record_id, SYNCED, monday_item_id=item_id)
            return SyncResult(
                success=True,
                entity=entity,
                action=action,
                entity_id=record_id,
                monday_item_id=item_id,
            )
        except Exception as exc:
            message = _message(exc)
            logger.error(f"Push of {entity}/{record_id} failed: {message}")
            await self._mark(entity, record_id, ERROR, error=message)
            return SyncResult(
                success=False,
                entity=entity,
                action=SyncAction.SKIPPED,
                entity_id=record_id,
                error=message,
            )

    async def sync_member_to_monday(self, member_id: str) -> SyncResult:
        return await self.sync_record_to_monday(MEMBERS, member_id)

    async def sync_employee_to_monday(self, employee_id: str) -> SyncResult:
        return await self.sync_record_to_monday(EMPLOYEES, employee_id)

    async def sync_contract_to_monday(self, contract_id: str) -> SyncResult:
        return await self.sync_record_to_monday(CONTRACTS, contract_id)

    async def sync_payment_to_monday(self, payment_id: str) -> SyncResult:
        return await self.sync_record_to_monday(PAYMENTS, payment_id)

    async def sync_record_quietly(self, entity: str, record_id: str) -> Optional[SyncResult]:
        """Best-effort push after a local write. Logs failures and never raises."""
        if not self.is_configured() or entity not in self.board_ids:
            logger.debug(f"monday sync skipped for {entity}/{record_id}: not configured")
            return None
        try:
            result = await self.sync_record_to_monday(entity, record_id)
        except Exception:
            logger.exception(f"Background sync of {entity}/{record_id} failed")
            return None
        if not result.success:
            logger.warning(f"Background sync of {entity}/{record_id} failed: {result.error}")
        return result

    # ── Single record: monday → local ────────────────────────────
    async def sync_record_from_monday(
        self, entity: str, monday_item_id: str, item: Optional[dict] = None
    ) -> SyncResult:
        """Upsert the local record matching a board item."""
        check_sync_entity(entity)
        monday_item_id = str(monday_item_id)
        try:
            if item is None:
                item = await self.client.get_item(monday_item_id)
            if not item:
                return SyncResult(
                    success=False,
                    entity=entity,
                    action=SyncAction.SKIPPED,
                    monday_item_id=monday_item_id,
                    error="monday item not found",
                )

            data = await self._resolve_links(entity, from_board_item(entity, item))
            sync_fields = {"sync_status": SYNCED, "sync_error": None, "last_synced_at": _now()}

            existing = await self.store.find_one(entity, {"monday_item_id": monday_item_id})
            if existing:
                changes = {k: v for k, v in data.items() if k != "monday_item_id"}
                await self.store.update(entity, existing["id"], {**changes, **sync_fields})
                entity_id, action = existing["id"], SyncAction.UPDATED
            else:
                record = {**required_defaults(entity, monday_item_id, data), **data, **sync_fields}
                created = await self.store.create(entity, record)
                entity_id, action = created["id"], SyncAction.CREATED

            return SyncResult(
                success=True,
                entity=entity,
                action=action,
                entity_id=entity_id,
                monday_item_id=monday_item_id,
            )
        except Exception as exc:
            message = _message(exc)
            logger.error(f"Pull of monday item {monday_item_id} into {entity} failed: {message}")
            return SyncResult(
                success=False,
                entity=entity,
                action=SyncAction.SKIPPED,
                monday_item_id=monday_item_id,
                error=message,
            )

    # ── Batches (unguarded) ──────────────────────────────────────
    async def _push(self, entity: str, ids: Optional[Iterable[str]] = None) -> SyncReport:
        report = SyncReport(entity=entity, direction="to_monday")
        self.board_id(entity)
        if ids is not None:
            record_ids = [str(i) for i in ids]
        else:
            pending = await self.store.list_all(entity, {"sync_status": list(PUSHABLE_STATUSES)})
            record_ids = [r["id"] for r in pending]

        for record_id in record_ids:
            try:
                result = await self.sync_record_to_monday(entity, record_id)
            except Exception as exc:
                result = SyncResult(
                    success=False,
                    entity=entity,
                    action=SyncAction.SKIPPED,
                    entity_id=record_id,
                    error=_message(exc),
                )
            report.results.append(result)
            await self._delay()

        logger.info(
            f"Pushed {entity}: {report.successful} ok, {report.failed} failed"
        )
        return report.finish()

    async def _pull(self, entity: str) -> SyncReport:
        report = SyncReport(entity=entity, direction="from_monday")
        board = self.board_id(entity)
        cursor: Optional[str] = None
        while True:
            page = await self.client.list_items(board, cursor)
            for item in page.items:
                report.results.append(
                    await self.sync_record_from_monday(entity, item["id"], item=item)
                )
                await self._delay()
            if not page.cursor or not page.items:
                break
            cursor = page.cursor

        logger.info(
            f"Pulled {entity}: {report.successful} ok, {report.failed} failed"
        )
        return report.finish()

    async def _run_leg(self, leg, entity: str, direction: str) -> SyncReport:
        """Run one push/pull leg, turning a leg-level failure into its report."""
        self.guard.current_entity = entity
        try:
            return await leg(entity)
        except Exception as exc:
            logger.error(f"{direction} leg for {entity} failed: {_message(exc)}")
            return SyncReport(entity=entity, direction=direction, error=_message(exc)).finish()

    # ── Guarded operations ───────────────────────────────────────
    async def sync_entity_to_monday(
        self, entity: str, ids: Optional[Iterable[str]] = None
    ) -> SyncReport:
        check_sync_entity(entity)
        with self.guard.hold(entity):
            return await self._push(entity, ids)

    async def sync_entity_from_monday(self, entity: str) -> SyncReport:
        check_sync_entity(entity)
        with self.guard.hold(entity):
            return await self._pull(entity)

    async def perform_bidirectional_sync(
        self, entities: Optional[Iterable[str]] = None
    ) -> FullSyncReport:
        """
        Push every pending record, then pull every board, under one guard.

        Entities without a mapped board are reported as skipped and their
        records keep their current ``sync_status``.
        """
        requested = [check_sync_entity(e) for e in (entities or SYNC_ENTITIES)]
        selected = [e for e in requested if e in self.board_ids]
        with self.guard.hold():
            full = FullSyncReport()
            pushes = {e: await self._run_leg(self._push, e, "to_monday") for e in selected}
            pulls = {e: await self._run_leg(self._pull, e, "from_monday") for e in selected}
            for entity in requested:
                if entity in self.board_ids:
                    full.reports[entity] = SyncReport.combine(pushes[entity], pulls[entity])
                else:
                    logger.info(f"Skipping {entity}: no monday board configured")
                    full.reports[entity] = SyncReport(
                        entity=entity, direction="bidirectional", skipped=True
                    ).finish()
            full.finished_at = _now()
            logger.info(f"Bidirectional sync finished in {full.total_duration_ms}ms")
            return full

    async def perform_full_bidirectional_sync(self) -> FullSyncReport:
        return await self.perform_bidirectional_sync(SYNC_ENTITIES)

    # ── Inbound board events ─────────────────────────────────────
    async def handle_monday_webhook(self, payload: dict, entity: Optional[str] = None) -> SyncResult:
        """Apply a board change notification to the matching local record."""
        event = payload.get("event") if isinstance(payload.get("event"), dict) else payload
        event_type = event.get("type")
        item_id = event.get("pulseId") or event.get("itemId")
        item_id = str(item_id) if item_id is not None else None
        entity = entity or self.entity_for_board(event.get("boardId"))

        if entity is None:
            return SyncResult(
                success=False,
                entity="unknown",
                action=SyncAction.SKIPPED,
                monday_item_id=item_id,
                error="Board is not mapped to a sync entity",
            )
        if not item_id:
            return SyncResult(
                success=False,
                entity=entity,
                action=SyncAction.SKIPPED,
                error="Event has no item id",
            )

        if event_type in UPSERT_EVENTS:
            return await self.sync_record_from_monday(entity, item_id)

        if event_type in REMOVE_EVENTS:
            existing = await self.store.find_one(entity, {"monday_item_id": item_id})
            if existing:
                await self.store.update(
                    entity, existing["id"], {"status": REMOVED_STATUS.get(entity, "inactive")}
                )
            return SyncResult(
                success=True,
                entity=entity,
                action=SyncAction.DELETED,
                entity_id=existing["id"] if existing else None,
                monday_item_id=item_id,
            )

        return SyncResult(
            success=False,
            entity=entity,
            action=SyncAction.SKIPPED,
            monday_item_id=item_id,
            error="Unknown event type",
        )

    # ── Status ───────────────────────────────────────────────────
    async def validate_connection(self) -> bool:
        if not self.is_configured():
            return False
        try:
            return bool(await self.client.test_connection())
        except Exception as exc:
            logger.error(f"monday connection validation failed: {_message(exc)}")
            return False

    async def get_sync_stats(self) -> dict:
        stats: dict = {}
        for entity in SYNC_ENTITIES:
            counts = {
                "total": await self.store.count(entity),
                SYNCED: await self.store.count(entity, {"sync_status": SYNCED}),
                PENDING: await self.store.count(entity, {"sync_status": PENDING}),
                ERROR: await self.store.count(entity, {"sync_status": ERROR}),
            }
            counts["needing_sync"] = counts[PENDING] + counts[ERROR]
            stats[entity] = counts
        return stats

    async def get_sync_status(self) -> dict:
        return {
            "in_progress": self.is_sync_in_progress(),
            "current_entity": self.get_current_sync_entity(),
            "configured": self.is_configured(),
            "boards": {entity: entity in self.board_ids for entity in SYNC_ENTITIES},
            "stats": await self.get_sync_stats(),
        }


# ── Wiring ───────────────────────────────────────────────────────
_monday_client: Optional[MondayClient] = None


def get_monday_client() -> MondayClient:
    global _monday_client
    if _monday_client is None:
        _monday_client = MondayClient.from_settings(settings)
    return _monday_client


async def close_monday_client() -> None:
    global _monday_client
    if _monday_client is not None:
        await _monday_client.aclose()
        _monday_client = None


async def get_sync_manager() -> MondaySyncManager:
    """FastAPI dependency: a sync manager bound to the connected store."""
    return MondaySyncManager.from_settings(await get_store(), get_monday_client())
