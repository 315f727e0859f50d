"""
Shared CRUD service for entity modules.

Subclasses set ``entity``/``label``/``search_fields`` and override the
``prepare_*`` hooks for per-entity validation and defaults.
"""

from typing import Optional

from gymdesk.utils import Logger, build_pagination, normalize_dates, page_to_offset
from gymdesk.utils.exceptions import NotFoundError
from .base import SYNC_ENTITIES, EntityStore

logger = Logger("store.service")


class RecordService:
    entity: str = ""
    label: str = "Record"
    search_fields: tuple[str, ...] = ()

    def __init__(self, store: EntityStore):
        self.store = store

    @property
    def tracks_sync(self) -> bool:
        return self.entity in SYNC_ENTITIES

    # ── Hooks ────────────────────────────────────────────────────
    async def prepare_create(self, data: dict) -> dict:
        return data

    async def prepare_update(self, changes: dict, current: dict) -> dict:
        return changes

    def present(self, record: dict, subject=None) -> dict:
        return record

    # ── CRUD ─────────────────────────────────────────────────────
    async def create(self, data: dict, created_by: Optional[str] = None) -> dict:
        doc = await self.prepare_create(normalize_dates(dict(data)))
        if created_by:
            doc["created_by"] = created_by
        if self.tracks_sync:
            doc.update({"sync_status": "pending", "sync_error": None})
        record = await self.store.create(self.entity, doc)
        logger.info(f"{self.label} {record['id']} created")
        return record

    async def get(self, record_id: str) -> dict:
        record = await self.store.get(self.entity, record_id)
        if not record:
            raise NotFoundError(f"{self.label} not found")
        return record

    async def list(
        self,
        filters: Optional[dict] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort: str = "created_at",
        descending: bool = True,
    ) -> tuple[list[dict], dict]:
        result = await self.store.list(
            self.entity,
            filters={k: v for k, v in (filters or {}).items() if v is not None},
            search=search or None,
            search_fields=self.search_fields,
            limit=limit,
            offset=page_to_offset(page, limit),
            sort=sort,
            descending=descending,
        )
        return result.items, build_pagination(page, limit, result.total)

    async def update(self, record_id: str, changes: dict) -> dict:
        """Merge ``changes``; synced entities go back to ``pending``."""
        current = await self.get(record_id)
        changes = await self.prepare_update(normalize_dates(dict(changes)), current)
        if not changes:
            return current
        if self.tracks_sync:
            changes.update({"sync_status": "pending", "sync_error": None})
        record = await self.store.update(self.entity, record_id, changes)
        if record is None:
            raise NotFoundError(f"{self.label} not found")
        return record

    async def delete(self, record_id: str) -> dict:
        if not await self.store.delete(self.entity, record_id):
            raise NotFoundError(f"{self.label} not found")
        logger.info(f"{self.label} {record_id} deleted")
        return {"id": record_id, "deleted": True}
