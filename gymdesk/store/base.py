"""
Storage abstraction shared by the MongoDB and SQL backends.

Records are plain dicts with a string ``id``. Soft-deleted records
(``is_deleted=True``) are invisible to every read.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional


# ── Entity names ─────────────────────────────────────────────────
MEMBERS = "members"
EMPLOYEES = "employees"
CONTRACTS = "contracts"
PAYMENTS = "payments"
PRODUCTS = "products"
SALES = "sales"
SCHEDULE = "schedule"
EMPLOYEE_CREDENTIALS = "employee_credentials"
WEBHOOK_LOGS = "webhook_logs"

ENTITIES: tuple[str, ...] = (
    MEMBERS,
    EMPLOYEES,
    CONTRACTS,
    PAYMENTS,
    PRODUCTS,
    SALES,
    SCHEDULE,
    EMPLOYEE_CREDENTIALS,
    WEBHOOK_LOGS,
)

# Records of these entities carry sync metadata for the board integration
SYNC_ENTITIES: tuple[str, ...] = (MEMBERS, EMPLOYEES, CONTRACTS, PAYMENTS)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Page:
    items: list[dict] = field(default_factory=list)
    total: int = 0


class EntityStore(ABC):
    """Per-entity persistence: CRUD, filtered listing and pagination."""

    backend: str = ""

    async def connect(self) -> None:
        return None

    def close(self) -> None:
        return None

    @abstractmethod
    async def ping(self) -> bool: ...

    @abstractmethod
    async def create(self, entity: str, data: dict) -> dict: ...

    @abstractmethod
    async def get(self, entity: str, record_id: str) -> Optional[dict]: ...

    @abstractmethod
    async def find_one(self, entity: str, filters: dict) -> Optional[dict]: ...

    @abstractmethod
    async def list(
        self,
        entity: str,
        filters: Optional[dict] = None,
        search: Optional[str] = None,
        search_fields: Iterable[str] = (),
        limit: int = 50,
        offset: int = 0,
        sort: str = "created_at",
        descending: bool = True,
    ) -> Page: ...

    @abstractmethod
    async def update(
        self,
        entity: str,
        record_id: str,
        changes: dict,
        append: Optional[dict] = None,
        unless: Optional[dict] = None,
    ) -> Optional[dict]:
        """
        Merge ``changes`` into the record.

        ``append`` maps list fields to a value pushed onto them. ``unless``
        maps fields to values; when any current value equals the given one the
        update is skipped and ``None`` is returned. The guard and the write
        happen atomically. ``None`` is also returned for unknown ids.
        """

    @abstractmethod
    async def delete(self, entity: str, record_id: str) -> bool: ...

    @abstractmethod
    async def count(self, entity: str, filters: Optional[dict] = None) -> int: ...

    async def list_all(
        self, entity: str, filters: Optional[dict] = None, batch_size: int = 200
    ) -> List[dict]:
        """Collect every matching record, oldest first, page by page."""
        records: List[dict] = []
        offset = 0
        while True:
            page = await self.list(
                entity, filters=filters, limit=batch_size, offset=offset,
                descending=False,
            )
            records.extend(page.items)
            offset += len(page.items)
            if not page.items or offset >= page.total:
                return records


def check_entity(entity: str) -> str:
    """Reject entity names that no backend knows about."""
    if entity not in ENTITIES:
        raise ValueError(f"Unknown entity '{entity}'")
    return entity


def stamp_new(data: dict) -> dict:
    now = utcnow()
    doc = {**data}
    doc.setdefault("is_deleted", False)
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    return doc


def is_multi(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))
