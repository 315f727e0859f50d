"""
SQL backend: SQLAlchemy Core, one table per entity.

Frequently filtered fields are promoted to indexed columns; everything else
lives in the JSON ``attributes`` column. Statements run on a synchronous
engine through Starlette's threadpool so route handlers stay async.
"""

import json
import threading
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from starlette.concurrency import run_in_threadpool

from gymdesk.utils import Logger
from .base import ENTITIES, EntityStore, Page, check_entity, is_multi, stamp_new, utcnow

logger = Logger("store.sql")

metadata = MetaData()

PROMOTED_COLUMNS = (
    "status",
    "sync_status",
    "monday_item_id",
    "member_id",
    "contract_id",
    "employee_id",
    "email",
    "payment_reference",
    "category",
)

_DATETIME_COLUMNS = ("created_at", "updated_at", "deleted_at")


def _entity_table(name: str) -> Table:
    return Table(
        name,
        metadata,
        Column("id", String(32), primary_key=True),
        Column("status", String(40), index=True),
        Column("sync_status", String(20), index=True),
        Column("monday_item_id", String(64), index=True),
        Column("member_id", String(64), index=True),
        Column("contract_id", String(64), index=True),
        Column("employee_id", String(64), index=True),
        Column("email", String(255), index=True),
        Column("payment_reference", String(128), index=True),
        Column("category", String(100), index=True),
        Column("is_deleted", Boolean, nullable=False, default=False, index=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
        Column("deleted_at", DateTime(timezone=True)),
        Column("attributes", JSON, nullable=False, default=dict),
    )


TABLES: dict[str, Table] = {name: _entity_table(name) for name in ENTITIES}


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _json_dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _get_path(record: dict, path: str) -> Any:
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _set_path(record: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    current = record
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, dict):
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value


def _split(record: dict) -> dict:
    """Split a record into column values + the JSON attributes blob."""
    row = {"attributes": {}}
    for key, value in record.items():
        if key in PROMOTED_COLUMNS or key in _DATETIME_COLUMNS or key in ("id", "is_deleted"):
            row[key] = value
        else:
            row["attributes"][key] = value
    # JSON round-trip so stored attributes never hold live objects
    row["attributes"] = json.loads(_json_dumps(row["attributes"]))
    return row


def _to_record(row) -> Optional[dict]:
    if row is None:
        return None
    record = dict(row["attributes"] or {})
    for key in PROMOTED_COLUMNS:
        if row[key] is not None:
            record[key] = row[key]
    for key in _DATETIME_COLUMNS:
        if row[key] is not None:
            record[key] = row[key]
    record["id"] = row["id"]
    record["is_deleted"] = bool(row["is_deleted"])
    return record


class SqlEntityStore(EntityStore):
    """Relational store for deployments without MongoDB."""

    backend = "sql"

    def __init__(self, url: str, echo: bool = False, engine: Engine | None = None):
        self._url = url
        self._echo = echo
        self._engine = engine
        # Serializes read-modify-write updates within this process
        self._write_lock = threading.Lock()

    # ── Lifecycle ────────────────────────────────────────────────
    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        kwargs: dict[str, Any] = {"echo": self._echo, "json_serializer": _json_dumps}
        if self._url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self._url or self._url in ("sqlite://", "sqlite+pysqlite://"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(pool_size=10, max_overflow=20, pool_recycle=1800, pool_pre_ping=True)
        return create_engine(self._url, **kwargs)

    async def connect(self) -> None:
        await run_in_threadpool(metadata.create_all, self.engine)
        logger.info(f"SQL store ready [{self.engine.url.render_as_string(hide_password=True)}]")

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("SQL engine disposed")

    async def ping(self) -> bool:
        def _ping() -> bool:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True

        try:
            return await run_in_threadpool(_ping)
        except Exception as exc:
            logger.warning(f"SQL ping failed: {exc}")
            return False

    # ── Helpers ──────────────────────────────────────────────────
    @staticmethod
    def table(entity: str) -> Table:
        return TABLES[check_entity(entity)]

    @staticmethod
    def _column(table: Table, field: str):
        if field in table.c:
            return table.c[field]
        return table.c.attributes[field].as_string()

    def _where(self, table: Table, filters: Optional[dict]) -> list:
        clauses = [table.c.is_deleted.is_(False)]
        for key, value in (filters or {}).items():
            column = self._column(table, key)
            if is_multi(value):
                values = [v if key in table.c else str(v) for v in value]
                clauses.append(column.in_(values))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == (value if key in table.c else str(value)))
        return clauses

    # ── CRUD ─────────────────────────────────────────────────────
    async def create(self, entity: str, data: dict) -> dict:
        table = self.table(entity)
        doc = stamp_new({k: v for k, v in data.items() if k != "id"})
        doc["id"] = uuid.uuid4().hex
        row = _split(doc)

        def _insert() -> dict:
            with self.engine.begin() as conn:
                conn.execute(table.insert().values(**row))
                result = conn.execute(select(table).where(table.c.id == row["id"]))
                return _to_record(result.mappings().first())

        return await run_in_threadpool(_insert)

    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        table = self.table(entity)

        def _get() -> Optional[dict]:
            with self.engine.connect() as conn:
                result = conn.execute(
                    select(table).where(table.c.id == record_id, table.c.is_deleted.is_(False))
                )
                return _to_record(result.mappings().first())

        return await run_in_threadpool(_get)

    async def find_one(self, entity: str, filters: dict) -> Optional[dict]:
        table = self.table(entity)

        def _find() -> Optional[dict]:
            with self.engine.connect() as conn:
                result = conn.execute(
                    select(table).where(*self._where(table, filters)).limit(1)
                )
                return _to_record(result.mappings().first())

        return await run_in_threadpool(_find)

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
    ) -> Page:
        table = self.table(entity)
        clauses = self._where(table, filters)
        fields = list(search_fields)
        if search and fields:
            pattern = f"%{search.strip()}%"
            clauses.append(or_(*[self._column(table, f).ilike(pattern) for f in fields]))

        order_column = self._column(table, sort)
        order = [order_column.desc(), table.c.id.desc()] if descending else [
            order_column.asc(), table.c.id.asc()
        ]

        def _list() -> Page:
            with self.engine.connect() as conn:
                total = conn.execute(
                    select(func.count()).select_from(table).where(*clauses)
                ).scalar_one()
                rows = conn.execute(
                    select(table).where(*clauses).order_by(*order).offset(offset).limit(limit)
                ).mappings().all()
            return Page(items=[_to_record(r) for r in rows], total=total)

        return await run_in_threadpool(_list)

    async def update(
        self,
        entity: str,
        record_id: str,
        changes: dict,
        append: Optional[dict] = None,
        unless: Optional[dict] = None,
    ) -> Optional[dict]:
        table = self.table(entity)

        def _update() -> Optional[dict]:
            with self._write_lock, self.engine.begin() as conn:
                row = conn.execute(
                    select(table)
                    .where(table.c.id == record_id, table.c.is_deleted.is_(False))
                    .with_for_update()
                ).mappings().first()
                if row is None:
                    return None

                current = _to_record(row)
                for key, value in (unless or {}).items():
                    if _get_path(current, key) == value:
                        return None

                for key, value in changes.items():
                    if key != "id":
                        _set_path(current, key, value)
                for key, value in (append or {}).items():
                    existing = _get_path(current, key)
                    items = list(existing) if isinstance(existing, list) else []
                    items.append(value)
                    _set_path(current, key, items)
                current["updated_at"] = utcnow()

                values = _split(current)
                values.pop("id", None)
                conn.execute(table.update().where(table.c.id == record_id).values(**values))
                result = conn.execute(select(table).where(table.c.id == record_id))
                return _to_record(result.mappings().first())

        return await run_in_threadpool(_update)

    async def delete(self, entity: str, record_id: str) -> bool:
        table = self.table(entity)

        def _delete() -> bool:
            with self.engine.begin() as conn:
                result = conn.execute(
                    table.update()
                    .where(table.c.id == record_id, table.c.is_deleted.is_(False))
                    .values(is_deleted=True, deleted_at=utcnow())
                )
                return result.rowcount > 0

        return await run_in_threadpool(_delete)

    async def count(self, entity: str, filters: Optional[dict] = None) -> int:
        table = self.table(entity)

        def _count() -> int:
            with self.engine.connect() as conn:
                return conn.execute(
                    select(func.count()).select_from(table).where(*self._where(table, filters))
                ).scalar_one()

        return await run_in_threadpool(_count)
