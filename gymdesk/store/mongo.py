"""MongoDB backend: one collection per entity, accessed through Motor."""

import re
from typing import Iterable, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from gymdesk.utils import Logger
from .base import EntityStore, Page, check_entity, is_multi, stamp_new, utcnow

logger = Logger("store.mongo")


def _to_record(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    record = {k: v for k, v in doc.items() if k != "_id"}
    record["id"] = str(doc["_id"])
    return record


def _object_id(record_id: str) -> Optional[ObjectId]:
    if not record_id or not ObjectId.is_valid(record_id):
        return None
    return ObjectId(record_id)


def _build_filters(filters: Optional[dict]) -> dict:
    query: dict = {"is_deleted": {"$ne": True}}
    for key, value in (filters or {}).items():
        if key == "id":
            if is_multi(value):
                query["_id"] = {"$in": [oid for oid in map(_object_id, value) if oid]}
            else:
                query["_id"] = _object_id(value)
        elif is_multi(value):
            query[key] = {"$in": list(value)}
        else:
            query[key] = value
    return query


class MongoEntityStore(EntityStore):
    """MongoDB connection + entity access."""

    backend = "mongo"

    def __init__(self, uri: Optional[str], database_name: str):
        self._uri = uri
        self._database_name = database_name
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        if self._database is not None:
            return
        if not self._uri:
            raise RuntimeError("MONGODB_URI is not configured")
        self._client = AsyncIOMotorClient(self._uri)
        self._database = self._client[self._database_name]
        await self._client.admin.command("ping")
        logger.info(f"Connected to MongoDB [{self._database_name}]")

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self._database is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._database

    def collection(self, entity: str):
        return self.database[check_entity(entity)]

    async def ping(self) -> bool:
        try:
            await self._client.admin.command("ping")
            return True
        except Exception as exc:
            logger.warning(f"MongoDB ping failed: {exc}")
            return False

    async def create(self, entity: str, data: dict) -> dict:
        doc = stamp_new({k: v for k, v in data.items() if k != "id"})
        result = await self.collection(entity).insert_one(doc)
        doc["_id"] = result.inserted_id
        return _to_record(doc)

    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        doc = await self.collection(entity).find_one(
            {"_id": oid, "is_deleted": {"$ne": True}}
        )
        return _to_record(doc)

    async def find_one(self, entity: str, filters: dict) -> Optional[dict]:
        doc = await self.collection(entity).find_one(_build_filters(filters))
        return _to_record(doc)

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
        query = _build_filters(filters)
        fields = list(search_fields)
        if search and fields:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {f: {"$regex": pattern, "$options": "i"}} for f in fields
            ]

        collection = self.collection(entity)
        total = await collection.count_documents(query)
        direction = DESCENDING if descending else ASCENDING
        cursor = (
            collection.find(query)
            .sort([(sort, direction), ("_id", direction)])
            .skip(offset)
            .limit(limit)
        )
        items = [_to_record(d) async for d in cursor]
        return Page(items=items, total=total)

    async def update(
        self,
        entity: str,
        record_id: str,
        changes: dict,
        append: Optional[dict] = None,
        unless: Optional[dict] = None,
    ) -> Optional[dict]:
        oid = _object_id(record_id)
        if oid is None:
            return None

        query: dict = {"_id": oid, "is_deleted": {"$ne": True}}
        for key, value in (unless or {}).items():
            query[key] = {"$ne": value}

        to_set = {k: v for k, v in changes.items() if k != "id"}
        to_set["updated_at"] = utcnow()
        operation: dict = {"$set": to_set}
        if append:
            operation["$push"] = dict(append)

        doc = await self.collection(entity).find_one_and_update(
            query, operation, return_document=ReturnDocument.AFTER
        )
        return _to_record(doc)

    async def delete(self, entity: str, record_id: str) -> bool:
        oid = _object_id(record_id)
        if oid is None:
            return False
        result = await self.collection(entity).update_one(
            {"_id": oid, "is_deleted": {"$ne": True}},
            {"$set": {"is_deleted": True, "deleted_at": utcnow()}},
        )
        return result.modified_count > 0

    async def count(self, entity: str, filters: Optional[dict] = None) -> int:
        return await self.collection(entity).count_documents(_build_filters(filters))
