from __future__ import annotations

from typing import Any

from pymongo import ASCENDING

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("province", ASCENDING), ("district", ASCENDING)], "name": "ix_shops_location"},
]


class InMemoryShopsRepository(InMemoryCollectionRepository):
    def next_id(self) -> int:
        ids = [int(k) for k in self._records]
        return max(ids, default=0) + 1


class MongoShopsRepository(MongoCollectionRepository):
    def next_id(self) -> int:
        row = self._collection.find_one({}, sort=[("_id", -1)], projection={"_id": 1})
        return int(row["_id"]) + 1 if row else 1
