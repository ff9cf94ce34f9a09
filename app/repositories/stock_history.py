from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("product_id", ASCENDING), ("created_at", DESCENDING)], "name": "ix_stock_history_product"},
    {"keys": [("supplier_id", ASCENDING)], "name": "ix_stock_history_supplier"},
    {"keys": [("created_at", DESCENDING)], "name": "ix_stock_history_created"},
]


class InMemoryStockHistoryRepository(InMemoryCollectionRepository):
    pass


class MongoStockHistoryRepository(MongoCollectionRepository):
    pass
