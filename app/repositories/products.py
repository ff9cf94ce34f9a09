from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING, TEXT

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("sku", ASCENDING)], "name": "uix_products_sku", "unique": True, "sparse": True},
    {"keys": [("category", ASCENDING), ("status", ASCENDING)], "name": "ix_products_category_status"},
    {"keys": [("supplier_id", ASCENDING)], "name": "ix_products_supplier"},
    {"keys": [("price", ASCENDING)], "name": "ix_products_price"},
    {"keys": [("created_at", DESCENDING)], "name": "ix_products_created"},
    {"keys": [("name", TEXT), ("description", TEXT), ("brand", TEXT)], "name": "tx_products_search"},
]


class InMemoryProductsRepository(InMemoryCollectionRepository):
    unique_fields = ("sku",)

    def inventory_totals(self, *, query: dict[str, Any] | None = None) -> dict[str, float]:
        rows = self.find(query=query)
        return {
            "total_quantity": sum(int(r.get("quantity") or 0) for r in rows),
            "total_value": round(sum(float(r.get("price") or 0) * int(r.get("quantity") or 0) for r in rows), 2),
        }


class MongoProductsRepository(MongoCollectionRepository):
    unique_fields = ("sku",)

    def inventory_totals(self, *, query: dict[str, Any] | None = None) -> dict[str, float]:
        rows = self.aggregate(
            [
                {"$match": self._to_mongo_query(query)},
                {
                    "$group": {
                        "_id": None,
                        "total_quantity": {"$sum": "$quantity"},
                        "total_value": {"$sum": {"$multiply": ["$price", "$quantity"]}},
                    }
                },
            ]
        )
        if not rows:
            return {"total_quantity": 0, "total_value": 0.0}
        return {
            "total_quantity": int(rows[0].get("total_quantity") or 0),
            "total_value": round(float(rows[0].get("total_value") or 0), 2),
        }
