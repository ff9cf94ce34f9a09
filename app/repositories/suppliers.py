from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING, TEXT

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("email", ASCENDING)], "name": "uix_suppliers_email", "unique": True},
    {"keys": [("status", ASCENDING), ("category", ASCENDING)], "name": "ix_suppliers_status_category"},
    {"keys": [("address.province", ASCENDING), ("address.city", ASCENDING)], "name": "ix_suppliers_location"},
    {"keys": [("rating", DESCENDING), ("total_orders", DESCENDING)], "name": "ix_suppliers_rating"},
    {
        "keys": [("name", TEXT), ("contact_person", TEXT), ("products_supplied", TEXT)],
        "name": "tx_suppliers_search",
    },
]


class InMemorySuppliersRepository(InMemoryCollectionRepository):
    unique_fields = ("email",)

    def average_rating(self, *, query: dict[str, Any] | None = None) -> float:
        ratings = [float(r.get("rating") or 0) for r in self.find(query=query)]
        if not ratings:
            return 0.0
        return round(sum(ratings) / len(ratings), 2)


class MongoSuppliersRepository(MongoCollectionRepository):
    unique_fields = ("email",)

    def average_rating(self, *, query: dict[str, Any] | None = None) -> float:
        rows = self.aggregate(
            [
                {"$match": self._to_mongo_query(query)},
                {"$group": {"_id": None, "avg_rating": {"$avg": "$rating"}}},
            ]
        )
        if not rows or rows[0].get("avg_rating") is None:
            return 0.0
        return round(float(rows[0]["avg_rating"]), 2)
