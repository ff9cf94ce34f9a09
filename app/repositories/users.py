from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING

from app.domain import DAY_KEY_LENGTH
from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("email", ASCENDING)], "name": "uix_users_email", "unique": True},
    {"keys": [("role", ASCENDING), ("status", ASCENDING)], "name": "ix_users_role_status"},
    {"keys": [("created_at", DESCENDING)], "name": "ix_users_created"},
]


class InMemoryUsersRepository(InMemoryCollectionRepository):
    unique_fields = ("email",)

    def get_by_email(self, *, email: str) -> dict[str, Any] | None:
        return self.find_one(query={"email": email.strip().lower()})

    def registrations_by_day(self, *, query: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        days: dict[str, dict[str, Any]] = {}
        for user in self.find(query=query):
            key = str(user.get("created_at") or "")[:DAY_KEY_LENGTH]
            row = days.setdefault(key, {"date": key, "registrations": 0, "byRole": {}})
            row["registrations"] += 1
            role = str(user.get("role"))
            row["byRole"][role] = row["byRole"].get(role, 0) + 1
        return [days[key] for key in sorted(days)]


class MongoUsersRepository(MongoCollectionRepository):
    unique_fields = ("email",)

    def get_by_email(self, *, email: str) -> dict[str, Any] | None:
        return self.find_one(query={"email": email.strip().lower()})

    def registrations_by_day(self, *, query: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        rows = self.aggregate(
            [
                {"$match": self._to_mongo_query(query)},
                {
                    "$group": {
                        "_id": {"day": {"$substrBytes": ["$created_at", 0, DAY_KEY_LENGTH]}, "role": "$role"},
                        "count": {"$sum": 1},
                    }
                },
                {
                    "$group": {
                        "_id": "$_id.day",
                        "registrations": {"$sum": "$count"},
                        "roles": {"$push": {"role": "$_id.role", "count": "$count"}},
                    }
                },
                {"$sort": {"_id": 1}},
            ]
        )
        return [
            {
                "date": str(row["_id"]),
                "registrations": int(row.get("registrations") or 0),
                "byRole": {str(r["role"]): int(r["count"]) for r in row.get("roles") or []},
            }
            for row in rows
        ]
