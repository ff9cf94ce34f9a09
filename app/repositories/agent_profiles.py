from __future__ import annotations

from typing import Any

from pymongo import ASCENDING

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("user_id", ASCENDING)], "name": "uix_agent_profiles_user", "unique": True},
    {"keys": [("agentId", ASCENDING)], "name": "uix_agent_profiles_code", "unique": True},
    {"keys": [("province", ASCENDING), ("district", ASCENDING)], "name": "ix_agent_profiles_location"},
]


class InMemoryAgentProfilesRepository(InMemoryCollectionRepository):
    unique_fields = ("user_id", "agentId")

    def get_by_user(self, *, user_id: str) -> dict[str, Any] | None:
        return self.find_one(query={"user_id": user_id})

    def last_agent_code(self) -> str | None:
        row = self.find_one(query={"agentId": {"$exists": True}}, sort=[("agentId", -1)])
        return row.get("agentId") if row else None


class MongoAgentProfilesRepository(MongoCollectionRepository):
    unique_fields = ("user_id", "agentId")

    def get_by_user(self, *, user_id: str) -> dict[str, Any] | None:
        return self.find_one(query={"user_id": user_id})

    def last_agent_code(self) -> str | None:
        row = self.find_one(query={"agentId": {"$exists": True}}, sort=[("agentId", -1)])
        return row.get("agentId") if row else None
