from __future__ import annotations

from typing import Any

from pymongo import ASCENDING

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("user_id", ASCENDING)], "name": "uix_farmer_profiles_user", "unique": True},
    {"keys": [("farm_province", ASCENDING), ("farm_district", ASCENDING)], "name": "ix_farmer_profiles_farm"},
]


class InMemoryFarmerProfilesRepository(InMemoryCollectionRepository):
    unique_fields = ("user_id",)

    def get_by_user(self, *, user_id: str) -> dict[str, Any] | None:
        return self.find_one(query={"user_id": user_id})


class MongoFarmerProfilesRepository(MongoCollectionRepository):
    unique_fields = ("user_id",)

    def get_by_user(self, *, user_id: str) -> dict[str, Any] | None:
        return self.find_one(query={"user_id": user_id})
