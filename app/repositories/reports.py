from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING, TEXT

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("agent_id", ASCENDING), ("scheduled_date", DESCENDING)], "name": "ix_reports_agent_scheduled"},
    {"keys": [("farmer_id", ASCENDING)], "name": "ix_reports_farmer"},
    {"keys": [("status", ASCENDING), ("priority", ASCENDING)], "name": "ix_reports_status_priority"},
    {"keys": [("report_type", ASCENDING)], "name": "ix_reports_type"},
    {
        "keys": [("title", TEXT), ("description", TEXT), ("findings", TEXT), ("recommendations", TEXT)],
        "name": "tx_reports_search",
    },
]


class InMemoryReportsRepository(InMemoryCollectionRepository):
    pass


class MongoReportsRepository(MongoCollectionRepository):
    pass
