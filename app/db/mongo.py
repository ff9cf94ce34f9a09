from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class MongoConnection:
    """Own one MongoClient and hand out collections of the configured database."""

    def __init__(self, *, uri: str, db_name: str, client: Any | None = None) -> None:
        if not uri.strip():
            raise ValueError("MONGODB_URI must not be empty")
        if not db_name.strip():
            raise ValueError("database name must not be empty")
        self._uri = uri.strip()
        self._client = client if client is not None else MongoClient(self._uri, serverSelectionTimeoutMS=5000)
        self._db = self._client[db_name.strip()]

    def collection(self, name: str) -> Any:
        return self._db[name]

    def ping(self) -> bool:
        try:
            self._client.admin.command("ping")
        except PyMongoError as exc:
            logger.warning("mongo_ping_failed error=%s", type(exc).__name__)
            return False
        return True

    def ensure_indexes(self, *, collection: str, indexes: Iterable[dict[str, Any]]) -> list[str]:
        created: list[str] = []
        target = self.collection(collection)
        for spec in indexes:
            options = {k: v for k, v in spec.items() if k != "keys"}
            created.append(target.create_index(spec["keys"], **options))
        logger.debug("mongo_indexes_ensured collection=%s count=%d", collection, len(created))
        return created

    def close(self) -> None:
        self._client.close()
