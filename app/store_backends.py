from __future__ import annotations

import logging
from typing import Any

from app.db.mongo import MongoConnection
from app.repositories import (
    agent_profiles,
    farmer_profiles,
    orders,
    products,
    reports,
    shops,
    stock_history,
    suppliers,
    users,
)
from app.repositories.agent_profiles import MongoAgentProfilesRepository
from app.repositories.farmer_profiles import MongoFarmerProfilesRepository
from app.repositories.orders import MongoOrdersRepository
from app.repositories.products import MongoProductsRepository
from app.repositories.reports import MongoReportsRepository
from app.repositories.shops import MongoShopsRepository
from app.repositories.stock_history import MongoStockHistoryRepository
from app.repositories.suppliers import MongoSuppliersRepository
from app.repositories.users import MongoUsersRepository
from app.store import InMemoryStore

logger = logging.getLogger(__name__)

COLLECTION_INDEXES: dict[str, list[dict[str, Any]]] = {
    "users": users.INDEXES,
    "suppliers": suppliers.INDEXES,
    "products": products.INDEXES,
    "orders": orders.INDEXES,
    "shops": shops.INDEXES,
    "reports": reports.INDEXES,
    "farmer_profiles": farmer_profiles.INDEXES,
    "agent_profiles": agent_profiles.INDEXES,
    "stock_history": stock_history.INDEXES,
}


class MongoBackedStore(InMemoryStore):
    """Store backend that keeps every collection in MongoDB."""

    backend_name = "mongo"

    def __init__(self, *, uri: str, db_name: str, client: Any | None = None, ensure_indexes: bool = True) -> None:
        self._connection = MongoConnection(uri=uri, db_name=db_name, client=client)
        super().__init__()
        if ensure_indexes:
            self.ensure_indexes()

    def _bind_repositories(self) -> None:
        conn = self._connection
        self.users_repository = MongoUsersRepository(collection=conn.collection("users"))
        self.suppliers_repository = MongoSuppliersRepository(collection=conn.collection("suppliers"))
        self.products_repository = MongoProductsRepository(collection=conn.collection("products"))
        self.orders_repository = MongoOrdersRepository(collection=conn.collection("orders"))
        self.shops_repository = MongoShopsRepository(collection=conn.collection("shops"))
        self.reports_repository = MongoReportsRepository(collection=conn.collection("reports"))
        self.farmer_profiles_repository = MongoFarmerProfilesRepository(collection=conn.collection("farmer_profiles"))
        self.agent_profiles_repository = MongoAgentProfilesRepository(collection=conn.collection("agent_profiles"))
        self.stock_history_repository = MongoStockHistoryRepository(collection=conn.collection("stock_history"))

    def ensure_indexes(self) -> None:
        for name, indexes in COLLECTION_INDEXES.items():
            self._connection.ensure_indexes(collection=name, indexes=indexes)
        logger.info("mongo_store_ready collections=%d", len(COLLECTION_INDEXES))

    def ping(self) -> bool:
        return self._connection.ping()

    def reset(self) -> None:
        for name in COLLECTION_INDEXES:
            self._connection.collection(name).delete_many({})
        super().reset()

    def close(self) -> None:
        self._connection.close()
