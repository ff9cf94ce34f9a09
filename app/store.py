from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from app.config import AppSettings, load_env_file
from app.domain import pagination_meta, to_iso, utcnow
from app.errors import bad_request
from app.repositories.agent_profiles import InMemoryAgentProfilesRepository
from app.repositories.base import SortSpec, is_valid_object_id
from app.repositories.farmer_profiles import InMemoryFarmerProfilesRepository
from app.repositories.orders import InMemoryOrdersRepository
from app.repositories.products import InMemoryProductsRepository
from app.repositories.reports import InMemoryReportsRepository
from app.repositories.shops import InMemoryShopsRepository
from app.repositories.stock_history import InMemoryStockHistoryRepository
from app.repositories.suppliers import InMemorySuppliersRepository
from app.repositories.users import InMemoryUsersRepository
from app.store_analytics import StoreAnalyticsMixin
from app.store_catalog import StoreCatalogMixin
from app.store_inventory import StoreInventoryMixin
from app.store_orders import StoreOrdersMixin
from app.store_profiles import StoreProfilesMixin
from app.store_reports import StoreReportsMixin
from app.store_shops import StoreShopsMixin
from app.store_users import StoreUsersMixin

NEWEST_FIRST: SortSpec = [("created_at", -1)]


class InMemoryStore(
    StoreUsersMixin,
    StoreCatalogMixin,
    StoreInventoryMixin,
    StoreOrdersMixin,
    StoreShopsMixin,
    StoreReportsMixin,
    StoreProfilesMixin,
    StoreAnalyticsMixin,
):
    backend_name = "memory"

    def __init__(self) -> None:
        self._apply_settings()
        self.users: dict[str, dict[str, Any]] = {}
        self.suppliers: dict[str, dict[str, Any]] = {}
        self.products: dict[str, dict[str, Any]] = {}
        self.orders: dict[str, dict[str, Any]] = {}
        self.shops: dict[int, dict[str, Any]] = {}
        self.reports: dict[str, dict[str, Any]] = {}
        self.farmer_profiles: dict[str, dict[str, Any]] = {}
        self.agent_profiles: dict[str, dict[str, Any]] = {}
        self.stock_changes: dict[str, dict[str, Any]] = {}
        self._bind_repositories()

    def _apply_settings(self) -> None:
        settings = AppSettings.from_env()
        self.bcrypt_rounds = settings.bcrypt_rounds
        self.low_stock_threshold = settings.low_stock_threshold

    def _bind_repositories(self) -> None:
        self.users_repository = InMemoryUsersRepository(self.users)
        self.suppliers_repository = InMemorySuppliersRepository(self.suppliers)
        self.products_repository = InMemoryProductsRepository(self.products)
        self.orders_repository = InMemoryOrdersRepository(self.orders)
        self.shops_repository = InMemoryShopsRepository(self.shops)
        self.reports_repository = InMemoryReportsRepository(self.reports)
        self.farmer_profiles_repository = InMemoryFarmerProfilesRepository(self.farmer_profiles)
        self.agent_profiles_repository = InMemoryAgentProfilesRepository(self.agent_profiles)
        self.stock_history_repository = InMemoryStockHistoryRepository(self.stock_changes)

    def reset(self) -> None:
        self._apply_settings()
        self.users.clear()
        self.suppliers.clear()
        self.products.clear()
        self.orders.clear()
        self.shops.clear()
        self.reports.clear()
        self.farmer_profiles.clear()
        self.agent_profiles.clear()
        self.stock_changes.clear()

    def ping(self) -> bool:
        return True

    @staticmethod
    def _now() -> datetime:
        return utcnow()

    @staticmethod
    def _utcnow_iso() -> str:
        return to_iso(utcnow())

    @staticmethod
    def _require_object_id(value: str | None) -> str:
        if not is_valid_object_id(value):
            raise bad_request("INVALID_ID", "Invalid ID format")
        return str(value)

    @staticmethod
    def _regex(term: str) -> dict[str, str]:
        return {"$regex": re.escape(term.strip()), "$options": "i"}

    @staticmethod
    def _combine(conditions: list[dict[str, Any]]) -> dict[str, Any]:
        conditions = [c for c in conditions if c]
        if not conditions:
            return {}
        if len(conditions) == 1:
            return conditions[0]
        return {"$and": conditions}

    @staticmethod
    def _iso_fields(doc: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
        for field in fields:
            value = doc.get(field)
            if isinstance(value, datetime):
                doc[field] = to_iso(value)
        return doc

    def _paginate(
        self,
        repository: Any,
        *,
        query: Mapping[str, Any],
        sort: SortSpec,
        page: int,
        limit: int,
        view: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        total = repository.count(query=query)
        rows = repository.find(query=query, sort=sort, skip=(page - 1) * limit, limit=limit)
        items = [view(r) for r in rows] if view is not None else rows
        return {"items": items, "pagination": pagination_meta(page=page, limit=limit, total=total)}


def create_store_from_env(environ: Mapping[str, str] | None = None) -> InMemoryStore:
    env = os.environ if environ is None else environ
    backend = env.get("STORE_BACKEND", "memory").strip().lower()
    if backend == "mongo":
        from app.store_backends import MongoBackedStore

        settings = AppSettings.from_env(env)
        return MongoBackedStore(uri=settings.mongodb_uri, db_name=settings.mongodb_db)
    if backend not in {"", "memory"}:
        raise ValueError(f"unsupported STORE_BACKEND: {backend}")
    return InMemoryStore()


load_env_file()
store = create_store_from_env()
