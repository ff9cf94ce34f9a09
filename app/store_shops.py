from __future__ import annotations

import logging
from typing import Any

from app.errors import bad_request, not_found

logger = logging.getLogger(__name__)


class StoreShopsMixin:
    @staticmethod
    def _parse_shop_id(raw: str | int) -> int:
        try:
            shop_id = int(str(raw).strip())
        except ValueError:
            raise bad_request("INVALID_SHOP_ID", "Invalid shop ID") from None
        if shop_id < 1:
            raise bad_request("INVALID_SHOP_ID", "Invalid shop ID")
        return shop_id

    def _require_shop(self, raw_id: str | int) -> dict[str, Any]:
        shop = self.shops_repository.get(doc_id=self._parse_shop_id(raw_id))
        if shop is None:
            raise not_found("SHOP_NOT_FOUND", "Shop not found")
        return shop

    def create_shop(self, *, payload: dict[str, Any], created_by: str) -> dict[str, Any]:
        now = self._utcnow_iso()
        shop = {
            **payload,
            "id": self.shops_repository.next_id(),
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
        }
        saved = self.shops_repository.insert(doc=shop)
        logger.info("shop_created shop_id=%s", saved["id"])
        return saved

    def list_shops(self) -> list[dict[str, Any]]:
        return self.shops_repository.find(sort=[("id", 1)])

    def get_shop(self, *, shop_id: str | int) -> dict[str, Any]:
        return self._require_shop(shop_id)

    def update_shop(self, *, shop_id: str | int, payload: dict[str, Any]) -> dict[str, Any]:
        shop = self._require_shop(shop_id)
        changes = {**payload, "updatedAt": self._utcnow_iso()}
        return self.shops_repository.update(doc_id=shop["id"], fields=changes) or shop

    def delete_shop(self, *, shop_id: str | int) -> dict[str, Any]:
        shop = self._require_shop(shop_id)
        self.shops_repository.delete(doc_id=shop["id"])
        logger.info("shop_deleted shop_id=%s", shop["id"])
        return shop
