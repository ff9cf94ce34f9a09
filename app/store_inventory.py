from __future__ import annotations

import logging
from typing import Any

from app.domain import INVENTORY_CURRENCY, product_view, stock_change_entry, sync_product_status
from app.errors import bad_request

logger = logging.getLogger(__name__)


class StoreInventoryMixin:
    def _record_stock_change(
        self,
        product: dict[str, Any],
        *,
        new_quantity: int,
        reason: str,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> dict[str, Any]:
        entry = stock_change_entry(
            product,
            new_quantity=new_quantity,
            reason=reason,
            notes=notes,
            created_by=actor_id,
            created_at=self._utcnow_iso(),
        )
        saved = self.stock_history_repository.insert(doc=entry)
        logger.info(
            "stock_changed product_id=%s reason=%s change=%d",
            entry["product_id"],
            reason,
            entry["change_amount"],
        )
        return saved

    def list_inventory(self, *, page: int, limit: int) -> dict[str, Any]:
        return self._paginate(
            self.products_repository,
            query={},
            sort=[("created_at", -1)],
            page=page,
            limit=limit,
            view=product_view,
        )

    def out_of_stock_products(self, *, supplier_id: str | None = None) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"$or": [{"quantity": 0}, {"status": "out_of_stock"}]}
        if supplier_id:
            query["supplier_id"] = supplier_id
        rows = self.products_repository.find(query=query, sort=[("updated_at", -1)])
        return [product_view(r) for r in rows]

    def adjust_stock(
        self,
        *,
        product_id: str,
        change: int,
        reason: str,
        actor: dict[str, Any],
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Apply a signed quantity change and log it to the stock history."""
        product = self._require_product(product_id)
        new_quantity = int(product.get("quantity") or 0) + change
        if new_quantity < 0:
            raise bad_request("NEGATIVE_STOCK", "Adjustment would result in negative stock")
        self._record_stock_change(
            product,
            new_quantity=new_quantity,
            reason=reason,
            notes=notes or "Manual adjustment via inventory",
            actor_id=actor.get("id"),
        )
        saved = self.products_repository.update(
            doc_id=product_id,
            fields={
                "quantity": new_quantity,
                "status": sync_product_status(new_quantity, str(product.get("status") or "available")),
                "updated_at": self._utcnow_iso(),
            },
        )
        return product_view(saved or product)

    def stock_history(self, *, product_id: str | None, page: int, limit: int) -> dict[str, Any]:
        query: dict[str, Any] = {}
        if product_id:
            query["product_id"] = self._require_object_id(product_id)
        return self._paginate(
            self.stock_history_repository,
            query=query,
            sort=[("created_at", -1), ("id", -1)],
            page=page,
            limit=limit,
        )

    def inventory_valuation(self, *, supplier_id: str | None = None) -> dict[str, Any]:
        query: dict[str, Any] = {"status": {"$ne": "discontinued"}}
        if supplier_id:
            query["supplier_id"] = supplier_id
        totals = self.products_repository.inventory_totals(query=query)
        return {
            "totalValue": totals["total_value"],
            "totalProducts": self.products_repository.count(query=query),
            "totalItems": totals["total_quantity"],
            "currency": INVENTORY_CURRENCY,
        }
