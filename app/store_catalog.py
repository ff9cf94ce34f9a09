from __future__ import annotations

import logging
from typing import Any

from app.domain import (
    PRODUCT_CATEGORIES,
    SUPPLIER_CATEGORIES,
    SUPPLIER_STATUSES,
    apply_rating,
    apply_stock_operation,
    clamp_rating,
    generate_sku,
    increment_orders,
    product_view,
    supplier_view,
    sync_product_status,
)
from app.errors import DuplicateRecordError, bad_request, conflict, not_found

logger = logging.getLogger(__name__)

PRODUCT_DATE_FIELDS = ("harvest_date", "expiry_date")


class StoreCatalogMixin:
    # -------------------------------------------------------------------
    # Suppliers
    # -------------------------------------------------------------------

    def _require_supplier(self, supplier_id: str) -> dict[str, Any]:
        self._require_object_id(supplier_id)
        supplier = self.suppliers_repository.get(doc_id=supplier_id)
        if supplier is None:
            raise not_found("SUPPLIER_NOT_FOUND", "Supplier not found")
        return supplier

    def _assert_supplier_email_free(self, email: str, *, exclude_id: str | None = None) -> None:
        query: dict[str, Any] = {"email": email}
        if exclude_id:
            query["id"] = {"$ne": exclude_id}
        if self.suppliers_repository.count(query=query) > 0:
            raise conflict("SUPPLIER_EXISTS", "Supplier with this email already exists")

    def create_supplier(self, *, payload: dict[str, Any]) -> dict[str, Any]:
        email = str(payload["email"]).strip().lower()
        self._assert_supplier_email_free(email)
        now = self._utcnow_iso()
        supplier = {
            **payload,
            "email": email,
            "rating": clamp_rating(payload.get("rating") or 0),
            "total_orders": max(0, int(payload.get("total_orders") or 0)),
            "created_at": now,
            "updated_at": now,
        }
        try:
            saved = self.suppliers_repository.insert(doc=supplier)
        except DuplicateRecordError:
            raise conflict("SUPPLIER_EXISTS", "Supplier with this email already exists") from None
        logger.info("supplier_created supplier_id=%s", saved["id"])
        return supplier_view(saved)

    def list_suppliers(self, *, filters: dict[str, Any], page: int, limit: int) -> dict[str, Any]:
        conditions: list[dict[str, Any]] = []
        if filters.get("province"):
            conditions.append({"address.province": filters["province"]})
        if filters.get("district"):
            conditions.append({"address.district": filters["district"]})
        if filters.get("status"):
            conditions.append({"status": filters["status"]})
        if filters.get("category"):
            conditions.append({"category": filters["category"]})
        if filters.get("search"):
            pattern = self._regex(str(filters["search"]))
            conditions.append({"$or": [{"name": pattern}, {"contact_person": pattern}, {"email": pattern}]})
        return self._paginate(
            self.suppliers_repository,
            query=self._combine(conditions),
            sort=[("created_at", -1)],
            page=page,
            limit=limit,
            view=supplier_view,
        )

    def get_supplier(self, *, supplier_id: str) -> dict[str, Any]:
        return supplier_view(self._require_supplier(supplier_id))

    def update_supplier(self, *, supplier_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        supplier = self._require_supplier(supplier_id)
        changes = dict(payload)
        if changes.get("email") is not None:
            changes["email"] = str(changes["email"]).strip().lower()
            self._assert_supplier_email_free(changes["email"], exclude_id=supplier_id)
        changes["updated_at"] = self._utcnow_iso()
        try:
            saved = self.suppliers_repository.update(doc_id=supplier_id, fields=changes)
        except DuplicateRecordError:
            raise conflict("SUPPLIER_EXISTS", "Supplier with this email already exists") from None
        return supplier_view(saved or supplier)

    def delete_supplier(self, *, supplier_id: str) -> dict[str, Any]:
        self._require_supplier(supplier_id)
        self.suppliers_repository.delete(doc_id=supplier_id)
        logger.info("supplier_deleted supplier_id=%s", supplier_id)
        return {"id": supplier_id, "deleted": True}

    def rate_supplier(self, *, supplier_id: str, rating: float) -> dict[str, Any]:
        supplier = self._require_supplier(supplier_id)
        try:
            new_rating = apply_rating(supplier.get("rating"), rating)
        except ValueError:
            raise bad_request("INVALID_RATING", "Rating must be between 0 and 5") from None
        saved = self.suppliers_repository.update(
            doc_id=supplier_id,
            fields={"rating": new_rating, "updated_at": self._utcnow_iso()},
        )
        return supplier_view(saved or supplier)

    def record_supplier_orders(self, *, supplier_id: str, count: int = 1) -> None:
        supplier = self.suppliers_repository.get(doc_id=supplier_id)
        if supplier is None:
            return
        self.suppliers_repository.update(
            doc_id=supplier_id,
            fields={"total_orders": increment_orders(supplier.get("total_orders"), count)},
        )

    def suppliers_by_location(self, *, province: str | None, district: str | None = None) -> list[dict[str, Any]]:
        if not province or not province.strip():
            raise bad_request("PROVINCE_REQUIRED", "Province is required")
        query: dict[str, Any] = {"address.province": province.strip()}
        if district:
            query["address.district"] = district.strip()
        rows = self.suppliers_repository.find(query=query, sort=[("name", 1)])
        return [supplier_view(r) for r in rows]

    def active_suppliers(self, *, category: str | None = None) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"status": "active"}
        if category:
            if category not in SUPPLIER_CATEGORIES:
                raise bad_request("INVALID_CATEGORY", f"Invalid category. Must be one of: {', '.join(SUPPLIER_CATEGORIES)}")
            query["category"] = category
        rows = self.suppliers_repository.find(query=query, sort=[("name", 1)])
        return [supplier_view(r) for r in rows]

    def top_rated_suppliers(self, *, limit: int = 10) -> list[dict[str, Any]]:
        rows = self.suppliers_repository.find(
            query={"status": "active"},
            sort=[("rating", -1), ("total_orders", -1)],
            limit=limit,
        )
        return [supplier_view(r) for r in rows]

    def search_suppliers(
        self,
        *,
        term: str,
        category: str | None = None,
        province: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        pattern = self._regex(term)
        query: dict[str, Any] = {
            "status": "active",
            "$or": [{"name": pattern}, {"contact_person": pattern}, {"products_supplied": pattern}],
        }
        if category:
            query["category"] = category
        if province:
            query["address.province"] = province
        rows = self.suppliers_repository.find(query=query, sort=[("rating", -1)], limit=limit)
        return [supplier_view(r) for r in rows]

    def supplier_statistics(self) -> dict[str, Any]:
        by_status = self.suppliers_repository.count_by(field="status")
        by_category = self.suppliers_repository.count_by(field="category")
        return {
            "total_suppliers": self.suppliers_repository.count(),
            "by_status": {s: by_status.get(s, 0) for s in SUPPLIER_STATUSES},
            "by_category": {c: by_category.get(c, 0) for c in SUPPLIER_CATEGORIES},
            "average_rating": self.suppliers_repository.average_rating(query={"status": "active"}),
        }

    def supplier_products(self, *, supplier_id: str, page: int, limit: int) -> dict[str, Any]:
        self._require_supplier(supplier_id)
        return self._paginate(
            self.products_repository,
            query={"supplier_id": supplier_id},
            sort=[("created_at", -1)],
            page=page,
            limit=limit,
            view=product_view,
        )

    def supplier_orders(self, *, supplier_id: str, page: int, limit: int) -> dict[str, Any]:
        self._require_supplier(supplier_id)
        product_ids = [p["id"] for p in self.products_repository.find(query={"supplier_id": supplier_id})]
        now = self._now()
        return self._paginate(
            self.orders_repository,
            query={"items.product_id": {"$in": product_ids}},
            sort=[("order_date", -1)],
            page=page,
            limit=limit,
            view=lambda o: self._order_view(o, now=now),
        )

    # -------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------

    def _require_product(self, product_id: str) -> dict[str, Any]:
        self._require_object_id(product_id)
        product = self.products_repository.get(doc_id=product_id)
        if product is None:
            raise not_found("PRODUCT_NOT_FOUND", "Product not found")
        return product

    def _assert_product_name_free(self, name: str, *, exclude_id: str | None = None) -> None:
        query: dict[str, Any] = {"name": name}
        if exclude_id:
            query["id"] = {"$ne": exclude_id}
        if self.products_repository.count(query=query) > 0:
            raise bad_request("PRODUCT_NAME_EXISTS", "Product name already exists")

    def list_products(self, *, filters: dict[str, Any], page: int, limit: int) -> dict[str, Any]:
        conditions: list[dict[str, Any]] = []
        category = filters.get("category")
        if category:
            if category not in PRODUCT_CATEGORIES:
                raise bad_request(
                    "INVALID_CATEGORY",
                    f"Invalid category. Must be one of: {', '.join(PRODUCT_CATEGORIES)}",
                )
            conditions.append({"category": category})
        if filters.get("supplier_id"):
            conditions.append({"supplier_id": filters["supplier_id"]})
        if filters.get("status"):
            conditions.append({"status": filters["status"]})
        else:
            conditions.append({"status": {"$ne": "discontinued"}})
        price_range: dict[str, float] = {}
        if filters.get("price_min") is not None:
            price_range["$gte"] = float(filters["price_min"])
        if filters.get("price_max") is not None:
            price_range["$lte"] = float(filters["price_max"])
        if price_range:
            conditions.append({"price": price_range})
        in_stock = filters.get("in_stock")
        if in_stock is True:
            conditions.append({"quantity": {"$gt": 0}, "status": "available"})
        elif in_stock is False:
            conditions.append({"$or": [{"quantity": 0}, {"status": "out_of_stock"}]})
        if filters.get("search"):
            pattern = self._regex(str(filters["search"]))
            conditions.append({"$or": [{"name": pattern}, {"description": pattern}, {"brand": pattern}]})
        return self._paginate(
            self.products_repository,
            query=self._combine(conditions),
            sort=[("created_at", -1)],
            page=page,
            limit=limit,
            view=product_view,
        )

    def get_product(self, *, product_id: str) -> dict[str, Any]:
        return product_view(self._require_product(product_id))

    def create_product(self, *, payload: dict[str, Any]) -> dict[str, Any]:
        self._require_supplier(str(payload["supplier_id"]))
        name = str(payload["name"]).strip()
        self._assert_product_name_free(name)
        now_dt = self._now()
        now = self._utcnow_iso()
        product = self._iso_fields(dict(payload), PRODUCT_DATE_FIELDS)
        product["name"] = name
        quantity = int(product.get("quantity") or 0)
        product["quantity"] = quantity
        product["status"] = sync_product_status(quantity, str(product.get("status") or "available"))
        if not product.get("sku"):
            product["sku"] = generate_sku(str(product["category"]), name, now=now_dt)
        product["created_at"] = now
        product["updated_at"] = now
        try:
            saved = self.products_repository.insert(doc=product)
        except DuplicateRecordError as exc:
            raise conflict("DUPLICATE_KEY", f"{exc.field.capitalize()} already exists") from None
        logger.info("product_created product_id=%s sku=%s", saved["id"], saved["sku"])
        return product_view(saved)

    def update_product(self, *, product_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        product = self._require_product(product_id)
        changes = self._iso_fields(dict(payload), PRODUCT_DATE_FIELDS)
        if changes.get("name") is not None:
            changes["name"] = str(changes["name"]).strip()
            self._assert_product_name_free(changes["name"], exclude_id=product_id)
        if changes.get("supplier_id") is not None:
            self._require_supplier(str(changes["supplier_id"]))
        quantity = int(changes.get("quantity", product.get("quantity")) or 0)
        status = str(changes.get("status") or product.get("status") or "available")
        changes["status"] = sync_product_status(quantity, status)
        changes["updated_at"] = self._utcnow_iso()
        try:
            saved = self.products_repository.update(doc_id=product_id, fields=changes)
        except DuplicateRecordError as exc:
            raise conflict("DUPLICATE_KEY", f"{exc.field.capitalize()} already exists") from None
        return product_view(saved or product)

    def discontinue_product(self, *, product_id: str) -> dict[str, Any]:
        product = self._require_product(product_id)
        saved = self.products_repository.update(
            doc_id=product_id,
            fields={"status": "discontinued", "updated_at": self._utcnow_iso()},
        )
        logger.info("product_discontinued product_id=%s", product_id)
        return product_view(saved or product)

    def update_stock(
        self,
        *,
        product_id: str,
        quantity: int | None = None,
        operation: str | None = None,
        amount: int | None = None,
        actor: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        product = self._require_product(product_id)
        current = int(product.get("quantity") or 0)
        if quantity is not None:
            new_quantity = max(0, quantity)
        else:
            new_quantity = apply_stock_operation(current, operation=str(operation), amount=int(amount or 0))
        if new_quantity != current:
            self._record_stock_change(
                product,
                new_quantity=new_quantity,
                reason="restock" if new_quantity > current else "adjustment",
                actor_id=(actor or {}).get("id"),
            )
        status = sync_product_status(new_quantity, str(product.get("status") or "available"))
        saved = self.products_repository.update(
            doc_id=product_id,
            fields={"quantity": new_quantity, "status": status, "updated_at": self._utcnow_iso()},
        )
        return product_view(saved or product)

    def low_stock_products(
        self, *, threshold: int | None = None, supplier_id: str | None = None
    ) -> list[dict[str, Any]]:
        level = self.low_stock_threshold if threshold is None else threshold
        query: dict[str, Any] = {"quantity": {"$gt": 0, "$lte": level}, "status": "available"}
        if supplier_id:
            query["supplier_id"] = supplier_id
        rows = self.products_repository.find(
            query=query,
            sort=[("quantity", 1)],
        )
        return [product_view(r) for r in rows]
