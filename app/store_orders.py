from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from app.domain import (
    LOCKED_ORDER_STATUSES,
    ORDER_STATUSES,
    PAYMENT_STATUSES,
    generate_order_number,
    is_in_stock,
    order_totals,
    order_view,
    parse_iso,
    sync_product_status,
    to_iso,
)
from app.errors import DuplicateRecordError, bad_request, business_rule, forbidden, not_found

logger = logging.getLogger(__name__)

ORDER_MANAGER_ROLES = frozenset({"admin", "shop_manager"})
ORDER_NUMBER_ATTEMPTS = 3


class StoreOrdersMixin:
    def _order_view(self, order: dict[str, Any], *, now: datetime | None = None) -> dict[str, Any]:
        return order_view(order, now=now or self._now())

    def _require_order(self, order_id: str) -> dict[str, Any]:
        self._require_object_id(order_id)
        order = self.orders_repository.get(doc_id=order_id)
        if order is None:
            raise not_found("ORDER_NOT_FOUND", "Order not found")
        return order

    def list_orders(self, *, filters: dict[str, Any], page: int, limit: int) -> dict[str, Any]:
        conditions: list[dict[str, Any]] = []
        for field in ("customer_id", "status", "payment_status"):
            if filters.get(field):
                conditions.append({field: filters[field]})
        date_range: dict[str, str] = {}
        if filters.get("date_from") is not None:
            date_range["$gte"] = to_iso(filters["date_from"])
        if filters.get("date_to") is not None:
            date_range["$lte"] = to_iso(filters["date_to"])
        if date_range:
            conditions.append({"order_date": date_range})
        amount_range: dict[str, float] = {}
        if filters.get("amount_min") is not None:
            amount_range["$gte"] = float(filters["amount_min"])
        if filters.get("amount_max") is not None:
            amount_range["$lte"] = float(filters["amount_max"])
        if amount_range:
            conditions.append({"total_amount": amount_range})
        if filters.get("search"):
            conditions.append({"order_number": self._regex(str(filters["search"]))})
        now = self._now()
        return self._paginate(
            self.orders_repository,
            query=self._combine(conditions),
            sort=[("order_date", -1)],
            page=page,
            limit=limit,
            view=lambda o: self._order_view(o, now=now),
        )

    def get_order(self, *, order_id: str, actor: dict[str, Any]) -> dict[str, Any]:
        order = self._require_order(order_id)
        if actor.get("role") not in ORDER_MANAGER_ROLES and order.get("customer_id") != actor.get("id"):
            raise forbidden("Access denied")
        return self._order_view(order)

    def create_order(self, *, customer_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        requested: dict[str, int] = {}
        for item in payload["items"]:
            product_id = str(item["product_id"])
            self._require_object_id(product_id)
            requested[product_id] = requested.get(product_id, 0) + int(item["quantity"])

        products: dict[str, dict[str, Any]] = {}
        for product_id, quantity in requested.items():
            product = self.products_repository.get(doc_id=product_id)
            if product is None:
                raise not_found("PRODUCT_NOT_FOUND", f"Product with ID {product_id} not found")
            if not is_in_stock(product) or int(product.get("quantity") or 0) < quantity:
                raise bad_request("INSUFFICIENT_STOCK", f"Insufficient stock for product {product['name']}")
            products[product_id] = product

        items: list[dict[str, Any]] = []
        for item in payload["items"]:
            product = products[str(item["product_id"])]
            unit_price = float(product.get("price") or 0)
            quantity = int(item["quantity"])
            line: dict[str, Any] = {
                "product_id": product["id"],
                "product_name": product["name"],
                "unit_price": unit_price,
                "quantity": quantity,
                "total_price": round(unit_price * quantity, 2),
            }
            if item.get("specifications"):
                line["specifications"] = item["specifications"]
            items.append(line)

        now_dt = self._now()
        now = to_iso(now_dt)
        shipping_address = payload["shipping_address"]
        order: dict[str, Any] = {
            "customer_id": customer_id,
            "items": items,
            **order_totals(items),
            "status": "pending",
            "payment_status": "pending",
            "payment_method": payload.get("payment_method") or "cash",
            "shipping_address": shipping_address,
            "billing_address": payload.get("billing_address") or shipping_address,
            "order_date": now,
            "notes": payload.get("notes"),
            "created_at": now,
            "updated_at": now,
        }
        if payload.get("expected_delivery_date") is not None:
            order["expected_delivery_date"] = to_iso(payload["expected_delivery_date"])

        saved: dict[str, Any] | None = None
        for attempt in range(ORDER_NUMBER_ATTEMPTS):
            order["order_number"] = generate_order_number(now=now_dt)
            try:
                saved = self.orders_repository.insert(doc=order)
                break
            except DuplicateRecordError:
                logger.warning("order_number_collision attempt=%d", attempt + 1)
        if saved is None:
            raise business_rule("ORDER_NUMBER_CONFLICT", "Could not allocate an order number", http_status=409)

        supplier_ids: set[str] = set()
        for product_id, quantity in requested.items():
            product = products[product_id]
            remaining = max(0, int(product.get("quantity") or 0) - quantity)
            self._record_stock_change(
                product,
                new_quantity=remaining,
                reason="sale",
                notes=f"Order {saved['order_number']}",
                actor_id=customer_id,
            )
            self.products_repository.update(
                doc_id=product_id,
                fields={
                    "quantity": remaining,
                    "status": sync_product_status(remaining, str(product.get("status") or "available")),
                    "updated_at": now,
                },
            )
            if product.get("supplier_id"):
                supplier_ids.add(str(product["supplier_id"]))
        for supplier_id in supplier_ids:
            self.record_supplier_orders(supplier_id=supplier_id)
        logger.info(
            "order_created order_id=%s number=%s total=%.2f",
            saved["id"],
            saved["order_number"],
            saved["total_amount"],
        )
        return self._order_view(saved, now=now_dt)

    def update_order(self, *, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        order = self._require_order(order_id)
        changes = dict(payload)
        if changes.get("payment_status") is not None and changes["payment_status"] not in PAYMENT_STATUSES:
            raise bad_request("INVALID_PAYMENT_STATUS", "Invalid payment status value")
        if changes.get("expected_delivery_date") is not None:
            changes["expected_delivery_date"] = to_iso(changes["expected_delivery_date"])
        changes["updated_at"] = self._utcnow_iso()
        saved = self.orders_repository.update(doc_id=order_id, fields=changes)
        return self._order_view(saved or order)

    def set_order_status(self, *, order_id: str, status: str) -> dict[str, Any]:
        if status not in ORDER_STATUSES:
            raise bad_request("INVALID_STATUS", "Invalid status value")
        order = self._require_order(order_id)
        now = self._utcnow_iso()
        changes: dict[str, Any] = {"status": status, "updated_at": now}
        if status == "delivered" and not order.get("delivered_date"):
            changes["delivered_date"] = now
        saved = self.orders_repository.update(doc_id=order_id, fields=changes)
        logger.info("order_status_changed order_id=%s status=%s", order_id, status)
        return self._order_view(saved or order)

    def delete_order(self, *, order_id: str) -> dict[str, Any]:
        order = self._require_order(order_id)
        if order.get("status") in LOCKED_ORDER_STATUSES:
            raise business_rule("ORDER_LOCKED", "Cannot delete confirmed or processing orders")
        self.orders_repository.delete(doc_id=order_id)
        logger.info("order_deleted order_id=%s", order_id)
        return {"id": order_id, "deleted": True}

    def orders_for_user(
        self,
        *,
        user_id: str,
        actor: dict[str, Any],
        status: str | None,
        page: int,
        limit: int,
    ) -> dict[str, Any]:
        self._require_object_id(user_id)
        if actor.get("role") not in ORDER_MANAGER_ROLES and actor.get("id") != user_id:
            raise forbidden("Access denied")
        query: dict[str, Any] = {"customer_id": user_id}
        if status:
            query["status"] = status
        now = self._now()
        return self._paginate(
            self.orders_repository,
            query=query,
            sort=[("order_date", -1)],
            page=page,
            limit=limit,
            view=lambda o: self._order_view(o, now=now),
        )

    def order_analytics(self, *, start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
        end_dt = parse_iso(end) or self._now()
        start_dt = parse_iso(start) or end_dt - timedelta(days=30)
        if start_dt > end_dt:
            raise bad_request("INVALID_DATE_RANGE", "start must be before end")
        query = {"order_date": {"$gte": to_iso(start_dt), "$lte": to_iso(end_dt)}}
        summary = self.orders_repository.revenue_summary(query=query)
        by_status = self.orders_repository.count_by(field="status", query=query)
        by_payment = self.orders_repository.count_by(field="payment_status", query=query)
        return {
            "start": to_iso(start_dt),
            "end": to_iso(end_dt),
            **summary,
            "statusCounts": {s: by_status.get(s, 0) for s in ORDER_STATUSES},
            "paymentStatusCounts": {s: by_payment.get(s, 0) for s in PAYMENT_STATUSES},
        }
