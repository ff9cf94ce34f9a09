from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from app.domain import (
    DAY_KEY_LENGTH,
    MONTH_KEY_LENGTH,
    SUPPLIER_STATUSES,
    USER_STATUSES,
    month_start,
    parse_iso,
    period_bounds,
    to_iso,
)
from app.errors import bad_request

DASHBOARD_TOP_PRODUCTS = 5
ANALYTICS_TOP_PRODUCTS = 10
DEFAULT_ANALYTICS_WINDOW = timedelta(days=30)
MONTHLY_TREND_MONTHS = 12


class StoreAnalyticsMixin:
    def dashboard(self) -> dict[str, Any]:
        """Cross-collection snapshot for the admin dashboard."""
        now = self._now()
        week_ago = to_iso(now - timedelta(days=7))
        month_ago = to_iso(now - timedelta(days=30))
        recent_orders = {"order_date": {"$gte": month_ago}, "status": {"$ne": "cancelled"}}
        live_products = {"status": {"$ne": "discontinued"}}
        by_supplier_status = self.suppliers_repository.count_by(field="status")
        recent_summary = self.orders_repository.revenue_summary(query=recent_orders)
        return {
            "users": {
                "total": self.users_repository.count(),
                "newThisWeek": self.users_repository.count(query={"created_at": {"$gte": week_ago}}),
                "byRole": self.count_users_by_role(),
            },
            "orders": {
                "total": self.orders_repository.count(),
                "recent": recent_summary["totalOrders"],
                "revenue": recent_summary["totalRevenue"],
                "averageOrderValue": recent_summary["averageOrderValue"],
            },
            "products": {
                "total": self.products_repository.count(query=live_products),
                "inStock": self.products_repository.count(query={"quantity": {"$gt": 0}, "status": "available"}),
                "outOfStock": self.products_repository.count(
                    query={"$or": [{"quantity": 0}, {"status": "out_of_stock"}]}
                ),
                "lowStock": self.products_repository.count(
                    query={"quantity": {"$gt": 0, "$lte": self.low_stock_threshold}, "status": "available"}
                ),
                **self.products_repository.inventory_totals(query=live_products),
            },
            "suppliers": {
                "total": sum(by_supplier_status.values()),
                "byStatus": {s: by_supplier_status.get(s, 0) for s in SUPPLIER_STATUSES},
            },
            "reports": self.report_statistics(),
            "topProducts": self.orders_repository.top_products(query=recent_orders, limit=DASHBOARD_TOP_PRODUCTS),
            "generatedAt": to_iso(now),
        }

    def _analytics_window(
        self, start: datetime | None, end: datetime | None, *, default_start: Callable[[datetime], datetime]
    ) -> tuple[datetime, datetime]:
        end = parse_iso(end) or self._now()
        start = parse_iso(start) or default_start(end)
        if start > end:
            raise bad_request("INVALID_DATE_RANGE", "Start date must be before end date")
        return start, end

    @staticmethod
    def _placed_between(start: datetime, end: datetime) -> dict[str, Any]:
        return {"order_date": {"$gte": to_iso(start), "$lte": to_iso(end)}, "status": {"$ne": "cancelled"}}

    def sales_analytics(self, *, start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
        start, end = self._analytics_window(start, end, default_start=lambda e: e - DEFAULT_ANALYTICS_WINDOW)
        query = self._placed_between(start, end)
        summary = self.orders_repository.revenue_summary(query=query)
        trend = self.orders_repository.sales_by_period(key_length=DAY_KEY_LENGTH, query=query)
        return {
            "period": period_bounds(start, end),
            "totals": {
                "orders": summary["totalOrders"],
                "revenue": summary["totalRevenue"],
                "averageOrderValue": summary["averageOrderValue"],
            },
            "trend": [{"date": r["period"], "orders": r["orders"], "revenue": r["revenue"]} for r in trend],
            "topProducts": self.orders_repository.top_products(query=query, limit=ANALYTICS_TOP_PRODUCTS),
        }

    def product_analytics(self, *, start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
        """Per-product sales joined with the product's current catalog entry."""
        start, end = self._analytics_window(start, end, default_start=lambda e: e - DEFAULT_ANALYTICS_WINDOW)
        sales = self.orders_repository.product_sales(query=self._placed_between(start, end))
        catalog = {
            p["id"]: p
            for p in self.products_repository.find(query={"id": {"$in": [row["product_id"] for row in sales]}})
        }
        rows = []
        for row in sales:
            product = catalog.get(row["product_id"]) or {}
            rows.append(
                {
                    "productId": row["product_id"],
                    "productName": product.get("name") or row["product_name"],
                    "category": product.get("category"),
                    "currentStock": product.get("quantity"),
                    "status": product.get("status"),
                    "quantitySold": row["quantity_sold"],
                    "revenue": row["revenue"],
                    "orders": row["orders"],
                    "lastOrdered": row["last_ordered"],
                }
            )
        return {
            "period": period_bounds(start, end),
            "products": rows,
            "summary": {
                "totalProductsSold": sum(r["quantitySold"] for r in rows),
                "totalRevenue": round(sum(r["revenue"] for r in rows), 2),
                "totalOrders": self.orders_repository.count(query=self._placed_between(start, end)),
            },
        }

    def user_analytics(self, *, start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
        start, end = self._analytics_window(start, end, default_start=lambda e: e - DEFAULT_ANALYTICS_WINDOW)
        joined = {"created_at": {"$gte": to_iso(start), "$lte": to_iso(end)}}
        registrations = self.users_repository.registrations_by_day(query=joined)
        by_status = self.users_repository.count_by(field="status")
        return {
            "period": period_bounds(start, end),
            "registrations": {
                "total": sum(r["registrations"] for r in registrations),
                "trend": registrations,
            },
            "activity": {
                "activeUsers": self.orders_repository.distinct_count(
                    field="customer_id", query=self._placed_between(start, end)
                ),
            },
            "demographics": {
                "byRole": self.count_users_by_role(),
                "byStatus": {s: by_status.get(s, 0) for s in USER_STATUSES},
            },
        }

    def monthly_order_trends(self, *, start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
        start, end = self._analytics_window(
            start, end, default_start=lambda e: month_start(e, months_back=MONTHLY_TREND_MONTHS - 1)
        )
        months = self.orders_repository.sales_by_period(
            key_length=MONTH_KEY_LENGTH, query=self._placed_between(start, end)
        )
        orders = sum(m["orders"] for m in months)
        revenue = round(sum(m["revenue"] for m in months), 2)
        return {
            "period": period_bounds(start, end),
            "trends": [{"month": m.pop("period"), **m} for m in months],
            "summary": {
                "totalOrders": orders,
                "totalRevenue": revenue,
                "overallAverageOrderValue": round(revenue / orders, 2) if orders else 0.0,
            },
        }
