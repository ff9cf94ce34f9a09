from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING

from app.repositories.base import InMemoryCollectionRepository, MongoCollectionRepository

INDEXES: list[dict[str, Any]] = [
    {"keys": [("order_number", ASCENDING)], "name": "uix_orders_number", "unique": True},
    {"keys": [("customer_id", ASCENDING), ("order_date", DESCENDING)], "name": "ix_orders_customer_date"},
    {"keys": [("status", ASCENDING), ("payment_status", ASCENDING)], "name": "ix_orders_status"},
    {"keys": [("items.product_id", ASCENDING)], "name": "ix_orders_items_product"},
]

TOP_PRODUCT_FIELDS = ("product_id", "product_name", "quantity_sold", "revenue")


def _top_products(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{field: row[field] for field in TOP_PRODUCT_FIELDS} for row in rows]


class InMemoryOrdersRepository(InMemoryCollectionRepository):
    unique_fields = ("order_number",)

    def revenue_summary(self, *, query: dict[str, Any] | None = None) -> dict[str, Any]:
        rows = self.find(query=query)
        revenue = round(sum(float(r.get("total_amount") or 0) for r in rows), 2)
        return {
            "totalOrders": len(rows),
            "totalRevenue": revenue,
            "averageOrderValue": round(revenue / len(rows), 2) if rows else 0.0,
        }

    def sales_by_period(self, *, key_length: int, query: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Group orders on a prefix of `order_date` (10 chars per day, 7 per month)."""
        buckets: dict[str, dict[str, Any]] = {}
        for order in self.find(query=query):
            key = str(order.get("order_date") or "")[:key_length]
            row = buckets.setdefault(key, {"period": key, "orders": 0, "revenue": 0.0})
            row["orders"] += 1
            row["revenue"] = round(row["revenue"] + float(order.get("total_amount") or 0), 2)
        out = []
        for key in sorted(buckets):
            row = buckets[key]
            row["averageOrderValue"] = round(row["revenue"] / row["orders"], 2)
            out.append(row)
        return out

    def product_sales(self, *, query: dict[str, Any] | None = None, limit: int = 0) -> list[dict[str, Any]]:
        totals: dict[str, dict[str, Any]] = {}
        for order in self.find(query=query):
            ordered_at = order.get("order_date")
            for item in order.get("items") or []:
                row = totals.setdefault(
                    str(item.get("product_id")),
                    {
                        "product_id": str(item.get("product_id")),
                        "product_name": item.get("product_name"),
                        "quantity_sold": 0,
                        "revenue": 0.0,
                        "orders": 0,
                        "last_ordered": ordered_at,
                    },
                )
                row["quantity_sold"] += int(item.get("quantity") or 0)
                row["revenue"] = round(row["revenue"] + float(item.get("total_price") or 0), 2)
                row["orders"] += 1
                if ordered_at and (row["last_ordered"] is None or ordered_at > row["last_ordered"]):
                    row["last_ordered"] = ordered_at
        ranked = sorted(totals.values(), key=lambda r: r["revenue"], reverse=True)
        return ranked[:limit] if limit > 0 else ranked

    def top_products(self, *, query: dict[str, Any] | None = None, limit: int = 5) -> list[dict[str, Any]]:
        return _top_products(self.product_sales(query=query, limit=limit))


class MongoOrdersRepository(MongoCollectionRepository):
    unique_fields = ("order_number",)

    def revenue_summary(self, *, query: dict[str, Any] | None = None) -> dict[str, Any]:
        rows = self.aggregate(
            [
                {"$match": self._to_mongo_query(query)},
                {
                    "$group": {
                        "_id": None,
                        "totalOrders": {"$sum": 1},
                        "totalRevenue": {"$sum": "$total_amount"},
                        "averageOrderValue": {"$avg": "$total_amount"},
                    }
                },
            ]
        )
        if not rows:
            return {"totalOrders": 0, "totalRevenue": 0.0, "averageOrderValue": 0.0}
        return {
            "totalOrders": int(rows[0].get("totalOrders") or 0),
            "totalRevenue": round(float(rows[0].get("totalRevenue") or 0), 2),
            "averageOrderValue": round(float(rows[0].get("averageOrderValue") or 0), 2),
        }

    def sales_by_period(self, *, key_length: int, query: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        rows = self.aggregate(
            [
                {"$match": self._to_mongo_query(query)},
                {
                    "$group": {
                        "_id": {"$substrBytes": ["$order_date", 0, key_length]},
                        "orders": {"$sum": 1},
                        "revenue": {"$sum": "$total_amount"},
                        "averageOrderValue": {"$avg": "$total_amount"},
                    }
                },
                {"$sort": {"_id": 1}},
            ]
        )
        return [
            {
                "period": str(row["_id"]),
                "orders": int(row.get("orders") or 0),
                "revenue": round(float(row.get("revenue") or 0), 2),
                "averageOrderValue": round(float(row.get("averageOrderValue") or 0), 2),
            }
            for row in rows
        ]

    def product_sales(self, *, query: dict[str, Any] | None = None, limit: int = 0) -> list[dict[str, Any]]:
        pipeline: list[dict[str, Any]] = [
            {"$match": self._to_mongo_query(query)},
            {"$unwind": "$items"},
            {
                "$group": {
                    "_id": "$items.product_id",
                    "product_name": {"$first": "$items.product_name"},
                    "quantity_sold": {"$sum": "$items.quantity"},
                    "revenue": {"$sum": "$items.total_price"},
                    "orders": {"$sum": 1},
                    "last_ordered": {"$max": "$order_date"},
                }
            },
            {"$sort": {"revenue": -1}},
        ]
        if limit > 0:
            pipeline.append({"$limit": limit})
        return [
            {
                "product_id": str(row["_id"]),
                "product_name": row.get("product_name"),
                "quantity_sold": int(row.get("quantity_sold") or 0),
                "revenue": round(float(row.get("revenue") or 0), 2),
                "orders": int(row.get("orders") or 0),
                "last_ordered": row.get("last_ordered"),
            }
            for row in self.aggregate(pipeline)
        ]

    def top_products(self, *, query: dict[str, Any] | None = None, limit: int = 5) -> list[dict[str, Any]]:
        return _top_products(self.product_sales(query=query, limit=limit))
