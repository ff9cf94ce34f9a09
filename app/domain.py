"""Field enumerations and derived-field rules shared by the store and routes.

Everything here is pure: callers pass the current time where it matters so the
rules stay deterministic under test.
"""

from __future__ import annotations

import math
import random
import re
import string
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any, Literal, get_args

Role = Literal["admin", "agent", "farmer", "shop_manager"]
UserStatus = Literal["active", "inactive"]
SupplierCategory = Literal[
    "seeds_supplier",
    "fertilizer_supplier",
    "equipment_supplier",
    "produce_buyer",
    "input_distributor",
    "logistics_provider",
    "financial_services",
    "other",
]
SupplierStatus = Literal["active", "inactive", "pending_approval", "suspended"]
ProductCategory = Literal["irrigation", "harvesting", "containers", "pest-management"]
ProductUnit = Literal[
    "kg", "g", "lb", "oz", "ton", "liter", "ml", "gallon", "piece", "dozen", "box", "bag", "bottle", "can", "packet"
]
ProductStatus = Literal["available", "out_of_stock", "discontinued"]
OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "returned"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
PaymentMethod = Literal["cash", "mobile_money", "bank_transfer", "credit_card", "debit_card"]
ReportType = Literal["inspection", "audit", "assessment", "survey", "other"]
ReportStatus = Literal["pending", "in_progress", "completed", "cancelled"]
ReportPriority = Literal["low", "medium", "high", "urgent"]
StockChangeReason = Literal["restock", "sale", "adjustment", "damage", "return", "other"]

ROLES: tuple[str, ...] = get_args(Role)
USER_STATUSES: tuple[str, ...] = get_args(UserStatus)
SUPPLIER_CATEGORIES: tuple[str, ...] = get_args(SupplierCategory)
SUPPLIER_STATUSES: tuple[str, ...] = get_args(SupplierStatus)
PRODUCT_CATEGORIES: tuple[str, ...] = get_args(ProductCategory)
PRODUCT_UNITS: tuple[str, ...] = get_args(ProductUnit)
PRODUCT_STATUSES: tuple[str, ...] = get_args(ProductStatus)
ORDER_STATUSES: tuple[str, ...] = get_args(OrderStatus)
PAYMENT_STATUSES: tuple[str, ...] = get_args(PaymentStatus)
PAYMENT_METHODS: tuple[str, ...] = get_args(PaymentMethod)
REPORT_TYPES: tuple[str, ...] = get_args(ReportType)
REPORT_STATUSES: tuple[str, ...] = get_args(ReportStatus)
REPORT_PRIORITIES: tuple[str, ...] = get_args(ReportPriority)
STOCK_CHANGE_REASONS: tuple[str, ...] = get_args(StockChangeReason)

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
PHONE_PATTERN = r"^[+]?[\d\s\-\(\)]{10,15}$"
WEBSITE_PATTERN = r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"

TAX_RATE = 0.10
FLAT_SHIPPING_COST = 10.0
LOW_STOCK_LEVEL = 10
RETURN_WINDOW = timedelta(days=7)
LOCKED_ORDER_STATUSES = frozenset({"confirmed", "processing", "shipped", "delivered"})

PAYMENT_STATUS_DESCRIPTIONS = {
    "pending": "Payment Pending",
    "paid": "Payment Completed",
    "failed": "Payment Failed",
    "refunded": "Payment Refunded",
}


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string with millisecond precision.

    Naive datetimes are taken to be UTC. A fixed precision keeps stored
    timestamps lexically ordered, which the repositories rely on for range
    filters and sorting.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds")


def parse_iso(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def pagination_meta(*, page: int, limit: int, total: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


# analytics

DAY_KEY_LENGTH = len("YYYY-MM-DD")
MONTH_KEY_LENGTH = len("YYYY-MM")
INVENTORY_CURRENCY = "RWF"


def month_start(value: datetime, *, months_back: int = 0) -> datetime:
    """First instant (UTC) of the month `months_back` months before `value`."""
    value = value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)
    index = value.year * 12 + (value.month - 1) - months_back
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=UTC)


def period_bounds(start: datetime, end: datetime) -> dict[str, str]:
    return {"start": to_iso(start)[:DAY_KEY_LENGTH], "end": to_iso(end)[:DAY_KEY_LENGTH]}


# suppliers


def rating_description(rating: float | None) -> str:
    value = float(rating or 0)
    if value >= 4.5:
        return "Excellent"
    if value >= 4.0:
        return "Very Good"
    if value >= 3.0:
        return "Good"
    if value >= 2.0:
        return "Fair"
    return "Poor"


def full_address(address: Mapping[str, Any] | None) -> str:
    if not address:
        return ""
    parts = [address.get("street_address"), address.get("city"), address.get("province")]
    if address.get("postal_code"):
        parts.append(address.get("postal_code"))
    parts.append(address.get("country") or "Rwanda")
    return ", ".join(str(p) for p in parts if p)


def clamp_rating(rating: float) -> float:
    return max(0.0, min(5.0, float(rating)))


def apply_rating(current: float | None, new_rating: float) -> float:
    if new_rating < 0 or new_rating > 5:
        raise ValueError("rating must be between 0 and 5")
    return clamp_rating((float(current or 0) + new_rating) / 2)


def increment_orders(total_orders: int | None, count: int = 1) -> int:
    return max(0, int(total_orders or 0) + count)


def supplier_view(supplier: Mapping[str, Any]) -> dict[str, Any]:
    item = dict(supplier)
    item["rating_description"] = rating_description(item.get("rating"))
    item["full_address"] = full_address(item.get("address"))
    return item


# products


def sync_product_status(quantity: int, status: str) -> str:
    if quantity == 0 and status == "available":
        return "out_of_stock"
    if quantity > 0 and status == "out_of_stock":
        return "available"
    return status


def stock_status(quantity: int, *, low_level: int = LOW_STOCK_LEVEL) -> str:
    if quantity <= 0:
        return "Out of Stock"
    if quantity <= low_level:
        return "Low Stock"
    return "In Stock"


def is_in_stock(product: Mapping[str, Any]) -> bool:
    return int(product.get("quantity") or 0) > 0 and product.get("status") == "available"


def generate_sku(category: str, name: str, *, now: datetime) -> str:
    prefix = re.sub(r"[^A-Z]", "", category.upper())[:3]
    name_part = re.sub(r"[^A-Z]", "", name.upper())[:3]
    stamp = str(int(now.timestamp() * 1000))[-6:]
    return f"{prefix}-{name_part}-{stamp}"


def apply_stock_operation(quantity: int, *, operation: str, amount: int) -> int:
    if operation == "add":
        return quantity + amount
    if operation == "subtract":
        return max(0, quantity - amount)
    if operation == "set":
        return max(0, amount)
    raise ValueError(f"unknown stock operation: {operation}")


def stock_change_entry(
    product: Mapping[str, Any],
    *,
    new_quantity: int,
    reason: str,
    created_at: str,
    notes: str | None = None,
    created_by: str | None = None,
) -> dict[str, Any]:
    previous = int(product.get("quantity") or 0)
    entry: dict[str, Any] = {
        "product_id": str(product["id"]),
        "supplier_id": product.get("supplier_id"),
        "previous_quantity": previous,
        "new_quantity": new_quantity,
        "change_amount": new_quantity - previous,
        "reason": reason,
        "created_at": created_at,
    }
    if notes:
        entry["notes"] = notes
    if created_by:
        entry["created_by"] = created_by
    return entry


def product_view(product: Mapping[str, Any]) -> dict[str, Any]:
    item = dict(product)
    quantity = int(item.get("quantity") or 0)
    item["total_value"] = round(float(item.get("price") or 0) * quantity, 2)
    item["stock_status"] = stock_status(quantity)
    item["in_stock"] = is_in_stock(item)
    return item


# orders


def generate_order_number(*, now: datetime, rng: random.Random | None = None) -> str:
    chooser = rng or random.SystemRandom()
    suffix = "".join(chooser.choice(string.ascii_uppercase + string.digits) for _ in range(3))
    return f"ORD-{int(now.timestamp() * 1000)}-{suffix}"


def order_totals(
    items: list[Mapping[str, Any]],
    *,
    tax_rate: float = TAX_RATE,
    shipping_cost: float = FLAT_SHIPPING_COST,
    discount_amount: float = 0.0,
) -> dict[str, float]:
    subtotal = round(sum(float(i["unit_price"]) * int(i["quantity"]) for i in items), 2)
    tax_amount = round(subtotal * tax_rate, 2)
    total = max(0.0, subtotal + tax_amount + shipping_cost - discount_amount)
    return {
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "shipping_cost": shipping_cost,
        "discount_amount": discount_amount,
        "total_amount": round(total, 2),
    }


def delivery_status(order: Mapping[str, Any], *, now: datetime) -> str:
    status = order.get("status")
    if status == "delivered":
        return "Delivered"
    if status == "shipped":
        expected = parse_iso(order.get("expected_delivery_date"))
        if expected is not None and now > expected:
            return "Overdue"
        return "In Transit"
    if status == "processing":
        return "Processing"
    if status == "confirmed":
        return "Confirmed"
    return "Pending"


def can_be_cancelled(order: Mapping[str, Any]) -> bool:
    return order.get("status") in {"pending", "confirmed"}


def can_be_returned(order: Mapping[str, Any], *, now: datetime) -> bool:
    delivered = parse_iso(order.get("delivered_date"))
    if order.get("status") != "delivered" or delivered is None:
        return False
    return now - delivered <= RETURN_WINDOW


def order_view(order: Mapping[str, Any], *, now: datetime) -> dict[str, Any]:
    item = dict(order)
    items = item.get("items") or []
    item["delivery_status"] = delivery_status(item, now=now)
    item["payment_status_description"] = PAYMENT_STATUS_DESCRIPTIONS.get(str(item.get("payment_status")), "Unknown")
    item["can_be_cancelled"] = can_be_cancelled(item)
    item["can_be_returned"] = can_be_returned(item, now=now)
    item["summary"] = {
        "item_count": len(items),
        "total_quantity": sum(int(i.get("quantity") or 0) for i in items),
        "subtotal": item.get("subtotal", 0),
        "tax_amount": item.get("tax_amount", 0),
        "shipping_cost": item.get("shipping_cost", 0),
        "discount_amount": item.get("discount_amount", 0),
        "total_amount": item.get("total_amount", 0),
    }
    return item


# reports


def is_overdue(report: Mapping[str, Any], *, now: datetime) -> bool:
    if report.get("status") in {"completed", "cancelled"}:
        return False
    scheduled = parse_iso(report.get("scheduled_date"))
    return scheduled is not None and scheduled < now


def report_view(report: Mapping[str, Any], *, now: datetime) -> dict[str, Any]:
    item = dict(report)
    item["is_overdue"] = is_overdue(item, now=now)
    return item


# agents

AGENT_CODE_RE = re.compile(r"^AGT(\d{6})$")


def next_agent_code(last_code: str | None) -> str:
    match = AGENT_CODE_RE.match(last_code or "")
    number = int(match.group(1)) + 1 if match else 1
    return f"AGT{number:06d}"


def agent_location(profile: Mapping[str, Any]) -> str:
    parts = [profile.get("sector"), profile.get("district"), profile.get("province")]
    present = [str(p) for p in parts if p]
    return ", ".join([*present, "Rwanda"])
