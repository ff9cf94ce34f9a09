from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta, timezone

import pytest

from app.domain import (
    agent_location,
    apply_rating,
    apply_stock_operation,
    can_be_returned,
    delivery_status,
    full_address,
    generate_order_number,
    generate_sku,
    is_overdue,
    month_start,
    next_agent_code,
    order_totals,
    pagination_meta,
    parse_iso,
    period_bounds,
    rating_description,
    stock_change_entry,
    stock_status,
    sync_product_status,
    to_iso,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("rating", "label"),
    [(5, "Excellent"), (4.5, "Excellent"), (4.2, "Very Good"), (3, "Good"), (2.9, "Fair"), (1.99, "Poor"), (None, "Poor")],
)
def test_rating_description_thresholds(rating, label):
    assert rating_description(rating) == label


def test_apply_rating_averages_and_rejects_out_of_range():
    assert apply_rating(4.0, 5) == 4.5
    assert apply_rating(None, 3) == 1.5
    with pytest.raises(ValueError):
        apply_rating(3.0, 5.5)


def test_full_address_includes_postal_code_and_country():
    address = {"street_address": "KN 5 Rd", "city": "Kigali", "province": "Kigali", "postal_code": "00100"}
    assert full_address(address) == "KN 5 Rd, Kigali, Kigali, 00100, Rwanda"
    assert full_address({**address, "country": "Uganda"}).endswith("Uganda")
    assert full_address(None) == ""


def test_product_stock_rules():
    assert sync_product_status(0, "available") == "out_of_stock"
    assert sync_product_status(3, "out_of_stock") == "available"
    assert sync_product_status(0, "discontinued") == "discontinued"
    assert stock_status(0) == "Out of Stock"
    assert stock_status(10) == "Low Stock"
    assert stock_status(11) == "In Stock"
    assert apply_stock_operation(5, operation="add", amount=3) == 8
    assert apply_stock_operation(5, operation="subtract", amount=9) == 0
    assert apply_stock_operation(5, operation="set", amount=2) == 2
    with pytest.raises(ValueError):
        apply_stock_operation(5, operation="double", amount=1)


def test_generate_sku_uses_category_name_and_clock():
    sku = generate_sku("pest-management", "Neem oil 1L", now=NOW)
    stamp = str(int(NOW.timestamp() * 1000))[-6:]
    assert sku == f"PES-NEE-{stamp}"


def test_generate_order_number_is_deterministic_with_seeded_rng():
    first = generate_order_number(now=NOW, rng=random.Random(7))
    second = generate_order_number(now=NOW, rng=random.Random(7))
    assert first == second
    assert first.startswith(f"ORD-{int(NOW.timestamp() * 1000)}-")
    assert len(first.rsplit("-", 1)[1]) == 3


def test_order_totals():
    items = [{"unit_price": 25.0, "quantity": 2}, {"unit_price": 3.333, "quantity": 3}]
    totals = order_totals(items)
    assert totals["subtotal"] == 60.0
    assert totals["tax_amount"] == 6.0
    assert totals["shipping_cost"] == 10.0
    assert totals["total_amount"] == 76.0
    assert order_totals([{"unit_price": 1, "quantity": 1}], discount_amount=100)["total_amount"] == 0.0


def test_delivery_status_and_return_window():
    assert delivery_status({"status": "pending"}, now=NOW) == "Pending"
    assert delivery_status({"status": "confirmed"}, now=NOW) == "Confirmed"
    assert delivery_status({"status": "processing"}, now=NOW) == "Processing"
    assert delivery_status({"status": "shipped"}, now=NOW) == "In Transit"
    late = {"status": "shipped", "expected_delivery_date": to_iso(NOW - timedelta(days=1))}
    assert delivery_status(late, now=NOW) == "Overdue"
    assert delivery_status({"status": "delivered"}, now=NOW) == "Delivered"

    delivered = {"status": "delivered", "delivered_date": to_iso(NOW - timedelta(days=6))}
    assert can_be_returned(delivered, now=NOW)
    assert not can_be_returned({**delivered, "delivered_date": to_iso(NOW - timedelta(days=8))}, now=NOW)
    assert not can_be_returned({"status": "shipped"}, now=NOW)


def test_report_overdue_rule():
    past = to_iso(NOW - timedelta(hours=1))
    assert is_overdue({"status": "pending", "scheduled_date": past}, now=NOW)
    assert is_overdue({"status": "in_progress", "scheduled_date": past}, now=NOW)
    assert not is_overdue({"status": "completed", "scheduled_date": past}, now=NOW)
    assert not is_overdue({"status": "pending", "scheduled_date": to_iso(NOW + timedelta(hours=1))}, now=NOW)


def test_agent_codes_and_location():
    assert next_agent_code(None) == "AGT000001"
    assert next_agent_code("AGT000041") == "AGT000042"
    assert next_agent_code("garbage") == "AGT000001"
    assert agent_location({"sector": "Kimironko", "district": "Gasabo", "province": "Kigali"}) == (
        "Kimironko, Gasabo, Kigali, Rwanda"
    )
    assert agent_location({}) == "Rwanda"


def test_iso_helpers_normalize_to_utc():
    kigali = timezone(timedelta(hours=2))
    assert to_iso(datetime(2024, 1, 1, 14, 0, tzinfo=kigali)) == "2024-01-01T12:00:00.000+00:00"
    assert to_iso(datetime(2024, 1, 1, 12, 0)) == "2024-01-01T12:00:00.000+00:00"
    assert parse_iso("2024-01-01T12:00:00Z") == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert parse_iso("") is None
    assert parse_iso(None) is None


def test_pagination_meta():
    assert pagination_meta(page=2, limit=10, total=25) == {
        "page": 2,
        "limit": 10,
        "total": 25,
        "totalPages": 3,
        "hasNext": True,
        "hasPrev": True,
    }
    assert pagination_meta(page=1, limit=10, total=0)["totalPages"] == 0


def test_month_start_walks_back_across_years():
    assert month_start(NOW) == datetime(2024, 5, 1, tzinfo=UTC)
    assert month_start(NOW, months_back=11) == datetime(2023, 6, 1, tzinfo=UTC)
    assert month_start(datetime(2024, 1, 31, 23, 0), months_back=1) == datetime(2023, 12, 1, tzinfo=UTC)
    late_kigali = datetime(2024, 6, 1, 1, 0, tzinfo=timezone(timedelta(hours=2)))
    assert month_start(late_kigali) == datetime(2024, 5, 1, tzinfo=UTC)


def test_period_bounds_are_utc_days():
    assert period_bounds(NOW - timedelta(days=30), NOW) == {"start": "2024-04-01", "end": "2024-05-01"}


def test_stock_change_entry():
    product = {"id": "p1", "supplier_id": "s1", "quantity": 50}
    entry = stock_change_entry(product, new_quantity=45, reason="damage", created_at=to_iso(NOW))
    assert entry == {
        "product_id": "p1",
        "supplier_id": "s1",
        "previous_quantity": 50,
        "new_quantity": 45,
        "change_amount": -5,
        "reason": "damage",
        "created_at": "2024-05-01T12:00:00.000+00:00",
    }
    entry = stock_change_entry(
        product, new_quantity=60, reason="restock", created_at=to_iso(NOW), notes="Delivery", created_by="u1"
    )
    assert entry["change_amount"] == 10
    assert (entry["notes"], entry["created_by"]) == ("Delivery", "u1")
