from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.routes._deps import ok, require_roles
from app.store import store

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

staff = require_roles("admin", "shop_manager")


@router.get("/dashboard", summary="Dashboard snapshot across all collections")
def dashboard(request: Request, user: dict[str, Any] = Depends(staff)):
    return ok(request, store.dashboard(), "Dashboard analytics retrieved successfully")


@router.get("/sales", summary="Revenue totals and daily trend")
def sales(
    request: Request,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    data = store.sales_analytics(start=start_date, end=end_date)
    return ok(request, data, "Sales analytics retrieved successfully")


@router.get("/products", summary="Units and revenue per product")
def products(
    request: Request,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    data = store.product_analytics(start=start_date, end=end_date)
    return ok(request, data, "Product analytics retrieved successfully")


@router.get("/users", summary="Registrations, activity and user mix")
def users(
    request: Request,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    user: dict[str, Any] = Depends(require_roles("admin")),
):
    data = store.user_analytics(start=start_date, end=end_date)
    return ok(request, data, "User analytics retrieved successfully")


@router.get("/orders/monthly", summary="Order counts and revenue per month")
def monthly_orders(
    request: Request,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    data = store.monthly_order_trends(start=start_date, end=end_date)
    return ok(request, data, "Monthly order trends retrieved successfully")
