from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.routes._deps import created, current_user, ok, paginated, pagination, require_roles
from app.schemas import OrderCreateRequest, OrderStatusRequest, OrderUpdateRequest
from app.store import store

router = APIRouter(prefix="/api/orders", tags=["orders"])

staff = require_roles("admin", "shop_manager")


@router.get("", summary="List orders")
def list_orders(
    request: Request,
    customer_id: str | None = Query(default=None),
    status: str | None = Query(default=None),
    payment_status: str | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    amount_min: float | None = Query(default=None, ge=0),
    amount_max: float | None = Query(default=None, ge=0),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination()),
    user: dict[str, Any] = Depends(staff),
):
    filters = {
        "customer_id": customer_id,
        "status": status,
        "payment_status": payment_status,
        "date_from": date_from,
        "date_to": date_to,
        "amount_min": amount_min,
        "amount_max": amount_max,
        "search": search,
    }
    return paginated(request, store.list_orders(filters=filters, **paging), "Orders retrieved successfully")


@router.get("/analytics", summary="Order totals over a date window")
def order_analytics(
    request: Request,
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    return ok(request, store.order_analytics(start=start, end=end), "Order analytics retrieved successfully")


@router.get("/user/{user_id}", summary="Orders placed by a user")
def orders_for_user(
    user_id: str,
    request: Request,
    status: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination()),
    user: dict[str, Any] = Depends(current_user),
):
    result = store.orders_for_user(user_id=user_id, actor=user, status=status, **paging)
    return paginated(request, result, "User orders retrieved successfully")


@router.get("/{order_id}", summary="Get an order")
def get_order(order_id: str, request: Request, user: dict[str, Any] = Depends(current_user)):
    return ok(request, store.get_order(order_id=order_id, actor=user), "Order retrieved successfully")


@router.post("", summary="Place an order")
def create_order(payload: OrderCreateRequest, request: Request, user: dict[str, Any] = Depends(current_user)):
    data = store.create_order(customer_id=user["id"], payload=payload.model_dump(exclude_none=True))
    return created(request, data, "Order created successfully")


@router.put("/{order_id}", summary="Update an order")
def update_order(
    order_id: str,
    payload: OrderUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(staff),
):
    data = store.update_order(order_id=order_id, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Order updated successfully")


@router.put("/{order_id}/status", summary="Move an order to a new status")
def set_order_status(
    order_id: str,
    payload: OrderStatusRequest,
    request: Request,
    user: dict[str, Any] = Depends(staff),
):
    data = store.set_order_status(order_id=order_id, status=payload.status)
    return ok(request, data, "Order status updated successfully")


@router.delete("/{order_id}", summary="Delete an order")
def delete_order(order_id: str, request: Request, user: dict[str, Any] = Depends(require_roles("admin"))):
    return ok(request, store.delete_order(order_id=order_id), "Order deleted successfully")
