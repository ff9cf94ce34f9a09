from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.routes._deps import ok, paginated, pagination, require_roles
from app.schemas import StockAdjustmentRequest
from app.store import store

router = APIRouter(prefix="/api/inventory", tags=["inventory"])

staff = require_roles("admin", "shop_manager")


@router.get("", summary="Every product with its stock level")
def list_inventory(
    request: Request,
    paging: dict[str, int] = Depends(pagination(20)),
    user: dict[str, Any] = Depends(require_roles("admin")),
):
    return paginated(request, store.list_inventory(**paging), "Inventory retrieved successfully")


@router.get("/low-stock", summary="Available products at or under the threshold")
def low_stock(
    request: Request,
    threshold: int | None = Query(default=None, ge=0),
    supplier_id: str | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    data = store.low_stock_products(threshold=threshold, supplier_id=supplier_id)
    return ok(request, data, "Low stock items retrieved")


@router.get("/out-of-stock", summary="Products with nothing left to sell")
def out_of_stock(
    request: Request,
    supplier_id: str | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    return ok(request, store.out_of_stock_products(supplier_id=supplier_id), "Out of stock items retrieved")


@router.post("/stock-adjustment", summary="Apply a signed stock change")
def stock_adjustment(payload: StockAdjustmentRequest, request: Request, user: dict[str, Any] = Depends(staff)):
    data = store.adjust_stock(
        product_id=payload.product_id,
        change=payload.quantity,
        reason=payload.reason,
        notes=payload.notes,
        actor=user,
    )
    return ok(request, data, "Stock adjusted successfully")


@router.get("/history", summary="Stock change audit trail")
def stock_history(
    request: Request,
    product_id: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination(20)),
    user: dict[str, Any] = Depends(staff),
):
    data = store.stock_history(product_id=product_id, **paging)
    return paginated(request, data, "Stock history retrieved successfully")


@router.get("/valuation", summary="Stock value of everything not discontinued")
def valuation(
    request: Request,
    supplier_id: str | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    return ok(request, store.inventory_valuation(supplier_id=supplier_id), "Inventory valuation retrieved")
