from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.routes._deps import created, ok, paginated, pagination, require_roles
from app.schemas import ProductCreateRequest, ProductUpdateRequest, StockUpdateRequest
from app.store import store

router = APIRouter(prefix="/api/products", tags=["products"])

staff = require_roles("admin", "shop_manager")


@router.get("", summary="Browse the product catalog")
def list_products(
    request: Request,
    category: str | None = Query(default=None),
    supplier_id: str | None = Query(default=None),
    status: str | None = Query(default=None),
    price_min: float | None = Query(default=None, ge=0),
    price_max: float | None = Query(default=None, ge=0),
    in_stock: bool | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination(20)),
):
    filters = {
        "category": category,
        "supplier_id": supplier_id,
        "status": status,
        "price_min": price_min,
        "price_max": price_max,
        "in_stock": in_stock,
        "search": search,
    }
    return paginated(request, store.list_products(filters=filters, **paging), "Products retrieved successfully")


@router.get("/low-stock", summary="Available products running low")
def low_stock_products(
    request: Request,
    threshold: int | None = Query(default=None, ge=0),
    user: dict[str, Any] = Depends(staff),
):
    return ok(request, store.low_stock_products(threshold=threshold), "Low stock products retrieved successfully")


@router.get("/{product_id}", summary="Get a product")
def get_product(product_id: str, request: Request):
    return ok(request, store.get_product(product_id=product_id), "Product retrieved successfully")


@router.post("", summary="Create a product")
def create_product(payload: ProductCreateRequest, request: Request, user: dict[str, Any] = Depends(staff)):
    data = store.create_product(payload=payload.model_dump(exclude_none=True))
    return created(request, data, "Product created successfully")


@router.put("/{product_id}", summary="Update a product")
def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(staff),
):
    data = store.update_product(product_id=product_id, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Product updated successfully")


@router.delete("/{product_id}", summary="Discontinue a product")
def delete_product(product_id: str, request: Request, user: dict[str, Any] = Depends(require_roles("admin"))):
    return ok(request, store.discontinue_product(product_id=product_id), "Product discontinued successfully")


@router.put("/{product_id}/stock", summary="Adjust stock")
def update_stock(
    product_id: str,
    payload: StockUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(staff),
):
    data = store.update_stock(
        product_id=product_id,
        quantity=payload.quantity,
        operation=payload.operation,
        amount=payload.amount,
        actor=user,
    )
    return ok(request, data, "Stock updated successfully")
