from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.routes._deps import created, ok, paginated, pagination, require_roles
from app.schemas import SupplierCreateRequest, SupplierRatingRequest, SupplierUpdateRequest
from app.store import store

router = APIRouter(prefix="/api/suppliers", tags=["suppliers"])

staff = require_roles("admin", "shop_manager")
admin_only = require_roles("admin")


@router.get("", summary="List suppliers")
def list_suppliers(
    request: Request,
    province: str | None = Query(default=None),
    district: str | None = Query(default=None),
    status: str | None = Query(default=None),
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination(20)),
    user: dict[str, Any] = Depends(staff),
):
    filters = {
        "province": province,
        "district": district,
        "status": status,
        "category": category,
        "search": search,
    }
    return paginated(request, store.list_suppliers(filters=filters, **paging), "Suppliers retrieved successfully")


@router.get("/search", summary="Search active suppliers")
def search_suppliers(
    request: Request,
    q: str = Query(min_length=1),
    category: str | None = Query(default=None),
    province: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    user: dict[str, Any] = Depends(staff),
):
    data = store.search_suppliers(term=q, category=category, province=province, limit=limit)
    return ok(request, data, "Suppliers retrieved successfully")


@router.get("/active", summary="List active suppliers")
def active_suppliers(
    request: Request,
    category: str | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    return ok(request, store.active_suppliers(category=category), "Active suppliers retrieved successfully")


@router.get("/by-location", summary="Suppliers in a province or district")
def suppliers_by_location(
    request: Request,
    province: str | None = Query(default=None),
    district: str | None = Query(default=None),
    user: dict[str, Any] = Depends(staff),
):
    data = store.suppliers_by_location(province=province, district=district)
    return ok(request, data, "Suppliers retrieved successfully")


@router.get("/top-rated", summary="Top rated active suppliers")
def top_rated_suppliers(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
    user: dict[str, Any] = Depends(staff),
):
    return ok(request, store.top_rated_suppliers(limit=limit), "Top rated suppliers retrieved successfully")


@router.get("/statistics", summary="Supplier statistics")
def supplier_statistics(request: Request, user: dict[str, Any] = Depends(admin_only)):
    return ok(request, store.supplier_statistics(), "Supplier statistics retrieved successfully")


@router.get("/{supplier_id}", summary="Get a supplier")
def get_supplier(supplier_id: str, request: Request, user: dict[str, Any] = Depends(staff)):
    return ok(request, store.get_supplier(supplier_id=supplier_id), "Supplier retrieved successfully")


@router.post("", summary="Create a supplier")
def create_supplier(
    payload: SupplierCreateRequest,
    request: Request,
    user: dict[str, Any] = Depends(admin_only),
):
    data = store.create_supplier(payload=payload.model_dump(exclude_none=True))
    return created(request, data, "Supplier created successfully")


@router.put("/{supplier_id}", summary="Update a supplier")
def update_supplier(
    supplier_id: str,
    payload: SupplierUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(admin_only),
):
    data = store.update_supplier(supplier_id=supplier_id, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Supplier updated successfully")


@router.put("/{supplier_id}/rating", summary="Rate a supplier")
def rate_supplier(
    supplier_id: str,
    payload: SupplierRatingRequest,
    request: Request,
    user: dict[str, Any] = Depends(staff),
):
    data = store.rate_supplier(supplier_id=supplier_id, rating=payload.rating)
    return ok(request, data, "Supplier rating updated successfully")


@router.delete("/{supplier_id}", summary="Delete a supplier")
def delete_supplier(supplier_id: str, request: Request, user: dict[str, Any] = Depends(admin_only)):
    return ok(request, store.delete_supplier(supplier_id=supplier_id), "Supplier deleted successfully")


@router.get("/{supplier_id}/products", summary="Products of a supplier")
def supplier_products(
    supplier_id: str,
    request: Request,
    paging: dict[str, int] = Depends(pagination(20)),
    user: dict[str, Any] = Depends(staff),
):
    result = store.supplier_products(supplier_id=supplier_id, **paging)
    return paginated(request, result, "Supplier products retrieved successfully")


@router.get("/{supplier_id}/orders", summary="Orders containing a supplier's products")
def supplier_orders(
    supplier_id: str,
    request: Request,
    paging: dict[str, int] = Depends(pagination(20)),
    user: dict[str, Any] = Depends(staff),
):
    result = store.supplier_orders(supplier_id=supplier_id, **paging)
    return paginated(request, result, "Supplier orders retrieved successfully")
