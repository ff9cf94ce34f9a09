from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from app.routes._deps import created, ok, require_roles
from app.schemas import ShopCreateRequest, ShopUpdateRequest
from app.store import store

router = APIRouter(prefix="/api/shops", tags=["shops"])

staff = require_roles("admin", "shop_manager")


@router.post("", summary="Register a shop")
def create_shop(payload: ShopCreateRequest, request: Request, user: dict[str, Any] = Depends(require_roles("admin"))):
    data = store.create_shop(payload=payload.model_dump(), created_by=user["id"])
    return created(request, data, "Shop created successfully")


@router.get("", summary="List shops")
def list_shops(request: Request, user: dict[str, Any] = Depends(staff)):
    return ok(request, store.list_shops(), "Shops retrieved successfully")


@router.get("/{shop_id}", summary="Get a shop")
def get_shop(shop_id: str, request: Request, user: dict[str, Any] = Depends(staff)):
    return ok(request, store.get_shop(shop_id=shop_id), "Shop retrieved successfully")


@router.put("/{shop_id}", summary="Update a shop")
def update_shop(
    shop_id: str,
    payload: ShopUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(staff),
):
    data = store.update_shop(shop_id=shop_id, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Shop updated successfully")


@router.delete("/{shop_id}", summary="Delete a shop")
def delete_shop(shop_id: str, request: Request, user: dict[str, Any] = Depends(staff)):
    return ok(request, store.delete_shop(shop_id=shop_id), "Shop deleted successfully")
