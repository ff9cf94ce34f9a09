from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.routes._deps import current_user, ok, paginated, pagination, require_roles
from app.schemas import UserRoleRequest, UserStatusRequest, UserUpdateRequest
from app.store import store

router = APIRouter(prefix="/api/users", tags=["users"])


def _list_by_role(
    request: Request,
    *,
    role: str | None,
    status: str | None,
    search: str | None,
    paging: dict[str, int],
    message: str,
):
    filters = {"role": role, "status": status, "search": search}
    return paginated(request, store.list_users(filters=filters, **paging), message)


@router.get("", summary="List users")
def list_users(
    request: Request,
    role: str | None = Query(default=None),
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination()),
    user: dict[str, Any] = Depends(require_roles("admin")),
):
    return _list_by_role(
        request,
        role=role,
        status=status,
        search=search,
        paging=paging,
        message="Users retrieved successfully",
    )


@router.get("/search", summary="Search users by name or email")
def search_users(
    request: Request,
    q: str = Query(min_length=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: dict[str, Any] = Depends(require_roles("admin", "agent")),
):
    return ok(request, store.search_users(term=q, limit=limit), "Users retrieved successfully")


@router.get("/farmers", summary="List farmers")
def list_farmers(
    request: Request,
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination()),
    user: dict[str, Any] = Depends(require_roles("admin", "agent")),
):
    return _list_by_role(
        request,
        role="farmer",
        status=status,
        search=search,
        paging=paging,
        message="Farmers retrieved successfully",
    )


@router.get("/agents", summary="List agents")
def list_agents(
    request: Request,
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination()),
    user: dict[str, Any] = Depends(require_roles("admin")),
):
    return _list_by_role(
        request,
        role="agent",
        status=status,
        search=search,
        paging=paging,
        message="Agents retrieved successfully",
    )


@router.get("/shop-managers", summary="List shop managers")
def list_shop_managers(
    request: Request,
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination()),
    user: dict[str, Any] = Depends(require_roles("admin")),
):
    return _list_by_role(
        request,
        role="shop_manager",
        status=status,
        search=search,
        paging=paging,
        message="Shop managers retrieved successfully",
    )


@router.get("/{user_id}", summary="Get a user")
def get_user(user_id: str, request: Request, user: dict[str, Any] = Depends(current_user)):
    return ok(request, store.get_user(user_id=user_id), "User retrieved successfully")


@router.put("/{user_id}", summary="Update a user")
def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    data = store.update_user(user_id=user_id, actor=user, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "User updated successfully")


@router.put("/{user_id}/status", summary="Activate or deactivate a user")
def set_user_status(
    user_id: str,
    payload: UserStatusRequest,
    request: Request,
    user: dict[str, Any] = Depends(require_roles("admin")),
):
    data = store.set_user_status(user_id=user_id, status=payload.status)
    return ok(request, data, "User status updated successfully")


@router.put("/{user_id}/role", summary="Change a user's role")
def set_user_role(
    user_id: str,
    payload: UserRoleRequest,
    request: Request,
    user: dict[str, Any] = Depends(require_roles("admin")),
):
    data = store.set_user_role(user_id=user_id, role=payload.role)
    return ok(request, data, "User role updated successfully")


@router.delete("/{user_id}", summary="Delete a user")
def delete_user(user_id: str, request: Request, user: dict[str, Any] = Depends(require_roles("admin"))):
    data = store.delete_user(user_id=user_id, actor_id=user["id"])
    return ok(request, data, "User deleted successfully")
