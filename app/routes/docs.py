from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.routing import APIRoute

from app import domain
from app.routes._deps import ok

router = APIRouter(tags=["docs"])


def describe_routes(routes: list[Any]) -> dict[str, list[dict[str, Any]]]:
    """Group mounted API routes by their first tag."""
    grouped: dict[str, list[dict[str, Any]]] = {}
    for route in routes:
        if not isinstance(route, APIRoute) or not route.include_in_schema:
            continue
        tag = str(route.tags[0]) if route.tags else "service"
        for method in sorted(route.methods or ()):
            grouped.setdefault(tag, []).append(
                {"method": method, "path": route.path, "summary": route.summary or route.name}
            )
    for entries in grouped.values():
        entries.sort(key=lambda e: (e["path"], e["method"]))
    return grouped


@router.get("/api-docs", summary="API reference")
def api_docs(request: Request):
    settings = request.app.state.settings
    data = {
        "title": f"{settings.app_name} API",
        "version": settings.app_version,
        "authentication": {
            "type": "Bearer token",
            "header": "Authorization: Bearer <token>",
            "obtain": "POST /api/auth/login or POST /api/auth/register",
        },
        "endpoints": describe_routes(request.app.routes),
        "models": {
            "roles": list(domain.ROLES),
            "userStatuses": list(domain.USER_STATUSES),
            "supplierCategories": list(domain.SUPPLIER_CATEGORIES),
            "supplierStatuses": list(domain.SUPPLIER_STATUSES),
            "productCategories": list(domain.PRODUCT_CATEGORIES),
            "productUnits": list(domain.PRODUCT_UNITS),
            "productStatuses": list(domain.PRODUCT_STATUSES),
            "orderStatuses": list(domain.ORDER_STATUSES),
            "paymentStatuses": list(domain.PAYMENT_STATUSES),
            "paymentMethods": list(domain.PAYMENT_METHODS),
            "reportTypes": list(domain.REPORT_TYPES),
            "reportStatuses": list(domain.REPORT_STATUSES),
            "reportPriorities": list(domain.REPORT_PRIORITIES),
            "stockChangeReasons": list(domain.STOCK_CHANGE_REASONS),
        },
    }
    return ok(request, data, "API documentation")
