from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Query, Request
from fastapi.responses import JSONResponse

from app.errors import forbidden
from app.schemas import error_envelope, success_envelope
from app.security import parse_and_validate_bearer_token
from app.store import store

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def trace_id_from_request(request: Request) -> str:
    trace_id = getattr(request.state, "trace_id", None)
    if trace_id:
        return trace_id
    return uuid.uuid4().hex


def request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    return f"req_{uuid.uuid4().hex[:12]}"


def error_response(
    request: Request,
    *,
    code: str,
    message: str,
    error_class: str,
    retryable: bool,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_envelope(
            code=code,
            message=message,
            error_class=error_class,
            retryable=retryable,
            trace_id=trace_id_from_request(request),
            details=details,
        ),
    )


def ok(request: Request, data: Any, message: str = "Request successful") -> dict[str, Any]:
    return success_envelope(data, trace_id_from_request(request), message)


def created(request: Request, data: Any, message: str = "Resource created successfully") -> JSONResponse:
    return JSONResponse(status_code=201, content=success_envelope(data, trace_id_from_request(request), message))


def paginated(request: Request, result: dict[str, Any], message: str = "Request successful") -> dict[str, Any]:
    return success_envelope(
        result["items"],
        trace_id_from_request(request),
        message,
        pagination=result["pagination"],
    )


def current_user(request: Request) -> dict[str, Any]:
    """Resolve the bearer token to an active account and remember it on the request."""
    auth_ctx = parse_and_validate_bearer_token(
        authorization=request.headers.get("Authorization"),
        cfg=request.app.state.security_cfg,
    )
    user = store.get_active_user(user_id=auth_ctx.subject)
    request.state.auth_subject = user["id"]
    request.state.auth_role = user["role"]
    return user


def require_roles(*roles: str) -> Callable[[Request], dict[str, Any]]:
    allowed = frozenset(roles)

    def dependency(request: Request) -> dict[str, Any]:
        user = current_user(request)
        if user["role"] not in allowed:
            raise forbidden("Insufficient permissions")
        return user

    return dependency


def pagination(default_limit: int = DEFAULT_PAGE_LIMIT) -> Callable[..., dict[str, int]]:
    def dependency(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=default_limit, ge=1, le=MAX_PAGE_LIMIT),
    ) -> dict[str, int]:
        return {"page": page, "limit": limit}

    return dependency
