from __future__ import annotations

import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from app.config import AppSettings, configure_logging
from app.domain import to_iso
from app.errors import ApiError, DuplicateRecordError
from app.routes import analytics, auth, docs, inventory, orders, products, profiles, reports, shops, suppliers, users
from app.routes._deps import error_response, ok, request_id_from_request, trace_id_from_request
from app.security import JwtSecurityConfig, redact_sensitive
from app.store import store

logger = logging.getLogger(__name__)

SECURITY_CODES = frozenset({"AUTH_UNAUTHORIZED", "AUTH_FORBIDDEN"})
SCALAR_TYPES = (str, int, float, bool, type(None))


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    details: list[dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(err.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        entry: dict[str, Any] = {"field": ".".join(loc) or "body", "message": message}
        value = err.get("input")
        if isinstance(value, SCALAR_TYPES):
            entry["value"] = redact_sensitive({entry["field"]: value})[entry["field"]]  # type: ignore[index]
        details.append(entry)
    return details


def create_app() -> FastAPI:
    settings = AppSettings.from_env()
    configure_logging(settings)
    security_cfg = JwtSecurityConfig.from_env()
    started_at = time.monotonic()

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.settings = settings
    app.state.security_cfg = security_cfg

    if settings.cors_public:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    elif settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def add_trace_id(request: Request, call_next):
        incoming_trace_id = request.headers.get("x-trace-id", "").strip()
        request.state.trace_id = incoming_trace_id or uuid.uuid4().hex
        request.state.request_id = request.headers.get("x-request-id", f"req_{uuid.uuid4().hex[:12]}")
        request.state.auth_subject = "anonymous"
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["x-trace-id"] = trace_id_from_request(request)
        response.headers["x-request-id"] = request_id_from_request(request)
        logger.info(
            "request_completed method=%s path=%s status=%s duration_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        if exc.code in SECURITY_CODES:
            logger.warning(
                "security_blocked code=%s path=%s subject=%s",
                exc.code,
                request.url.path,
                getattr(request.state, "auth_subject", "anonymous"),
            )
        return error_response(
            request,
            code=exc.code,
            message=exc.message,
            error_class=exc.error_class,
            retryable=exc.retryable,
            status_code=exc.http_status,
            details=exc.details,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(
            request,
            code="REQ_VALIDATION_FAILED",
            message="Validation failed",
            error_class="validation",
            retryable=False,
            status_code=400,
            details={"errors": _validation_details(exc)},
        )

    @app.exception_handler(DuplicateRecordError)
    async def handle_duplicate(request: Request, exc: DuplicateRecordError):
        return error_response(
            request,
            code="DUPLICATE_KEY",
            message=f"{exc.field.capitalize()} already exists",
            error_class="business_rule",
            retryable=False,
            status_code=409,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(
                request,
                code="REQ_NOT_FOUND",
                message="Route not found",
                error_class="validation",
                retryable=False,
                status_code=404,
            )
        return error_response(
            request,
            code="REQ_HTTP_ERROR",
            message=str(exc.detail),
            error_class="validation",
            retryable=False,
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled_error path=%s error=%s", request.url.path, type(exc).__name__)
        return error_response(
            request,
            code="INTERNAL_ERROR",
            message="Internal server error",
            error_class="transient",
            retryable=True,
            status_code=500,
        )

    @app.get("/", tags=["service"], summary="Welcome")
    def root(request: Request):
        data = {
            "name": settings.app_name,
            "version": settings.app_version,
            "documentation": "/api-docs",
        }
        return ok(request, data, f"Welcome to the {settings.app_name} API")

    @app.get("/health", tags=["service"], summary="Liveness and database state")
    def health(request: Request):
        database_up = store.ping()
        data = {
            "status": "healthy",
            "timestamp": to_iso(datetime.now(UTC)),
            "uptime": round(time.monotonic() - started_at, 3),
            "environment": settings.app_env,
            "store_backend": store.backend_name,
            "database": "connected" if database_up else "disconnected",
        }
        return ok(request, data, "Service is healthy")

    for router in (
        auth.router,
        users.router,
        suppliers.router,
        products.router,
        inventory.router,
        orders.router,
        shops.router,
        reports.router,
        profiles.farmer_router,
        profiles.agent_router,
        analytics.router,
        docs.router,
    ):
        app.include_router(router)

    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")
    logger.info("app_created env=%s store_backend=%s", settings.app_env, store.backend_name)
    return app


app = create_app()
