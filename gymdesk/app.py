"""
Gymdesk back office: main application.

Assembles all packages: config, middleware, auth, entity CRUD, monday.com
sync, webhooks and reports.
"""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from gymdesk.config import settings, store_manager
from gymdesk.middleware import rate_limit
from gymdesk.monday.sync import close_monday_client
from gymdesk.utils import Logger, error_response
from gymdesk.utils.exceptions import AppError

# ── Route imports ────────────────────────────────────────────────
from gymdesk.auth.routes import auth_router
from gymdesk.members import members_router
from gymdesk.employees import employees_router
from gymdesk.contracts import contracts_router
from gymdesk.payments import payments_router
from gymdesk.products import products_router
from gymdesk.sales import sales_router
from gymdesk.schedule import schedule_router
from gymdesk.reports import reports_router
from gymdesk.monday.routes import monday_router
from gymdesk.webhooks.routes import webhook_logs_router, webhooks_router

logger = Logger("request")


# ── Request Logging Middleware ───────────────────────────────────
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request: method, path, status code, and duration."""

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        method = request.method
        path = request.url.path
        client = request.client.host if request.client else "unknown"

        logger.info(f"--> {method} {path} (from {client})")

        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round((time.time() - start) * 1000, 2)
            logger.error(f"<-- {method} {path} | 500 | {duration}ms")
            logger.error(f"    Exception: {exc}")
            raise

        duration = round((time.time() - start) * 1000, 2)
        status = response.status_code

        if status >= 500:
            logger.error(f"<-- {method} {path} | {status} | {duration}ms")
        elif status >= 400:
            logger.warning(f"<-- {method} {path} | {status} | {duration}ms")
        else:
            logger.info(f"<-- {method} {path} | {status} | {duration}ms")

        return response


# ── Lifespan ─────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    await store_manager.connect()
    yield
    await close_monday_client()
    store_manager.close()


# ── App factory ──────────────────────────────────────────────────
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Gym back office: members, staff, billing and monday.com sync",
        docs_url="/api/docs",
        lifespan=lifespan,
    )

    # ── CORS (must be first) ─────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
    )

    # ── Request logging (runs on every request) ──────────────
    app.add_middleware(RequestLoggingMiddleware)

    # ── Exception handlers ───────────────────────────────────
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
        response = error_response(exc.message, code=exc.status_code, details=exc.details)
        response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg"),
            }
            for err in exc.errors()
        ]
        return error_response("Validation error", code=400, details={"errors": errors})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}:")
        logger.error(traceback.format_exc())
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": str(exc) if settings.debug else "Internal server error",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    # ── Routes ───────────────────────────────────────────────
    v = settings.api_version  # "v1"
    api_limit = [Depends(rate_limit("api"))]

    app.include_router(
        auth_router,
        prefix=f"/api/{v}/auth",
        tags=["Authentication"],
    )
    app.include_router(
        members_router,
        prefix=f"/api/{v}/members",
        tags=["Members"],
        dependencies=api_limit,
    )
    app.include_router(
        employees_router,
        prefix=f"/api/{v}/employees",
        tags=["Employees"],
        dependencies=api_limit,
    )
    app.include_router(
        contracts_router,
        prefix=f"/api/{v}/contracts",
        tags=["Contracts"],
        dependencies=api_limit,
    )
    app.include_router(
        payments_router,
        prefix=f"/api/{v}/payments",
        tags=["Payments"],
        dependencies=api_limit,
    )
    app.include_router(
        products_router,
        prefix=f"/api/{v}/products",
        tags=["Products / Inventory"],
        dependencies=api_limit,
    )
    app.include_router(
        sales_router,
        prefix=f"/api/{v}/sales",
        tags=["Sales (POS)"],
        dependencies=api_limit,
    )
    app.include_router(
        schedule_router,
        prefix=f"/api/{v}/schedule",
        tags=["Class Schedule"],
        dependencies=api_limit,
    )
    app.include_router(
        reports_router,
        prefix=f"/api/{v}/reports",
        tags=["Reports"],
        dependencies=api_limit,
    )
    app.include_router(
        monday_router,
        prefix=f"/api/{v}/monday",
        tags=["monday.com Sync"],
    )
    app.include_router(
        webhooks_router,
        prefix=f"/api/{v}/webhooks",
        tags=["Webhooks"],
    )
    app.include_router(
        webhook_logs_router,
        prefix=f"/api/{v}/webhook-logs",
        tags=["Webhooks"],
        dependencies=api_limit,
    )

    # ── Health check ─────────────────────────────────────────
    @app.get("/health")
    async def health():
        store_ok = store_manager.is_connected and await store_manager.store.ping()
        return {
            "status": "healthy" if store_ok else "degraded",
            "app": settings.app_name,
            "version": settings.app_version,
            "store": store_manager.store.backend if store_manager.is_connected else settings.store_backend,
            "database": store_ok,
        }

    return app


# ── Create the app instance ──────────────────────────────────────
app = create_app()
