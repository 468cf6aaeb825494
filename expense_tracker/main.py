"""
Expense Tracker API

Main FastAPI application with security hardening.
"""

import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from expense_tracker import __version__
from expense_tracker.api.v1.api import api_router
from expense_tracker.auth.guard import enforce_route_policy
from expense_tracker.auth.password import hash_password
from expense_tracker.core import config
from expense_tracker.core.database import async_session_maker, close_db, get_db, init_db
from expense_tracker.core.errors import ServiceError, TokenRejectedError
from expense_tracker.core.logging import configure_logging, get_logger, request_id_var, set_request_id
from expense_tracker.core.responses import error_response
from expense_tracker.models.account import Role
from expense_tracker.repositories.accounts import AccountStore
from expense_tracker.schemas.common import HealthResponse

logger = get_logger(__name__)


# =============================================================================
# Application Lifespan (startup/shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    configure_logging()
    logger.info("app_starting", version=__version__)

    await init_db()
    logger.info("database_initialized")

    await create_default_admin_if_needed()

    yield

    logger.info("app_stopping")
    await close_db()


async def create_default_admin_if_needed():
    """Create the configured admin account when the accounts table is empty."""
    if not config.DEFAULT_ADMIN_EMAIL or not config.DEFAULT_ADMIN_PASSWORD:
        return

    async with async_session_maker() as session:
        store = AccountStore(session)
        if await store.count() > 0:
            return

        password_hash = await run_in_threadpool(hash_password, config.DEFAULT_ADMIN_PASSWORD)
        admin = await store.create(
            email=config.DEFAULT_ADMIN_EMAIL,
            password_hash=password_hash,
            first_name="Expense",
            last_name="Administrator",
            role=Role.ADMIN,
        )
        logger.warning("default_admin_created", account_id=admin.id, email=admin.email)


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Expense Tracker API",
    version=__version__,
    description="Multi-tenant expense tracking with owner/employee access control",
    lifespan=lifespan,
    dependencies=[Depends(enforce_route_policy)],
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
)


# =============================================================================
# Security Middleware
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "accelerometer=(), camera=(), geolocation=(), gyroscope=(), "
            "magnetometer=(), microphone=(), payment=(), usb=()"
        )

        if request.url.path in ("/docs", "/redoc"):
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com"
            )
        else:
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # HSTS (only enable in production with HTTPS)
        if config.ENABLE_HSTS:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, in the log context and the response."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = set_request_id(request.headers.get("X-Request-ID") or secrets.token_urlsafe(8))
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        finally:
            request_id_var.set(None)
        response.headers["X-Request-ID"] = request_id
        return response


# =============================================================================
# Add Middleware (last added runs first)
# =============================================================================

app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# Trusted hosts (prevent host header attacks)
if "*" not in config.TRUSTED_HOSTS:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=config.TRUSTED_HOSTS)

# CORS outermost so rejections still carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# Routes
# =============================================================================

@app.get("/", tags=["root"], name="root")
def home():
    """Root endpoint."""
    return {
        "name": "Expense Tracker API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health", tags=["health"], name="health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint for load balancers and monitoring."""
    db_status = "connected"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health_database_unreachable", error=str(e))
        db_status = "unreachable"

    return HealthResponse(
        status="healthy" if db_status == "connected" else "degraded",
        version=__version__,
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )


app.include_router(api_router, prefix=config.API_PREFIX)


# =============================================================================
# Error Handlers
# =============================================================================

_HTTP_ERROR_CODES = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, TokenRejectedError) else None
    return error_response(exc.status_code, exc.error_code, exc.message, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "validation_error", messages)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(
        exc.status_code,
        _HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to prevent information leakage."""
    logger.exception("unhandled_exception", path=request.url.path, error_type=type(exc).__name__)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An internal error occurred",
    )


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "expense_tracker.main:app",
        host="0.0.0.0",
        port=8000,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )
