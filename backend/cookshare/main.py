"""
CookShare Backend — FastAPI Application Factory
=================================================

What:  Builds the FastAPI application: middleware, routers, error handlers.
Who:   uvicorn (`uvicorn cookshare.main:app`), and the test suite through
       httpx's ASGITransport.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware:                                         │
    │  ┌────────────┐ ┌──────────┐ ┌────────────┐ ┌──────┐ │
    │  │ Rate Limit │→│ Req ID   │→│ Access Log │→│ CORS │ │
    │  └────────────┘ └──────────┘ └────────────┘ └──────┘ │
    │                                                      │
    │  Routes:                                             │
    │  ┌──────────────┐ ┌───────────────────┐ ┌─────────┐  │
    │  │ /api/groups  │ │ /api/groups/posts │ │ /health │  │
    │  └──────────────┘ └───────────────────┘ └─────────┘  │
    │                                                      │
    │  Exception Handlers:                                 │
    │  ┌────────────────────────────────────────────────┐  │
    │  │ Validation/Conflict→400 │ Permission→403       │  │
    │  │ NotFound→404 │ StoreUnavailable→503 │ DB→500   │  │
    │  └────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, probe the database (retried with backoff)
    Shutdown: dispose the engine's connection pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from cookshare import __version__
from cookshare.config import settings
from cookshare.database import dispose_engine, wait_for_database
from cookshare.exceptions import (
    ConflictError,
    CookShareError,
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    ValidationError,
)
from cookshare.middleware.logging import RequestLoggingMiddleware
from cookshare.middleware.rate_limit import RateLimitMiddleware
from cookshare.middleware.request_id import RequestIDMiddleware, request_id_var
from cookshare.routes import group_posts, groups, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] cookshare.services.group_service: ...
    Output goes to stdout, which the container runtime collects.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # The access middleware already logs every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("CookShare Backend %s starting (%s)", __version__, settings.environment)

    try:
        await wait_for_database()
        logger.info("Database reachable")
    except (OperationalError, InterfaceError, OSError) as e:
        # Keep serving: /health reports the outage and requests answer 503
        logger.error(
            "Database unreachable after %d attempts: %s",
            settings.db_connect_attempts, e,
        )

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("CookShare Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(
    error: str, message: str, details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

        ValidationError         → 400 validation_error
        RequestValidationError  → 400 validation_error (malformed id or body)
        ConflictError           → 400 conflict
        PermissionDeniedError   → 403 permission_denied
        NotFoundError           → 404 not_found
        StoreUnavailableError   → 503 store_unavailable
        DatabaseError           → 500 server_error
        CookShareError (base)   → 500 server_error
        Exception               → 500 internal_server_error

    500 bodies carry a generic message; the exception text is added under
    `details` only in development.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.info("Validation error: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        logger.info("Malformed request on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "validation_error",
                "Invalid request",
                {"errors": jsonable_encoder(exc.errors())},
            ),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.info("Conflict (%s): %s", exc.reason, exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("conflict", exc.message, {"reason": exc.reason}),
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.info("Permission denied (%s): %s", exc.reason, exc.message)
        return JSONResponse(
            status_code=403,
            content=_error_body("permission_denied", exc.message, {"reason": exc.reason}),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        logger.error("Store unavailable: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=503,
            content=_error_body("store_unavailable", exc.message),
            headers={"Retry-After": "30"},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        details = exc.context if settings.is_development else None
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message, details),
        )

    @app.exception_handler(CookShareError)
    async def handle_application_error(request: Request, exc: CookShareError):
        logger.error("Unhandled application error: %s", exc.message, exc_info=True)
        details = exc.context if settings.is_development else None
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message, details),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", exc, exc_info=True)
        details = (
            {"exception": type(exc).__name__, "detail": str(exc)}
            if settings.is_development
            else None
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
                details,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="CookShare API",
        description=(
            "Recipe-sharing groups: membership and join requests, group posts, "
            "likes and comments, with per-group visibility and moderation rules."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition:
    # RateLimit → RequestID → Logging → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(groups.router)
    app.include_router(group_posts.router)
    app.include_router(health.router)

    return app


app = create_app()
