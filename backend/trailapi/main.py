"""
Trail API Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn trailapi.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌──────────┐ ┌────────────┐ ┌──────────────┐          │
    │  │  Req ID  │→│ Access Log │→│ Accept Gate  │          │
    │  └──────────┘ └────────────┘ └──────────────┘          │
    │                                                         │
    │  Routes:                                                │
    │  ┌─────────┐ ┌─────────────┐ ┌────────┐ ┌───────────┐  │
    │  │ /trails │ │ /trailheads │ │ /users │ │ / , /user │  │
    │  └─────────┘ └─────────────┘ └────────┘ └───────────┘  │
    │                                                         │
    │  Exception Handlers:                                    │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │ 400 │ 401 │ 403 │ 404 │ 405 │ Store→500 │ *→500  │  │
    │  └───────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → create tables (SQL backend)
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from trailapi import __version__
from trailapi.config import settings
from trailapi.database import dispose_engine, init_models
from trailapi.exceptions import (
    ConflictError,
    ForbiddenError,
    MethodNotAllowedError,
    NotFoundError,
    StoreError,
    TrailApiError,
    UnauthenticatedError,
    ValidationError,
)
from trailapi.middleware.content_negotiation import AcceptHeaderMiddleware
from trailapi.middleware.logging import RequestLoggingMiddleware
from trailapi.middleware.request_id import RequestIDMiddleware, request_id_var
from trailapi.routes import auth, health, trailheads, trails, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    When:    Called once during app startup, before anything else logs.
    Format:  %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google.auth").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
        1. Setup logging
        2. Validate Google OAuth settings (logged, not fatal: /health and
           the public /trailheads routes still work without them)
        3. Create the entities table when the SQL backend is selected
    Shutdown:
        1. Dispose the database engine (close pooled connections)
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Trail API %s starting up (store=%s)...", __version__, settings.store_backend)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Protected routes will answer 401 until this is fixed.")

    if settings.store_backend == "sql":
        await init_models()
        logger.info("Entity table ready")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Trail API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the shared error body.

    Handler hierarchy:
        ValidationError        → 400 (includes MissingAttribute, InvalidCursor)
        RequestValidationError → 400 (malformed path, query or body)
        UnauthenticatedError   → 401 + WWW-Authenticate: Bearer
        ForbiddenError         → 403
        ConflictError          → 403 (already linked / not linked)
        NotFoundError          → 404
        MethodNotAllowedError  → 405 + Allow
        StoreError             → 500 (generic message, context logged)
        TrailApiError (base)   → 500
        Exception (fallback)   → 500 (stack trace logged)

    Security: responses never include stack traces or driver errors.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        logger.warning("[%s] Malformed request: %s", request_id_var.get(""), location)
        return _error_response(
            400,
            "validation_error",
            f"Invalid value for '{location}': {first.get('msg', 'invalid')}",
            {"field": location, "errors": len(errors)},
        )

    @app.exception_handler(UnauthenticatedError)
    async def handle_unauthenticated(request: Request, exc: UnauthenticatedError):
        return _error_response(
            401,
            "unauthenticated",
            exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error_response(403, "forbidden", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(403, "relationship_conflict", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(MethodNotAllowedError)
    async def handle_method_not_allowed(request: Request, exc: MethodNotAllowedError):
        return _error_response(
            405,
            "method_not_allowed",
            exc.message,
            headers={"Allow": ", ".join(exc.allowed)},
        )

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        rid = request_id_var.get("")
        logger.error("[%s] Store error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(
            500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(TrailApiError)
    async def handle_trail_api_error(request: Request, exc: TrailApiError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    Tests build their own instance and override dependencies on it.
    """
    app = FastAPI(
        title="Trail API",
        description=(
            "Trails, trailheads and users. Trails belong to the Google account "
            "that created them; trailheads are public."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # CORS → RequestID → Logging → AcceptGate → GZip
    # CORS is outermost so early 406 replies still carry its headers

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(AcceptHeaderMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Allow", "WWW-Authenticate"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(trails.router)
    app.include_router(trailheads.router)
    app.include_router(users.router)
    app.include_router(health.router)

    return app


# uvicorn expects `trailapi.main:app` to be importable
app = create_app()
