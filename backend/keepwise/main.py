"""
KeepWise Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routes, and
       places the settings, note store and token verifier on app.state.
Who:   uvicorn (`keepwise.main:app` or `python -m keepwise`); tests call
       create_app() with their own store and verifier.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Req ID      │→│ Logging  │→│  GZip / CORS    │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────────────────────┐ ┌────────────────┐  │
    │  │ POST/GET/DELETE /api/notes │ │ GET /health    │  │
    │  └────────────────────────────┘ └────────────────┘  │
    │                                                     │
    │  app.state: settings, token_verifier, note_store    │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate configuration (fail fast on a half-configured provider)
    3. Build the token verifier and note store unless injected
    4. store.initialize() (relational: migrate schema to head)

    Shutdown:
    1. Close the note store if the app built it
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from keepwise import __version__
from keepwise.config import Settings, settings
from keepwise.exceptions import KeepWiseError
from keepwise.middleware.logging import RequestLoggingMiddleware
from keepwise.middleware.request_id import RequestIDMiddleware, request_id_var
from keepwise.routes import health, notes
from keepwise.services.auth_base import TokenVerifier, build_token_verifier
from keepwise.stores import build_note_store
from keepwise.stores.base import NoteStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once at startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic.runtime.migration").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("KeepWise Backend %s starting up...", __version__)

    try:
        config.validate_for_startup()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    if app.state.token_verifier is None:
        app.state.token_verifier = build_token_verifier(config)
    if app.state.token_verifier.provider == "none":
        logger.warning(
            "AUTH_PROVIDER=none: authentication is DISABLED, every caller is "
            "the shared anonymous user"
        )

    owns_store = app.state.note_store is None
    if owns_store:
        app.state.note_store = build_note_store(config)
    await app.state.note_store.initialize()

    logger.info(
        "Note store: %s | Auth provider: %s",
        app.state.note_store.name,
        app.state.token_verifier.provider,
    )
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("KeepWise Backend shutting down...")
    if owns_store:
        await app.state.note_store.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "request_id": request_id_var.get("")},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the `{"error", "request_id"}` envelope.

    Handler hierarchy:
        KeepWiseError subclasses → their own status_code (400/401/403/404/500)
        RequestValidationError   → 400 (malformed or non-object body)
        HTTPException            → its status (unknown route, wrong method)
        Exception (fallback)     → 500 with a generic message

    Context dicts and stack traces are logged, never returned.
    """

    @app.exception_handler(KeepWiseError)
    async def handle_keepwise_error(request: Request, exc: KeepWiseError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid, type(exc).__name__, exc.message, exc.context,
            )
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = sorted({
            str(err["loc"][1])
            for err in exc.errors()
            if len(err.get("loc", ())) > 1
            and err["loc"][0] == "body"
            and isinstance(err["loc"][1], str)
        })
        message = (
            f"Invalid fields: {', '.join(fields)}"
            if fields
            else "Request body must be a JSON object"
        )
        logger.info("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return _error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error_response(500, "An unexpected error occurred")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Optional[Settings] = None,
    store: Optional[NoteStore] = None,
    verifier: Optional[TokenVerifier] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config:   Settings to use (default: the module singleton)
        store:    Pre-built note store; the caller initializes and closes it
        verifier: Pre-built token verifier
    """
    config = config or settings

    app = FastAPI(
        title="KeepWise API",
        description=(
            "Save highlighted web page text together with its summary, "
            "scoped to the signed-in user."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.note_store = store
    app.state.token_verifier = verifier

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS

    # The extension and the notes viewer are cross-origin callers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials="*" not in config.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(notes.router)
    app.include_router(health.router)

    return app


# uvicorn imports `keepwise.main:app`; stores are only built in the lifespan
app = create_app()
