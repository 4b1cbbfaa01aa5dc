"""
CragDB Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn cragdb.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────────┐ ┌──────┐ ┌────────┐ │
    │  │  Req ID  │→│  Access Log  │→│ GZip │→│  CORS  │ │
    │  └──────────┘ └──────────────┘ └──────┘ └────────┘ │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────────────────┐ ┌─────────────────────┐ │
    │  │ /graphql (Strawberry)  │ │ GET /health         │ │
    │  └────────────────────────┘ └─────────────────────┘ │
    │                                                     │
    │  Exception Handlers (REST):                         │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ CragDBError → exc.http_status │ other → 500  │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

GraphQL errors never reach these handlers; graphql/errors.py translates
them into `extensions.code` on the GraphQL response instead.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from cragdb import __version__
from cragdb.config import settings
from cragdb.database import dispose_engine
from cragdb.exceptions import CragDBError, DatabaseError
from cragdb.graphql import create_graphql_router
from cragdb.middleware.logging import RequestLoggingMiddleware
from cragdb.middleware.request_id import RequestIDMiddleware, request_id_var
from cragdb.routes import health
from cragdb.services.query_cache import query_cache

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    Named loggers worth knowing:
        cragdb.access   one line per HTTP request (middleware/logging.py)
        cragdb.audit    one line per GraphQL mutation (graphql/schema.py)
        cragdb.*        module loggers (`logging.getLogger(__name__)`)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("strawberry.execution").setLevel(logging.CRITICAL)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, report the effective setup.
    Shutdown: dispose the database engine (close all pooled connections).
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("CragDB Backend %s starting up...", __version__)
    logger.info("Query cache backend: %s", query_cache.backend)
    if settings.name_collation:
        logger.info("Name ordering collation: %s", settings.name_collation)
    logger.info("GraphQL endpoint: http://%s:%d/graphql", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("CragDB Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to HTTP responses for REST routes.

        ValidationError  → 400      NotFoundError   → 404
        ForbiddenError   → 403      ConflictError   → 409
        DatabaseError    → 500 (generic message, details logged)
        Exception        → 500 (generic message, stack trace logged)
    """

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.code.lower(),
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(CragDBError)
    async def handle_cragdb_error(request: Request, exc: CragDBError):
        rid = request_id_var.get("")
        logger.warning("[%s] %s: %s", rid, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.http_status,
            content={
                "error": exc.code.lower(),
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="CragDB API",
        description="Crowd-sourced climbing crags, sectors and routes, served over GraphQL.",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
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
    app.include_router(create_graphql_router(), prefix="/graphql")
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
