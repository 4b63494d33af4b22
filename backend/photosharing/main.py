"""
PhotoSharing Backend — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, fault handlers and routers; the
       lifespan builds the document store and repository and keeps them on
       app.state for the route dependencies.
Who:   uvicorn photosharing.main:app

Lifecycle:
    Startup:
    1. Initialize logging
    2. Build the engine, document store and repository
    3. Provision the database, collection and procedures (if enabled)
    4. Wrap the repository in the in-process cache

    Shutdown:
    1. Dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from photosharing import __version__
from photosharing.caching import MemoryCacheService
from photosharing.config import settings
from photosharing.database import build_engine, build_session_factory, dispose_engine
from photosharing.documentdb import DocumentStore
from photosharing.exceptions import (
    DataLayerError,
    DataLayerException,
    IapValidationError,
    IapValidationException,
    ServiceFaultError,
)
from photosharing.middleware import RequestIDMiddleware, RequestLoggingMiddleware, request_id_var
from photosharing.repositories import CachedRepository, DocumentDbRepository
from photosharing.routes import (
    annotations,
    categories,
    configuration,
    health,
    hero_photos,
    iap,
    leaderboard,
    photos,
    reports,
    user_photos,
    users,
)
from photosharing.schemas.contracts import ServiceFaultContract

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] photosharing.repositories...: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("PhotoSharing Backend %s starting up...", __version__)

    engine = build_engine()
    store = DocumentStore(
        engine,
        build_session_factory(engine),
        settings.document_database_id,
        settings.document_collection_id,
    )
    repository = DocumentDbRepository(
        store,
        new_user_gold_balance=settings.new_user_gold_balance,
        first_profile_photo_gold_award=settings.first_profile_photo_gold_award,
    )

    if settings.initialize_database_on_startup:
        try:
            await repository.initialize_database_if_not_existing(settings.procedures_path)
        except DataLayerException as e:
            logger.error("Document store initialization failed: %s", e.message)
            await dispose_engine(engine)
            raise

    app.state.store = store
    app.state.repository = CachedRepository(
        repository, MemoryCacheService(
            expiration=settings.cache_expiration_seconds,
            max_entries=settings.cache_max_entries,
        )
    )

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("PhotoSharing Backend shutting down...")
    await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _fault_response(fault: ServiceFaultError) -> JSONResponse:
    body = ServiceFaultContract(
        code=int(fault.code),
        description=fault.description,
        source=fault.source,
        details=fault.details,
        request_id=request_id_var.get(""),
    )
    return JSONResponse(status_code=fault.status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    """
    Turn domain errors into fault responses.

    Handler mapping:
        ServiceFaultError            → its own status and code
        DataLayerException UNKNOWN   → 500 / 6001
        DataLayerException (other)   → 500 / 6000
        IapValidationException       → 400 / 2500 (UNKNOWN → 500 / 6001)
        Exception (fallback)         → 500 / 6001

    Stack traces are logged server-side only.
    """

    @app.exception_handler(ServiceFaultError)
    async def handle_service_fault(request: Request, exc: ServiceFaultError):
        rid = request_id_var.get("")
        logger.warning("[%s] Service fault %d: %s", rid, int(exc.code), exc.description)
        return _fault_response(exc)

    @app.exception_handler(DataLayerException)
    async def handle_data_layer_error(request: Request, exc: DataLayerException):
        rid = request_id_var.get("")
        logger.error("[%s] Data layer error: %s | Context: %s", rid, exc.message, exc.context)
        if exc.error == DataLayerError.UNKNOWN:
            return _fault_response(ServiceFaultError.unknown_internal_failure())
        return _fault_response(ServiceFaultError.data_layer(exc.message))

    @app.exception_handler(IapValidationException)
    async def handle_iap_validation_error(request: Request, exc: IapValidationException):
        rid = request_id_var.get("")
        logger.warning("[%s] Receipt rejected: %s", rid, exc.message)
        if exc.error == IapValidationError.UNKNOWN:
            return _fault_response(ServiceFaultError.unknown_internal_failure())
        return _fault_response(ServiceFaultError.iap_validation(exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _fault_response(ServiceFaultError.unknown_internal_failure())


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="PhotoSharing API",
        description=(
            "Backend for the photo-sharing app: categories, photo streams, "
            "annotations with gold, leaderboards and in-app gold purchases."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS.
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
    for module in (
        categories,
        photos,
        annotations,
        reports,
        users,
        user_photos,
        hero_photos,
        leaderboard,
        iap,
        configuration,
        health,
    ):
        app.include_router(module.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
