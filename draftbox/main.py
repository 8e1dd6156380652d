"""Draftbox FastAPI application factory."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_fastapi_instrumentator import Instrumentator

from draftbox.config import Settings, get_settings
from draftbox.dependencies import get_draft_service, init_store, shutdown_store
from draftbox.middleware.error_handler import ErrorHandlerMiddleware
from draftbox.middleware.logging import LoggingMiddleware, setup_logging
from draftbox.routers import admin, drafts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    setup_logging(debug=settings.debug)
    logger.info("Starting Draftbox API (env=%s)", settings.app_env)

    init_store(settings)

    yield

    await shutdown_store()
    logger.info("Draftbox API shutting down")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    is_production = settings.app_env == "production"
    app = FastAPI(
        title="Draftbox",
        description="Concurrent draft store with soft delete and recent-drafts listing",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )
    app.state.settings = settings

    # Middleware (the last one added runs outermost)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LoggingMiddleware)
    origins = settings.cors_origins
    allow_all = origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins if not allow_all else [],
        allow_origin_regex=r".*" if allow_all else None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID"],
        max_age=600,
    )

    # Routers
    prefix = settings.api_prefix
    app.include_router(drafts.router, prefix=prefix)
    app.include_router(admin.router, prefix=prefix)

    @app.get("/")
    async def root():
        return {"status": "running", "service": "draftbox-api", "version": "1.0.0"}

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "draftbox-api"}

    @app.get("/health/ready")
    async def health_ready():
        """Deep health check: verifies the store backend and the write gate."""
        checks: dict = {}
        service = await get_draft_service(settings)

        try:
            await service.store.row_count()
            checks["store"] = "ok"
        except Exception as e:
            checks["store"] = f"error: {type(e).__name__}"

        checks["write_gate"] = "ok" if await service.gate.ping() else "error: unreachable"

        all_ok = all(v == "ok" for v in checks.values())
        return JSONResponse(
            status_code=200 if all_ok else 503,
            content={"status": "ready" if all_ok else "degraded", "checks": checks},
        )

    # Prometheus instrumentation
    instrumentator = Instrumentator(
        excluded_handlers=["/health", "/health/ready", "/docs", "/redoc", "/openapi.json", "/metrics"],
    )
    instrumentator.instrument(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint with multiprocess support."""
        from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest, multiprocess

        multiproc_dir = os.environ.get("PROMETHEUS_MULTIPROC_DIR")
        if multiproc_dir:
            registry = CollectorRegistry()
            multiprocess.MultiProcessCollector(registry)
            data = generate_latest(registry)
        else:
            data = generate_latest()

        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    return app


# Default app instance for uvicorn
app = create_app()
