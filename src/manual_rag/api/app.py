"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from manual_rag.api.middleware import RequestTimingMiddleware
from manual_rag.api.routes_admin import router as admin_router
from manual_rag.api.routes_health import router as health_router
from manual_rag.api.routes_index import router as index_router
from manual_rag.api.routes_query import router as query_router
from manual_rag.config.settings import Settings
from manual_rag.observability.logger import get_logger, setup_logging
from manual_rag.services import Services, build_services

logger = get_logger("app")


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app. Injected ``services`` skip construction from settings."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = services
        if resolved is None:
            app_settings = settings or Settings()
            setup_logging(app_settings.log_level, json_logs=app_settings.log_json)
            resolved = await build_services(app_settings)
        app.state.services = resolved
        logger.info("startup_complete")

        yield

        await resolved.pipeline.drain()
        logger.info("shutdown_complete")

    app = FastAPI(
        title="Manual RAG",
        version="1.0.0",
        description="Hybrid retrieval and grounded answers over a document library",
        lifespan=lifespan,
    )
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(query_router, tags=["search"])
    app.include_router(index_router, tags=["documents"])
    app.include_router(admin_router, tags=["admin"])
    return app
