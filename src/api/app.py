"""
FastAPI Application Factory.

Usage:
    # Development
    uvicorn api.app:create_app --factory --reload

    # Production
    uvicorn api.app:get_app --factory --host 0.0.0.0 --port 8080 --workers 4
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_settings
from core.logging import configure_logging, get_logger
from core.middleware import RequestTracingMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Configures logging on startup. Services are created lazily on first use.
    """
    settings = get_settings()

    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else "INFO",
    )

    logger.info(
        "Starting discovery API",
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("Shutting down discovery API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Craft Marketplace Discovery API",
        description="""
        Search, ranking, recommendations and translation for the craft marketplace.

        ## Main Endpoints

        - `/api/search` - Enhanced content search, autocomplete, analytics
        - `/api/recommendations` - Sectioned recommendations
        - `/api/translations/*` - Machine translation with caching

        ## Health Checks

        - `/health` - Basic health check
        - `/health/detailed` - Detailed health with dependency status
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # =========================================================================
    # Middleware (first added = outermost)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracing (adds X-Request-ID, logs timing)
    app.add_middleware(RequestTracingMiddleware)

    # =========================================================================
    # Routes
    # =========================================================================

    from api.routes.health import router as health_router
    app.include_router(health_router, tags=["Health"])

    from api.routes.search import router as search_router
    app.include_router(search_router)

    from api.routes.recommendations import router as recommendations_router
    app.include_router(recommendations_router)

    from api.routes.translations import router as translations_router
    app.include_router(translations_router)

    return app


def get_app() -> FastAPI:
    """Get a fresh application instance (for ASGI servers using a factory)."""
    return create_app()
