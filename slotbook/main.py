"""
FastAPI application for the public booking flow
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from slotbook.api.v1.router import api_v1_router
from slotbook.config.settings import get_settings
from slotbook.core.middleware import correlation_id_middleware, request_logging_middleware
from slotbook.core.monitoring import health_router
from slotbook.utils.my_logging import setup_logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging()
    logger.info(f"🚀 {settings.APP_NAME} starting up...")

    routes = sorted(
        (route.path, method)
        for route in app.routes if isinstance(route, APIRoute)
        for method in route.methods
    )
    for path, method in routes:
        logger.debug(f"  {method:8} {path}")
    logger.info(f"✅ Total routes registered: {len(routes)}")

    yield

    logger.info(f"🛑 {settings.APP_NAME} shutting down...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Availability slots and conflict-safe bookings",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Registered last runs first: the correlation id exists before logging
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "slotbook.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
