"""
FastAPI application for the Clutch topic settlement backend.

- Initializes the database with lifespan management
- Configures CORS for the dashboard frontend
- Sets up Logfire observability
- Maps business errors to HTTP responses
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clutch import __version__
from clutch.api.errors import register_error_handlers
from clutch.api.routes import me_router, topics_router
from clutch.config import get_settings
from clutch.database import check_db_connection, close_db, init_db
from clutch.observability import initialize_logfire

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    settings = get_settings()
    logger.info(f"Starting Clutch API Server ({settings.environment})")

    await init_db()
    initialize_logfire(settings, app)

    if await check_db_connection():
        logger.info("Database connection successful")
    else:
        logger.error("Database connection failed")

    yield

    logger.info("Shutting down Clutch API Server")
    await close_db()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Clutch API",
        description="Prediction topics, stakes and settlement for the Clutch dashboard",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint for load balancers and monitoring.

        Returns:
            dict: Health status of the application and database
        """
        db_connected = await check_db_connection()

        return {
            "status": "healthy" if db_connected else "degraded",
            "service": "clutch-api",
            "version": __version__,
            "database": "connected" if db_connected else "disconnected",
            "environment": settings.environment,
        }

    @app.get("/", tags=["Root"])
    async def root() -> Dict[str, str]:
        """API information."""
        return {
            "name": "Clutch API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    app.include_router(topics_router)
    app.include_router(me_router)

    return app


app = create_app()
