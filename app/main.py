import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from app.core.config import settings
from app.core.exception_handler import register_exception_handlers
from app.core.logging_config import setup_logging
from app.core.middleware import register_middlewares
from app.db.session import db  # Import the database instance

from app.db import base  # noqa: F401

# Routers
from app.api.v1.endpoints import vote

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    setup_logging()

    # Startup: Connect to the database
    await db.connect()
    if settings.DB_CREATE_TABLES:
        await db.create_all()
        logger.info("Database tables ensured")

    yield

    # Shutdown: Disconnect from the database
    await db.disconnect()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        lifespan=lifespan,  # Register the lifespan handler
    )

    # Register all middleware
    register_middlewares(app)

    # Register all exception handlers
    register_exception_handlers(app)

    app.include_router(vote.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        database_ok = await db.ping()
        return {
            "status": "healthy" if database_ok else "degraded",
            "database": database_ok,
            "version": settings.VERSION,
        }

    return app


app = create_application()
