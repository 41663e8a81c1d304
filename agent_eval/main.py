"""
Agent Eval API - FastAPI Application

Main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from agent_eval.config import get_settings
from agent_eval.core.database import close_db, init_db
from agent_eval.routers import export_import_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Suppress noisy third-party loggers
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Agent Eval API...")
    settings = get_settings()

    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connection established")

    logger.info(f"Agent Eval API started in {settings.environment} mode")

    yield

    # Shutdown
    logger.info("Shutting down Agent Eval API...")
    await close_db()
    logger.info("Agent Eval API shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Agent Eval API",
        description="Test management for AI flows: bundle export and import",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Register routers
    app.include_router(export_import_router)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "name": "Agent Eval API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agent_eval.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
