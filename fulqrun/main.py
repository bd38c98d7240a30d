"""
FastAPI application entry point for the FulQrun Deal Analytics API.

Configures logging and CORS, registers the API routers and manages the
database pool lifecycle. The engines behind the routers are pure functions;
only the /opportunities endpoints need the database.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fulqrun import __version__
from fulqrun.api import api_router
from fulqrun.core.config import get_settings
from fulqrun.core.database import DatabaseNotConfiguredError, init_db, close_db

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize database connection pool
    On shutdown:
        - Close database connection pool
    """
    # Startup
    logger.info("FulQrun Deal Analytics API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except DatabaseNotConfiguredError:
        logger.warning("DATABASE_URL not set; /opportunities endpoints will return 503")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        # Continue startup: the stateless engine endpoints do not need the DB

    yield

    # Shutdown
    logger.info("FulQrun Deal Analytics API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title="FulQrun Deal Analytics API",
    version=__version__,
    description=(
        "Deal progression and analytics backend for FulQrun. "
        "Provides stage-gate evaluation, auto-advance eligibility, "
        "deal health scoring and portfolio rollups."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "FulQrun Deal Analytics API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fulqrun.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
