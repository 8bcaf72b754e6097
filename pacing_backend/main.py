"""
FastAPI application entry point for the pacing dashboard backend.

This module configures logging, CORS, the error-to-status mapping and the
API routers, and manages the database pool over the application lifespan.

Error mapping:
- MissingConfigurationError -> 503 (a source is not configured)
- MalformedInputError       -> 400 (bad month or range parameter)
- TransientIOError / SourceResponseError -> 502 (an upstream source failed)
- PersistenceError          -> 500 (the store rejected a write)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pacing_backend.api import api_router
from pacing_backend.core.config import get_settings
from pacing_backend.core.database import close_db, init_db
from pacing_backend.core.errors import (
    DashboardError,
    MalformedInputError,
    MissingConfigurationError,
    PersistenceError,
    SourceResponseError,
    TransientIOError,
)
from pacing_backend.models import ErrorResponse
from pacing_backend.services.repository import ensure_schema

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

APP_TITLE = "Pacing Dashboard API"
APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize database connection pool
        - Create missing tables when AUTO_CREATE_SCHEMA is set

    On shutdown:
        - Close database connection pool
    """
    # Startup
    logger.info(f"{APP_TITLE} starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
        if get_settings().auto_create_schema:
            await ensure_schema()
            logger.info("Database schema ensured")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        # Continue startup; store-backed endpoints retry the pool lazily

    yield

    # Shutdown
    logger.info(f"{APP_TITLE} shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title=APP_TITLE,
    version=APP_VERSION,
    description=(
        "Backend for the business metrics dashboard. Provides month-to-date "
        "pacing, sales funnel, activity and financial overview endpoints, and "
        "triggers for partner feed, billing and board reconciliation."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception handlers
# =============================================================================

ERROR_STATUS = (
    (MissingConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE, "missing_configuration"),
    (MalformedInputError, status.HTTP_400_BAD_REQUEST, "malformed_input"),
    (TransientIOError, status.HTTP_502_BAD_GATEWAY, "upstream_unavailable"),
    (SourceResponseError, status.HTTP_502_BAD_GATEWAY, "upstream_error"),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR, "persistence_error"),
)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    """Render dashboard errors as ErrorResponse bodies with a mapped status."""
    for error_type, status_code, label in ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        status_code, label = status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc}")

    body = ErrorResponse(error=label, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


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
        "name": APP_TITLE,
        "version": APP_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pacing_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
