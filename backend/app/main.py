"""
FastAPI Application Entry Point.

This is the main application file for the Freight Brokerage Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from backend.app.core.config import settings
from backend.app.core.logging import configure_logging
from backend.app.core.redis_client import ping_redis
from backend.app.core.observability import ObservabilityMiddleware
from backend.app.api.v1.router import router as api_v1_router
from backend.app.db.session import engine, Base
from backend.app.services.tracking_hub import LocationBroadcastHub
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from backend.app.models.user import User
from backend.app.models.audit_log import AuditLog
from backend.app.models.transport_request import TransportRequest
from backend.app.models.bid import Bid
from backend.app.models.gps_tracking import GpsTracking

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures JSON logging and creates database tables.
    2. Owns the tracking hub: created here, closed on shutdown.
    """
    configure_logging(settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.tracking_hub = LocationBroadcastHub()
    logger.info("Application started", extra={"app_name": settings.app_name})

    yield

    await app.state.tracking_hub.close()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Freight brokerage: transport requests, driver bidding and live tracking",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    redis_ok = await ping_redis()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "connected" if redis_ok else "unavailable",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Freight Brokerage Backend API",
        "docs": "/docs",
        "health": "/health",
    }
