"""
FastAPI Application Entry Point.

This is the main application file for the PayLog Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from paylog.app.core.config import settings
from paylog.app.api.v1.router import router as api_v1_router
from paylog.app.db.session import engine, Base
from paylog.app.core.observability import ObservabilityMiddleware, configure_logging
from paylog.app.core.redis_client import ping_redis
from paylog.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from paylog.app.models.user import User
from paylog.app.models.audit_log import AuditLog
from paylog.app.models.vendor import Vendor
from paylog.app.models.entity import Entity, Category
from paylog.app.models.invoice_profile import InvoiceProfile
from paylog.app.models.invoice import Invoice
from paylog.app.models.payment import Payment
from paylog.app.models.payment_type import PaymentType
from paylog.app.models.credit_note import CreditNote

configure_logging(settings.log_level)
logger = logging.getLogger("paylog")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Invoice, payment and vendor ledger management API",
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
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
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
        "message": "Welcome to PayLog Backend API",
        "docs": "/docs",
        "health": "/health",
    }
