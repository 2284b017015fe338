"""
Helpdesk Service - Main Application
===================================

Role-aware helpdesk ticketing backend.

Modules:
- Tickets: lifecycle, assignment, comments, filtered listings
- SLA: deadline tracking, breach sweep, admin reports

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and policies
- Infrastructure: Database, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configuration and Core
from src.config import settings
from src.core import ApplicationException

# Infrastructure
from src.infrastructure.database import (
    check_database,
    close_database,
    create_tables,
    get_session_context,
    init_database,
)

# SLA Module
from src.sla.application import SLASweepService
from src.sla.infrastructure import SLAScheduler, SQLAlchemySLATicketRepository

# Module Routers
from src.sla.interfaces import sla_router
from src.tickets.interfaces import tickets_router

# Shared API
from src.shared.api import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from src.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)

sla_scheduler: Optional[SLAScheduler] = None


async def sla_sweep_job() -> None:
    """Background breach sweep; failures are logged and retried next tick."""
    try:
        async with get_session_context() as session:
            await SLASweepService(SQLAlchemySLATicketRepository(session)).sweep()
    except ApplicationException as e:
        logger.error("SLA sweep failed", extra={"error_message": e.message})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Start the SLA breach sweep scheduler

    SHUTDOWN:
    1. Stop the scheduler
    2. Close database connections
    """
    global sla_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()

    # Note: If database is not available, the server will start but
    # database-dependent endpoints will fail
    try:
        await create_tables()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(
            "Database not available - running in degraded mode",
            extra={"error_type": type(e).__name__, "error_message": str(e)}
        )

    if settings.sla_evaluation_interval > 0:
        sla_scheduler = SLAScheduler(interval_seconds=settings.sla_evaluation_interval)
        await sla_scheduler.start(sla_sweep_job)
    else:
        logger.info("SLA scheduler disabled")

    logger.info("Helpdesk Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk Service")

    if sla_scheduler:
        await sla_scheduler.stop()
        sla_scheduler = None

    await close_database()

    logger.info("Helpdesk Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk Service API",
    description="""
    ## Role-aware helpdesk ticketing

    Every request carries the caller's user id in the `X-User-ID` header,
    set by the authenticating gateway.

    ---

    ### Tickets

    - `POST /api/tickets/` - File a ticket (auto-assigned to the least-loaded agent)
    - `GET /api/tickets/` - List visible tickets with filters and paging
    - `GET /api/tickets/{id}` - Ticket with comments
    - `PATCH /api/tickets/{id}` - Optimistic-locked partial update
    - `POST /api/tickets/{id}/comments` - Add a comment

    ### SLA administration (admin only)

    - `GET /api/tickets/admin/breached` - Breached tickets
    - `GET /api/tickets/admin/reports/performance` - Agent performance
    - `GET /api/tickets/admin/reports/sla` - SLA compliance report
    - `POST /api/tickets/admin/sla/sweep` - Run the breach sweep now

    ### Errors

    All errors use `{"error": {"code": "...", "message": "..."}}` with codes
    `VALIDATION_ERROR`, `UNAUTHORIZED`, `FORBIDDEN`, `NOT_FOUND`, `CONFLICT`
    and `INTERNAL_ERROR`.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)

# === Exception Handlers ===
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(sla_router)
app.include_router(tickets_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service health",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "sla_scheduler": "running"
                    }
                }
            }
        }
    }
})
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Reports database connectivity and the breach sweep scheduler state.
    """
    database_ok = await check_database()
    checks = {
        "database": "connected" if database_ok else "disconnected",
        "sla_scheduler": "running" if sla_scheduler and sla_scheduler.is_running else "stopped",
    }

    return {
        "status": "healthy" if database_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "tickets": {"prefix": "/api/tickets"},
            "sla": {"prefix": "/api/tickets/admin"}
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
