"""FastAPI application entry point.

This module creates and configures the FastAPI application instance with:
- Middleware (CORS, RequestID, Timing, ErrorLogging, SecurityHeaders)
- Exception handlers (APIException, HTTPException, ValidationError, general)
- API routers (v1)
- Health check endpoints (/health, /ready)
- Startup/shutdown of the configured storage provider
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking_core.api.v1.router import router as v1_router
from booking_core.config import Settings, StorageBackend, get_settings
from booking_core.database import check_connection, close_db, get_session_factory, init_db
from booking_core.exceptions import APIException
from booking_core.middleware import setup_middleware
from booking_core.storage import InMemoryStorageProvider, SQLStorageProvider, StorageProvider
from booking_core.utils.logging import get_logger, log_error, setup_logging

# Set up logging first
setup_logging()
logger = get_logger("main")

settings = get_settings()


async def create_storage(settings: Settings) -> StorageProvider:
    """Build the storage provider selected by ``BOOKING_STORAGE_BACKEND``."""
    if settings.booking.storage_backend == StorageBackend.MEMORY:
        logger.warning("Using in-memory storage; appointments are lost on restart")
        return InMemoryStorageProvider()

    await init_db()
    # SQLite has no per-transaction isolation levels worth selecting
    isolation_level = None if settings.database.is_sqlite else settings.booking.isolation_level
    return SQLStorageProvider(get_session_factory(), isolation_level=isolation_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the storage provider on startup and release it on shutdown."""
    logger.info("Starting booking service...")
    try:
        app.state.storage = await create_storage(settings)
        logger.info(
            f"Booking service started: storage={settings.booking.storage_backend.value}, "
            f"slot={settings.booking.slot_granularity_minutes}min"
        )
        yield
    except Exception as e:
        logger.error(f"Failed to start booking service: {e}", exc_info=True)
        raise
    finally:
        logger.info("Shutting down booking service...")
        storage = getattr(app.state, "storage", None)
        if storage is not None:
            await storage.close()
        if settings.booking.storage_backend == StorageBackend.SQL:
            await close_db()
        logger.info("Booking service shut down successfully")


app = FastAPI(
    title="Booking Core",
    description=(
        "Doctor availability and appointment booking API: free-slot computation, "
        "double-booking-safe reservations and the appointment status workflow."
    ),
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    debug=settings.debug,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "appointments",
            "description": "Availability, booking and appointment status changes",
        },
        {
            "name": "v1",
            "description": "API v1 information and metadata",
        },
    ],
)

setup_middleware(app)
app.include_router(v1_router)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle custom API exceptions."""
    context = {
        "method": request.method,
        "path": request.url.path,
        "status_code": exc.status_code,
        "code": exc.code,
    }
    if exc.status_code >= 500:
        log_error(exc, context=context)
    else:
        # Expected outcomes (slot taken, stale version, ...) are not errors
        logger.info(f"{exc.code}: {exc.message}", extra={"extra_fields": context})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (404, 405, ...)."""
    if exc.status_code == 404:
        logger.warning(
            f"404 Not Found: {request.method} {request.url.path}",
            extra={"extra_fields": {"method": request.method, "path": request.url.path}},
        )
    else:
        log_error(
            exc,
            context={
                "method": request.method,
                "path": request.url.path,
                "status_code": exc.status_code,
            },
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.detail,
                "code": "HTTP_ERROR",
                "status_code": exc.status_code,
                "details": {},
            }
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]

    logger.warning(
        f"Validation error: {request.method} {request.url.path}",
        extra={"extra_fields": {"validation_errors": errors}},
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "message": "Validation failed",
                "code": "VALIDATION_ERROR",
                "status_code": 422,
                "details": {"validation_errors": errors},
            }
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    log_error(
        exc,
        context={
            "method": request.method,
            "path": request.url.path,
            "unhandled": True,
        },
    )

    # Don't expose internal error details in production
    message = "An internal server error occurred" if settings.is_production else str(exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "message": message,
                "code": "INTERNAL_SERVER_ERROR",
                "status_code": 500,
                "details": {} if settings.is_production else {"exception_type": type(exc).__name__},
            }
        },
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "storage": settings.booking.storage_backend.value,
    }


@app.get("/ready")
async def readiness_check():
    """Readiness check endpoint with database connectivity check."""
    if settings.booking.storage_backend == StorageBackend.MEMORY:
        return {"status": "ready", "app_name": settings.app_name, "storage": "memory"}

    if not await check_connection():
        logger.warning("Readiness check failed: database not connected")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "app_name": settings.app_name,
                "database": "disconnected",
            },
        )

    return {"status": "ready", "app_name": settings.app_name, "database": "connected"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "booking_core.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload and settings.is_development,
        log_level=settings.log_level.lower(),
    )
