"""
Main FastAPI application for LexCanada.
"""

import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lexcanada.core.config import get_config
from lexcanada.core.database import check_database_connection, initialize_database
from lexcanada.core.errors import ApiError, ConflictError, DatabaseError
from lexcanada.core.logging_config import setup_logging
from lexcanada.core.response_utils import create_success_response, error_json_response, ResponseTimer
from lexcanada.schemas import StandardResponse
from lexcanada.services.llm_client import initialize_llm_client
from lexcanada.api.v1 import (
    auth,
    chat,
    contracts,
    court_procedures,
    disputes,
    document_templates,
    documents,
    mediation,
    subscriptions,
    webhooks,
)

config = get_config()
setup_logging()
logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info(f"Starting {config.application.app_name} ({config.application.environment})...")
    try:
        initialize_database()
        logger.info("Database initialization completed")
    except (SQLAlchemyError, RuntimeError) as e:
        logger.warning(f"Database initialization failed during startup: {e}")
        logger.info("Application will continue - database will be initialized on first access")

    initialize_llm_client()

    logger.info("Application startup completed successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {config.application.app_name}...")


# Create FastAPI application
app = FastAPI(
    title=config.application.app_name,
    description=config.application.app_description,
    version=config.application.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.application.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    start_time = time.time()

    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(f"Response: {response.status_code} - {process_time:.3f}s")

    return response


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Application errors raised by services and dependencies."""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")

    message = exc.message
    if not exc.is_operational and config.is_production():
        message = GENERIC_ERROR_MESSAGE

    errors = [message]
    if exc.details and isinstance(exc.details.get("errors"), dict):
        errors = [f"{field}: {error}" for field, error in exc.details["errors"].items()]

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_json_response(message, exc.status_code, errors, exc.details, headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTP exception handler."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
    return error_json_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request body, query and path validation failures."""
    field_errors = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        field_errors[location or "request"] = error.get("msg", "Invalid value")

    logger.warning(f"Validation failed on {request.url.path}: {field_errors}")
    return error_json_response(
        "Validation failed",
        422,
        [f"{field}: {message}" for field, message in field_errors.items()],
        {"errors": field_errors},
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return await api_error_handler(request, ConflictError("Resource already exists or conflicts with existing data"))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    return await api_error_handler(request, DatabaseError())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    message = GENERIC_ERROR_MESSAGE if config.is_production() else "Internal server error"
    return error_json_response(message, 500)


# Health check endpoints
@app.get("/health", response_model=StandardResponse)
async def health_check():
    """Application health check."""
    with ResponseTimer() as timer:
        health_data = {
            "status": "healthy",
            "timestamp": time.time(),
            "version": config.application.app_version,
            "environment": config.application.environment
        }

        return create_success_response(
            data=health_data,
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@app.get("/health/db", response_model=StandardResponse)
def database_health_check():
    """Database connectivity check."""
    with ResponseTimer() as timer:
        connected = check_database_connection()
        if not connected:
            return error_json_response("Database unavailable", 503, additional_details={"database": "disconnected"})

        return create_success_response(
            data={"status": "healthy", "database": "connected"},
            execution_time=timer.get_execution_time()
        )


API_VERSION_PREFIX = "/api/v1"

# Include API routers
app.include_router(auth.router, prefix=f"{API_VERSION_PREFIX}/auth", tags=["Authentication"])
app.include_router(chat.router, prefix=f"{API_VERSION_PREFIX}/chat", tags=["Legal Assistant"])
app.include_router(document_templates.router, prefix=f"{API_VERSION_PREFIX}/document-templates", tags=["Document Templates"])
app.include_router(documents.router, prefix=f"{API_VERSION_PREFIX}/documents", tags=["Documents"])
app.include_router(contracts.router, prefix=f"{API_VERSION_PREFIX}/contracts", tags=["Contracts"])
app.include_router(disputes.router, prefix=f"{API_VERSION_PREFIX}/disputes", tags=["Disputes"])
app.include_router(mediation.router, prefix=f"{API_VERSION_PREFIX}/mediation-sessions", tags=["Mediation"])
app.include_router(court_procedures.router, prefix=f"{API_VERSION_PREFIX}/court-procedures", tags=["Court Procedures"])
app.include_router(subscriptions.router, prefix=f"{API_VERSION_PREFIX}/subscriptions", tags=["Subscriptions"])
app.include_router(webhooks.router, prefix=f"{API_VERSION_PREFIX}/webhooks", tags=["Webhooks"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "lexcanada.main:app",
        host=config.application.api_host,
        port=config.application.api_port,
        reload=config.application.debug,
        log_level=config.application.debug and "debug" or "info"
    )
