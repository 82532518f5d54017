"""
FastAPI application entry point for the FanHub notifications backend.

This module initializes the FastAPI application with:
- Application state (unread count cache)
- Session and CORS middleware
- Rate limiting (slowapi) shared by the API routers
- Exception handlers for consistent error responses
- Logging configuration

Environment Variables:
    FANHUB_DB_URL: Database connection URL
    FANHUB_ENV: Environment (production/development, default: development)
    FANHUB_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL, default: INFO)
    See config/settings.py for the application settings.
"""

from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from backend.src.config.settings import get_settings
from backend.src.db.database import dispose_engine
from backend.src.utils.cache import init_unread_count_cache
from backend.src.utils.logging_config import init_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events:
    - Startup: Create the unread count cache
    - Shutdown: Drop cached counts and close pooled connections

    Args:
        app: FastAPI application instance

    Yields:
        Control to the application
    """
    logger = get_logger("api")
    logger.info("Starting FanHub notifications backend")

    app_settings = get_settings()
    if not app_settings.jwt_configured:
        logger.warning("JWT_SECRET_KEY is not set; Bearer token authentication is disabled")

    app.state.unread_count_cache = init_unread_count_cache(
        ttl_seconds=app_settings.unread_count_cache_ttl
    )
    logger.info(
        "Application state initialized",
        extra={"unread_count_cache_ttl": app_settings.unread_count_cache_ttl},
    )

    yield

    logger.info("Shutting down FanHub notifications backend")
    app.state.unread_count_cache.clear()
    dispose_engine()


# Initialize logging before creating app
init_logging()

settings = get_settings()

# Shared rate limiter, imported by the API routers
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
)

# Create FastAPI application
app = FastAPI(
    title="FanHub Notifications API",
    description="Channel subscriptions and in-app notifications for the FanHub "
                "video hub. New videos fan out to subscribers with notifications "
                "enabled; clients list, filter, mark read and delete notifications.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    session_cookie="fanhub_session",
    same_site="lax",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers


@app.exception_handler(ValidationError)
async def validation_exception_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors raised outside request parsing.

    Args:
        request: HTTP request
        exc: Pydantic ValidationError

    Returns:
        JSON response with validation error details
    """
    logger = get_logger("api")
    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": exc.errors(),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "message": "Request validation failed",
            "details": exc.errors(include_url=False, include_context=False),
        }
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """
    Handle SQLAlchemy database errors.

    Args:
        request: HTTP request
        exc: SQLAlchemy exception

    Returns:
        JSON response with database error message
    """
    logger = get_logger("db")
    logger.error(
        "Database error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Database Error",
            "message": "An error occurred while accessing the database. "
                      "Please try again later.",
        }
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle all other unhandled exceptions.
    """
    logger = get_logger("api")
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later.",
        }
    )


# Health check endpoint


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Health status and application information
    """
    return {
        "status": "healthy",
        "service": "fanhub-notifications",
        "version": "1.0.0",
    }


# API routers
from backend.src.api import notifications, subscriptions
from backend.src.api.admin import ingestion_router, notifications_router

app.include_router(notifications.router, prefix="/api")
app.include_router(subscriptions.router, prefix="/api")
app.include_router(ingestion_router, prefix="/api/admin")
app.include_router(notifications_router, prefix="/api/admin")
