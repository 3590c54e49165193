"""
FastAPI application entry point.
Main application setup and configuration.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.config import settings
from app.database import test_database_connection, close_db_connection
from app.routers import listings_router, favorites_router, health_router
from app.utils.exceptions import APIException
from app.services.error_handler import ErrorHandlerService
from app.middleware.request_logging import RequestLoggingMiddleware

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    db_connected = await test_database_connection()
    if not db_connected:
        logger.error("Failed to connect to database on startup")

    yield

    logger.info("Shutting down application")
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    REST API for a rental listing marketplace.

    ## Features

    * **Listings**: Landlords and caretakers publish, update and remove listings
    * **Search**: Free text plus filters on location, price, rooms, amenities and features
    * **Images**: Up to 10 JPEG/PNG images per listing, first one is the cover
    * **Favorites**: Signed-in users save listings they like

    ## Authentication

    Send the identity provider's access token as `Authorization: Bearer <token>`.
    Browsing works anonymously; writes require a token.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Listings",
            "description": "Listing browse, search and management"
        },
        {
            "name": "Favorites",
            "description": "Saved listings of the signed-in user"
        },
        {
            "name": "Health",
            "description": "Service health"
        }
    ],
    lifespan=lifespan,
)

app.add_middleware(
    RequestLoggingMiddleware,
    max_request_size=settings.max_request_size,
    enable_request_logging=not settings.is_testing
)

# Added last so it wraps everything, including error responses from the logging middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Include API routers
app.include_router(health_router, prefix=settings.api_prefix)
app.include_router(listings_router, prefix=settings.api_prefix)
app.include_router(favorites_router, prefix=settings.api_prefix)

# Listing images written by the local object store
app.mount(
    settings.media_url_path,
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="media"
)


# Global exception handlers using ErrorHandlerService
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions with structured error responses."""
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed field information."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors with appropriate error responses."""
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle framework HTTP exceptions, including unknown routes."""
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with secure error responses."""
    return ErrorHandlerService.handle_unexpected_error(exc, request)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development
    )
