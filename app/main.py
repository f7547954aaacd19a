"""FastAPI application entry point."""

import logging

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.routes import health, photos
from app.config import settings
from app.core.request_id import get_request_id
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import get_rate_limit_exceeded_handler, limiter
from app.middleware.security import SecurityHeadersMiddleware, setup_compression, setup_cors
from app.utils.exceptions import (
    CompletionError,
    ImageProcessingError,
    NotConfiguredError,
    PhotoImportException,
    ValidationError,
)
from app.utils.logging_config import setup_logging

# Setup logging
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Recipe Photo Import API",
    description="Bulk extraction of recipes from photos using Gemini vision",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, get_rate_limit_exceeded_handler())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors without echoing image payloads back."""
    request_id = get_request_id()
    errors = [
        {"loc": error.get("loc"), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "errors": errors,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "detail": errors,
            "request_id": request_id,
        },
    )


@app.exception_handler(PhotoImportException)
async def photo_import_exception_handler(request: Request, exc: PhotoImportException) -> JSONResponse:
    """Map the service exception hierarchy onto HTTP statuses."""
    request_id = get_request_id()

    if isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
        error_message = "Validation error"
    elif isinstance(exc, ImageProcessingError):
        status_code = status.HTTP_400_BAD_REQUEST
        error_message = "Image processing error"
    elif isinstance(exc, NotConfiguredError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        error_message = "Photo import not configured"
    elif isinstance(exc, CompletionError):
        status_code = status.HTTP_502_BAD_GATEWAY
        error_message = "Gemini API error"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_message = "Internal server error"

    logger.error(
        f"Exception: {error_message}",
        extra={"request_id": request_id, "exception": str(exc), "kind": exc.kind},
        exc_info=status_code >= 500,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_message,
            "detail": str(exc),
            "request_id": request_id,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = get_request_id()

    logger.error(
        f"Unexpected exception: {str(exc)}",
        extra={"request_id": request_id},
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred",
            "request_id": request_id,
        },
    )


# Add middleware (order matters!)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
setup_compression(app)
setup_cors(app)

app.include_router(health.router)
app.include_router(photos.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    config = settings.photo_import_config()
    logger.info("Recipe Photo Import API starting up...")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(
        f"Extraction model: {config.extraction_model}, grouping model: {config.grouping_model}, "
        f"concurrency: {config.concurrency}"
    )
    if not config.is_configured:
        logger.warning("GEMINI_API_KEY is not set; photo endpoints will answer 503")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event."""
    logger.info("Recipe Photo Import API shutting down...")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Recipe Photo Import API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
