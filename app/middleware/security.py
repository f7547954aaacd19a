"""CORS, compression and response header middleware."""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings


def setup_cors(app: FastAPI) -> None:
    """Allow browser clients to post photos and read the request ID back."""
    origins = settings.cors_origins_list

    # Wildcard origins cannot be combined with credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def setup_compression(app: FastAPI) -> None:
    """Compress JSON responses; the NDJSON stream opts out via Content-Encoding."""
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers; photo results are never cached."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if request.url.path.startswith("/photos"):
            response.headers["Cache-Control"] = "no-store"
        return response
