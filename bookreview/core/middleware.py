# bookreview/core/middleware.py
import time
import uuid
import logging

from typing import Optional, Set
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.gzip import GZipMiddleware

from bookreview.core.config import settings
from bookreview.core.exception_handler import error_response
from bookreview.core.security import SecurityHeaders

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Adds a request ID to every request and logs structured information
    about the request and its response.
    """

    def __init__(self, app, exclude_paths: Optional[Set[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or {"/health", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next):
        # 1. Set up request ID and timing
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        # 2. Decide if we should perform detailed logging
        should_log = request.url.path not in self.exclude_paths

        # 3. Log the incoming request if applicable
        if should_log:
            logger.info(
                "Incoming request",
                extra={
                    "request_id": request_id,
                    "client_ip": self._get_client_ip(request),
                    "method": request.method,
                    "path": request.url.path,
                    "query_params": (
                        str(request.query_params) if request.query_params else None
                    ),
                },
            )

        # 4. Process the request. Exceptions are rendered by the registered
        #    exception handlers.
        response = await call_next(request)

        # 5. Prepare and log the outgoing response
        process_time = (time.time() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id

        if should_log:
            logger.info(
                "Request completed",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "process_time_ms": round(process_time, 2),
                },
            )

        return response

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP considering proxy headers"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the headers from SecurityHeaders to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # 1. Base set of security headers
        headers = SecurityHeaders.get_headers()
        # 2. HSTS only for HTTPS requests
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # 3. Apply all the collected headers to the response
        for header, value in headers.items():
            response.headers[header] = value

        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared payload exceeds `max_size` bytes."""

    def __init__(self, app, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")

        if content_length and int(content_length) > self.max_size:
            return error_response(
                request,
                status_code=413,
                code="PAYLOAD_TOO_LARGE",
                message=f"Request payload exceeds maximum size of {self.max_size} bytes",
            )

        return await call_next(request)


def register_middlewares(app: FastAPI):
    """
    Registers all middlewares for the FastAPI application.
    Middlewares execute in reverse order of registration.
    """
    allowed_hosts = _split_setting(settings.ALLOWED_HOSTS)
    cors_origins = _split_setting(settings.CORS_ORIGINS) or ["http://localhost:3000"]

    # 1. Request size limit, early so large bodies are rejected quickly
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
    # 2. GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    # 3. Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # 4. Trusted hosts
    if allowed_hosts and "*" not in allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)
    else:
        logger.warning("TrustedHostMiddleware disabled: ALLOWED_HOSTS contains '*'")

    # 5. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # 6. Request logging, outermost so it sees every response
    app.add_middleware(RequestLoggingMiddleware)

    logger.info("All middlewares registered successfully")


def _split_setting(value: Optional[str]) -> list[str]:
    """Split a comma separated setting into a clean list."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
