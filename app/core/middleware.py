import time
import uuid
import logging

from typing import Optional, Set
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.gzip import GZipMiddleware
from app.core.config import settings
from app.core.logging_config import request_id_ctx
from app.core.security import SecurityHeaders

# Get a logger instance
logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Gives every request an id (the client's X-Request-ID when present), makes
    it visible to log records and response envelopes, and logs the request
    and its outcome.
    """

    def __init__(self, app, exclude_paths: Optional[Set[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or {"/health", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        start_time = time.perf_counter()

        should_log = request.url.path not in self.exclude_paths

        try:
            if should_log:
                logger.info(
                    "Incoming request",
                    extra={
                        "client_ip": self._get_client_ip(request),
                        "method": request.method,
                        "path": request.url.path,
                        "user_agent": request.headers.get("user-agent", "unknown"),
                    },
                )

            # Exceptions raised below are turned into responses by the
            # registered exception handlers
            response = await call_next(request)

            process_time = (time.perf_counter() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id

            if should_log:
                logger.info(
                    "Request completed",
                    extra={
                        "status_code": response.status_code,
                        "process_time_ms": round(process_time, 2),
                    },
                )
            return response
        finally:
            request_id_ctx.reset(token)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP considering proxy headers"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # Take the first IP in the chain
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the headers from SecurityHeaders to every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        headers = SecurityHeaders.get_headers()
        # HSTS only makes sense over HTTPS
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        for header, value in headers.items():
            response.headers[header] = value

        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware to limit request payload size
    """

    def __init__(self, app, max_size: int = 10 * 1024 * 1024):  # 10MB default
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")

        if content_length and int(content_length) > self.max_size:
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": {
                        "code": "PAYLOAD_TOO_LARGE",
                        "message": f"Request payload exceeds maximum size of {self.max_size} bytes",
                    },
                },
            )

        return await call_next(request)


def register_middlewares(app: FastAPI):
    """
    Registers all middlewares for the FastAPI application.
    The order of middleware is important - they are executed in reverse order of registration.
    """
    allowed_hosts = _get_allowed_hosts()
    cors_origins = _get_cors_origins()

    # 1. Request Size Limit Middleware
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)

    # 2. GZip Middleware
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # 3. Security Headers Middleware
    app.add_middleware(SecurityHeadersMiddleware)

    # 4. Trusted Host Middleware
    if "*" not in allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)
    else:
        logger.warning("TrustedHostMiddleware disabled: ALLOWED_HOSTS contains '*'")

    # 5. CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    # 6. Request logging (outermost, sees every request)
    app.add_middleware(RequestLoggingMiddleware)

    logger.info("All middlewares registered successfully")


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_allowed_hosts() -> list[str]:
    """Validate and return allowed hosts configuration"""
    hosts = _split_csv(settings.ALLOWED_HOSTS or "")
    if not hosts:
        logger.warning("ALLOWED_HOSTS not configured, using restrictive default")
        return ["localhost", "127.0.0.1"]
    return hosts


def _get_cors_origins() -> list[str]:
    """Validate and return CORS origins configuration"""
    origins = _split_csv(settings.CORS_ORIGINS or "")
    if not origins:
        logger.warning("CORS_ORIGINS not configured, using restrictive default")
        return ["http://localhost:3003", "http://localhost:3000"]

    logger.info(f"Configured CORS origins: {origins}")
    return origins
