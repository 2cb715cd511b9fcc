"""
Research Grants Portal - HTTP Middleware
Request tracing, security headers and the request body cap
"""

import time
from typing import Callable, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from grantsportal.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


QUIET_PATHS: FrozenSet[str] = frozenset({
    "/",
    "/api/health",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
})

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Resource-Policy": "same-site",
}


def is_quiet(path: str) -> bool:
    """Health checks, docs and static assets are not logged per request"""
    return path in QUIET_PATHS or path.startswith("/uploads/")


def client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id (``X-Request-ID``, taken from the caller when
    present), times it (``X-Response-Time``) and logs the outcome.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        path = request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"{request.method} {path} raised {type(exc).__name__} "
                f"after {(time.perf_counter() - started) * 1000:.2f}ms",
                exc_info=True,
                extra={"event_type": "http_request_error", "http_path": path},
            )
            raise
        else:
            duration_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
            if not is_quiet(path):
                logger.log_request(
                    request.method, path, response.status_code, duration_ms,
                    client_ip=client_host(request),
                )
            return response
        finally:
            set_request_id("")
            set_user_id("")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds SECURITY_HEADERS to every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies whose declared Content-Length exceeds ``max_size`` with 413"""

    def __init__(self, app: ASGIApp, max_size: int = 25 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(
                f"Rejected {request.method} {request.url.path}: body of {declared} bytes "
                f"exceeds {self.max_size} bytes",
                extra={"event_type": "request_too_large", "client_ip": client_host(request)},
            )
            return JSONResponse(
                status_code=413,
                content={"message": f"Request body too large. Maximum size is {self.max_size // (1024 * 1024)}MB"}
            )
        return await call_next(request)
