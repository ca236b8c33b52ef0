"""
GDGoC Certificate API - HTTP Middleware

Request logging tagged with the route class (the same buckets the rate
limiter uses) and the issuer behind the call, security headers, and a body
size cap for bulk uploads.
"""

import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from gdgoc_certs.core.config import settings
from gdgoc_certs.core.logging_config import (
    logger,
    set_request_id,
    clear_context,
    generate_request_id,
)

ROUTE_AUTH = "auth"
ROUTE_CERTIFICATES = "certificates"
ROUTE_VALIDATION = "validation"
ROUTE_API = "api"
ROUTE_HEALTH = "health"
ROUTE_DOCS = "docs"

DOCS_PATHS = {"/", "/favicon.ico", "/docs", "/redoc", "/openapi.json"}


def classify_route(method: str, path: str, prefix: Optional[str] = None) -> str:
    """Bucket a request the way the rate limiter does"""
    prefix = settings.API_PREFIX if prefix is None else prefix
    if path in DOCS_PATHS:
        return ROUTE_DOCS
    if path == "/health":
        return ROUTE_HEALTH

    local = path[len(prefix):] if prefix and path.startswith(prefix) else path
    if local.startswith("/health"):
        return ROUTE_HEALTH
    if local.startswith("/auth"):
        return ROUTE_AUTH
    if local.startswith("/validate"):
        return ROUTE_VALIDATION
    if local.startswith("/certificates") and method == "POST":
        return ROUTE_CERTIFICATES
    return ROUTE_API


def should_skip_logging(route_class: str) -> bool:
    return route_class in (ROUTE_HEALTH, ROUTE_DOCS)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One line when a request starts and one when it finishes.

    The finishing line names the issuer (ocid and organization) that the auth
    dependencies left on request.state, so issuance and template changes can
    be traced per chapter. Public validation lookups stay anonymous.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        method = request.method
        path = request.url.path
        route_class = classify_route(method, path)
        skip_logging = should_skip_logging(route_class)
        start_time = time.perf_counter()

        if not skip_logging:
            logger.info(
                f"→ {method} {path} [{route_class}]",
                extra={
                    "event_type": "http_request_start",
                    "http_method": method,
                    "http_path": path,
                    "route_class": route_class,
                    "client_ip": request.client.host if request.client else "unknown",
                }
            )

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

            if not skip_logging:
                self._log_complete(request, route_class, response.status_code, duration_ms)

            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"✗ {method} {path} [{route_class}] - {type(exc).__name__} ({duration_ms:.2f}ms)",
                exc_info=True,
                extra={
                    "event_type": "http_request_error",
                    "http_method": method,
                    "http_path": path,
                    "route_class": route_class,
                    "duration_ms": duration_ms,
                    "error_type": type(exc).__name__,
                }
            )
            raise

        finally:
            clear_context()

    def _log_complete(self, request: Request, route_class: str, status_code: int, duration_ms: float) -> None:
        ocid = getattr(request.state, "caller_ocid", None)
        org_name = getattr(request.state, "org_name", None)
        who = ""
        if ocid:
            who = f" {ocid}@{org_name}" if org_name else f" {ocid}"

        if status_code >= 500:
            log_func = logger.error
        elif status_code == 429:
            log_func = logger.warning
        elif status_code >= 400 and route_class != ROUTE_VALIDATION:
            log_func = logger.warning
        else:
            # A 404 on validate is a normal "no such certificate" answer
            log_func = logger.info

        log_func(
            f"← {request.method} {request.url.path} [{route_class}] {status_code} ({duration_ms:.2f}ms){who}",
            extra={
                "event_type": "http_request_complete",
                "http_method": request.method,
                "http_path": request.url.path,
                "http_status": status_code,
                "route_class": route_class,
                "issuer_ocid": ocid,
                "issuer_org": org_name,
                "duration_ms": duration_ms,
            }
        )

        if duration_ms > settings.SLOW_REQUEST_MS:
            logger.warning(
                f"Slow {route_class} request: {request.method} {request.url.path} took {duration_ms:.2f}ms",
                extra={
                    "event_type": "slow_request",
                    "route_class": route_class,
                    "http_path": request.url.path,
                    "duration_ms": duration_ms,
                }
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Certificates and templates are never meant to be framed or sniffed"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects oversized bodies (a bulk CSV export is the usual culprit) with 413"""

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")

        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            logger.warning(
                f"Rejected {content_length}-byte body on {request.url.path} (max {self.max_size})",
                extra={
                    "event_type": "request_too_large",
                    "http_path": request.url.path,
                    "route_class": classify_route(request.method, request.url.path),
                }
            )
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": {
                        "code": "REQUEST_TOO_LARGE",
                        "message": f"Request body too large. Maximum size is {self.max_size // 1024 // 1024}MB",
                        "details": {},
                    },
                },
            )

        return await call_next(request)


__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "RequestSizeLimitMiddleware",
    "classify_route",
    "should_skip_logging",
]
