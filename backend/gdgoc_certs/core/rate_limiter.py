"""
Rate Limiting for the GDGoC Certificate API
===========================================
Implements rate limiting using slowapi (in-memory storage by default).

Route classes and their default ceilings:
- auth (/auth/me): 10 req/min
- general API (profile, listing, templates): 100 req/15 min
- certificate creation (single and bulk): 50 req/hour
- public validation: 30 req/min

Limits are counted per caller: the identity proxy uid when present,
otherwise the client address.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from gdgoc_certs.core.config import settings
from gdgoc_certs.core.logging_config import logger


def get_caller_key(request: Request) -> str:
    """
    Get rate limit key for the request.

    Priority:
    1. Identity proxy uid header
    2. IP address
    """
    uid = request.headers.get(settings.AUTH_HEADER_UID)
    if uid and uid.strip():
        return f"user:{uid.strip()}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_caller_key,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    limit = getattr(exc, "limit", None)
    item = getattr(limit, "limit", None)
    if item is None:
        return 60
    return int(item.get_expiry())


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """JSON 429 with a Retry-After header"""
    retry_after = _retry_after_seconds(exc)

    logger.warning(f"[RateLimit] Exceeded for {get_caller_key(request)} on {request.url.path}: {exc.detail}")

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": "Too many requests, please try again later.",
                "details": {"limit": str(exc.detail), "retry_after_seconds": retry_after},
            },
        },
        headers={"Retry-After": str(retry_after)},
    )


# Pre-configured limits per route class
def auth_rate_limit():
    return limiter.limit(settings.RATE_LIMIT_AUTH)


def api_rate_limit():
    return limiter.limit(settings.RATE_LIMIT_API)


def certificate_rate_limit():
    return limiter.limit(settings.RATE_LIMIT_CERTIFICATES)


def validation_rate_limit():
    return limiter.limit(settings.RATE_LIMIT_VALIDATION)
