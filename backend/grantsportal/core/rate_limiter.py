"""
Rate Limiting for the Research Grants Portal API
================================================
slowapi limiter keyed on the authenticated user when known, else the client IP.

Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at
``redis://...`` when running several workers.

Auth endpoints carry their own, stricter limits:
- /auth/login: 10 req/min (brute force protection)
- /auth/register: 5 req/min
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from grantsportal.core.config import settings
from grantsportal.core.logging_config import logger


def get_user_identifier(request: Request) -> str:
    """Rate limit key: authenticated user id, falling back to IP address"""
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return a JSON 429 with a Retry-After header"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "message": "Too many requests. Please slow down.",
            "error": str(exc.detail),
        },
        headers={"Retry-After": "60"},
    )
