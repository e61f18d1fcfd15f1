"""
Rate Limiter for MedRep

In-memory sliding-window rate limiting per auth header or client IP.
Returns 429 with Retry-After header when limit exceeded.
"""

import logging
import os
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

RATE_LIMIT = int(os.environ.get("RATE_LIMIT", "30"))  # requests per window
RATE_WINDOW = int(os.environ.get("RATE_WINDOW", "60"))  # seconds

EXEMPT_PATHS = frozenset(
    {
        "/health",
        "/ready",
        "/metrics",
        "/api/v1/rag/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    }
)


class RateLimiter:
    """Sliding-window rate limiter keyed by caller."""

    def __init__(self, limit: int = RATE_LIMIT, window: int = RATE_WINDOW) -> None:
        self.limit = limit
        self.window = window
        self._counters: dict[str, list[float]] = {}

    def _get_user_key(self, request: Request) -> str:
        """Extract user identifier from request."""
        # Try auth header first, fall back to IP
        auth = request.headers.get("authorization", "")
        if auth:
            return f"rate:{auth[:50]}"
        client_host = request.client.host if request.client else "unknown"
        return f"rate:{client_host}"

    def is_allowed(self, key: str) -> tuple[bool, int]:
        """
        Check if request is allowed under rate limit.

        Returns (allowed, retry_after_seconds).
        """
        now = time.time()
        window_start = now - self.window

        # Remove expired timestamps
        timestamps = [ts for ts in self._counters.get(key, []) if ts > window_start]
        self._counters[key] = timestamps

        if len(timestamps) >= self.limit:
            retry_after = int(timestamps[0] + self.window - now) + 1
            return False, max(retry_after, 1)

        timestamps.append(now)
        return True, 0

    def get_remaining(self, key: str) -> int:
        """Get remaining requests in current window."""
        window_start = time.time() - self.window
        active = [ts for ts in self._counters.get(key, []) if ts > window_start]
        return max(0, self.limit - len(active))

    def reset(self) -> None:
        self._counters.clear()


# Process-wide limiter shared by the middleware
_limiter = RateLimiter()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for rate limiting."""

    def __init__(self, app, limiter: RateLimiter | None = None) -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self.limiter = limiter or _limiter

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        # Skip rate limiting for health checks, metrics, and docs
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        key = self.limiter._get_user_key(request)
        allowed, retry_after = self.limiter.is_allowed(key)

        if not allowed:
            logger.warning("Rate limit exceeded for %s", key)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Rate limit exceeded",
                    "detail": (
                        f"Maximum {self.limiter.limit} requests per "
                        f"{self.limiter.window} seconds"
                    ),
                    "retry_after": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        remaining = self.limiter.get_remaining(key)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
