"""
Per-client request limits backed by Redis.

Each (client IP, path) pair gets a fixed window counter. Exports and
cleanup have tighter budgets than the calculator. When Redis is missing or
errors, requests are let through.
"""
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.cache import get_redis_client
from core.config import settings

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/health", "/health/detailed", "/ping", "/api/health", "/docs", "/openapi.json", "/redoc"})

# Requests per window, matched by path prefix
ENDPOINT_LIMITS: Dict[str, int] = {
    "/api/data/export": 10,
    "/api/database/export": 10,
    "/api/cleanup": 5,
}


@dataclass
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window rate limiter keyed by client IP and path."""

    def __init__(self, app, default_limit: int = 60, window: int = 60, endpoint_limits: Optional[Dict[str, int]] = None):
        super().__init__(app)
        self.default_limit = default_limit
        self.window = window
        self.endpoint_limits = endpoint_limits if endpoint_limits is not None else dict(ENDPOINT_LIMITS)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not settings.RATE_LIMIT_ENABLED or path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        decision = self.check(f"ip:{client_ip}", path)

        if not decision.allowed:
            retry_after = max(0, decision.reset_at - int(time.time()))
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": "Rate limit exceeded",
                    "limit": decision.limit,
                    "window": self.window,
                    "reset_at": decision.reset_at,
                },
                headers={**decision.headers(), "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers.update(decision.headers())
        return response

    def limit_for(self, path: str) -> int:
        for prefix, limit in self.endpoint_limits.items():
            if path == prefix or path.startswith(prefix + "/"):
                return limit
        return self.default_limit

    def check(self, client_id: str, path: str) -> RateDecision:
        """Count this request and decide whether it is within budget."""
        limit = self.limit_for(path)
        open_decision = RateDecision(True, limit, limit, int(time.time()) + self.window)

        redis_client = get_redis_client()
        if redis_client is None:
            return open_decision

        key = f"rate_limit:{client_id}:{path}"
        try:
            count = redis_client.incr(key)
            if count == 1:
                redis_client.expire(key, self.window)
            ttl = redis_client.ttl(key)
        except Exception as e:
            logger.error(f"Rate limit check failed, allowing request: {e}")
            return open_decision

        reset_at = int(time.time()) + (ttl if ttl > 0 else self.window)
        return RateDecision(count <= limit, limit, max(0, limit - count), reset_at)
