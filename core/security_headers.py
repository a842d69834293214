"""
Security headers for every API response.

The API serves JSON and CSV only, so framing and MIME sniffing are always
denied. HSTS is added in production.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.config import settings

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains"


def is_production() -> bool:
    return settings.ENVIRONMENT == "production" and not settings.DEBUG


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds BASE_HEADERS (and HSTS in production) without overriding route headers."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        for name, value in BASE_HEADERS.items():
            response.headers.setdefault(name, value)
        if is_production():
            response.headers["Strict-Transport-Security"] = HSTS_VALUE

        return response
