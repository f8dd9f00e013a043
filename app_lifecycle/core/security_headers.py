"""
Security headers middleware for HTTP response hardening.

The service only returns JSON, so the policy forbids every kind of embedded
resource and all caching of responses.
"""
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app_lifecycle.core.config import settings

API_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Permissions-Policy": "camera=(), geolocation=(), microphone=(), payment=()",
    # Application records carry candidate details
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}

HSTS_HEADER = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all HTTP responses.

    ``Strict-Transport-Security`` is only sent in production, where the service
    sits behind TLS.
    """

    def __init__(self, app, include_hsts: bool = True):
        super().__init__(app)
        self.include_hsts = include_hsts and settings.environment == "production"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for name, value in API_SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        if self.include_hsts:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER

        return response
