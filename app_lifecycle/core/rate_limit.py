"""
Rate limiting for API endpoints.

Fixed-window counters keyed by client IP. The Redis backend keeps the counters
in a shared store so every instance of the service sees the same budget and a
restart does not reset it; the in-memory backend is for local development.
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import redis.asyncio as redis
from fastapi import Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from app_lifecycle.core.config import settings
from app_lifecycle.core.exceptions import RateLimitError
from app_lifecycle.core.metrics import record_rate_limit_backend_error, record_rate_limit_exceeded
from app_lifecycle.log.logging import logger

EXEMPT_PATHS = frozenset({"/health", "/health/live", "/health/ready", "/metrics", "/"})

PERIOD_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}


def parse_limit(limit_str: str) -> tuple[int, int]:
    """
    Parse limit string like "100/minute" or "1000/hour".

    Returns:
        Tuple of (max_requests, window_seconds).
    """
    parts = limit_str.split("/")
    if len(parts) != 2:
        raise ValueError(f"Invalid limit format: {limit_str}")

    count = int(parts[0])
    period_seconds = PERIOD_SECONDS.get(parts[1].strip().lower())
    if period_seconds is None:
        raise ValueError(f"Invalid period: {parts[1]}")

    return count, period_seconds


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # epoch seconds at which the current window ends

    @property
    def retry_after(self) -> int:
        return max(1, self.reset_at - int(time.time()))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class RateLimiter(ABC):
    """Counts one request against ``identifier`` and reports whether it is allowed."""

    def __init__(self, limit_str: str):
        self.max_requests, self.window_seconds = parse_limit(limit_str)

    def _window(self, now: float) -> int:
        return int(now // self.window_seconds)

    def _result(self, count: int, window: int) -> RateLimitResult:
        return RateLimitResult(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=(window + 1) * self.window_seconds,
        )

    @abstractmethod
    async def hit(self, identifier: str) -> RateLimitResult:
        pass

    async def close(self) -> None:
        pass


class RedisRateLimiter(RateLimiter):
    """
    Shared fixed-window limiter.

    Each window is a Redis key ``<prefix>:ratelimit:<identifier>:<window>`` that is
    incremented per request and expires with the window. When Redis cannot be
    reached the request is allowed through.
    """

    def __init__(self, client: redis.Redis, limit_str: str, prefix: str):
        super().__init__(limit_str)
        self.client = client
        self.prefix = prefix

    def key(self, identifier: str, window: int) -> str:
        return f"{self.prefix}:ratelimit:{identifier}:{window}"

    async def hit(self, identifier: str) -> RateLimitResult:
        window = self._window(time.time())
        key = self.key(identifier, window)
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, self.window_seconds)
                count, _ = await pipe.execute()
        except (RedisError, OSError) as e:
            record_rate_limit_backend_error()
            logger.warning(
                "Rate limit backend unavailable, allowing request",
                error=str(e),
                event_type="rate_limit_backend_error",
            )
            return self._result(0, window)
        return self._result(int(count), window)

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryRateLimiter(RateLimiter):
    """
    Per-process fixed-window limiter.

    Note: counters are neither shared between instances nor kept across restarts.
    """

    def __init__(self, limit_str: str):
        super().__init__(limit_str)
        self._windows: dict[str, tuple[int, int]] = {}  # identifier -> (window, count)

    async def hit(self, identifier: str) -> RateLimitResult:
        window = self._window(time.time())
        current_window, count = self._windows.get(identifier, (window, 0))
        if current_window != window:
            count = 0
        count += 1
        self._windows[identifier] = (window, count)

        # Drop counters from finished windows
        if len(self._windows) > 10000:
            self._windows = {k: v for k, v in self._windows.items() if v[0] == window}

        return self._result(count, window)


_rate_limiter: RateLimiter | None = None


def build_rate_limiter() -> RateLimiter:
    if settings.rate_limit_backend == "memory":
        return InMemoryRateLimiter(settings.rate_limit_requests)
    client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    return RedisRateLimiter(client, settings.rate_limit_requests, settings.redis_key_prefix)


def get_rate_limiter() -> RateLimiter:
    """Get the process-wide rate limiter, creating it from settings on first use."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = build_rate_limiter()
    return _rate_limiter


async def close_rate_limiter() -> None:
    global _rate_limiter
    if _rate_limiter is not None:
        await _rate_limiter.close()
        _rate_limiter = None


def get_client_ip(request: Request) -> str:
    """Client address: first X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware:
    """
    Middleware for applying rate limits to all requests.

    Usage:
        app.add_middleware(RateLimitMiddleware)
    """

    def __init__(self, app, limiter: RateLimiter | None = None):
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not settings.rate_limit_enabled:
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)

        if request.url.path in EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        client_ip = get_client_ip(request)
        limiter = self.limiter or get_rate_limiter()
        result = await limiter.hit(client_ip)

        if not result.allowed:
            record_rate_limit_exceeded(request.url.path)
            logger.warning(
                "Rate limit exceeded",
                client_ip=client_ip,
                path=request.url.path,
                event_type="rate_limit_exceeded",
            )

            error = RateLimitError(retry_after=result.retry_after)
            body = dict(error.detail)
            body["path"] = request.url.path
            response = JSONResponse(
                status_code=error.status_code,
                content=body,
                headers={"Retry-After": str(result.retry_after), **result.headers()},
            )
            await response(scope, receive, send)
            return

        # Add rate limit headers to response
        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                for name, value in result.headers().items():
                    headers.append((name.lower().encode(), value.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)
