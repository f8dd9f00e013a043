"""
Prometheus metrics for application monitoring.

This module provides metrics collection for:
- HTTP request latency and counts
- Lifecycle transitions and the auto-decline cascade
- Lifecycle event publishing
- Rate limiting
"""

import time
from collections.abc import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

from app_lifecycle.core.config import settings

# =============================================================================
# Service Info
# =============================================================================

SERVICE_INFO = Info("application_lifecycle_service", "Information about the application lifecycle service")
SERVICE_INFO.info(
    {"version": "1.0.0", "service_name": settings.service_name, "environment": settings.environment}
)


# =============================================================================
# HTTP Metrics
# =============================================================================

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "endpoint", "status_code"]
)

HTTP_REQUEST_IN_PROGRESS = Gauge(
    "http_requests_in_progress", "HTTP requests currently in progress", ["method", "endpoint"]
)


# =============================================================================
# Lifecycle Metrics
# =============================================================================

LIFECYCLE_TRANSITIONS = Counter(
    "lifecycle_transitions_total",
    "Application lifecycle transitions attempted",
    ["transition", "outcome"],  # outcome: success, rejected, error
)

APPLICATIONS_AUTO_DECLINED = Counter(
    "applications_auto_declined_total",
    "Applications archived by the approval cascade",
)

AUTO_DECLINE_FAILURES = Counter(
    "auto_decline_failures_total",
    "Sibling applications that could not be archived in best-effort mode",
)


# =============================================================================
# Event Metrics
# =============================================================================

EVENTS_PUBLISHED = Counter(
    "lifecycle_events_published_total",
    "Lifecycle events published to the message broker",
    ["event_type", "status"],  # success, failed
)


# =============================================================================
# Rate Limiting Metrics
# =============================================================================

RATE_LIMIT_EXCEEDED = Counter(
    "rate_limit_exceeded_total",
    "Total number of rate limit exceeded responses",
    ["endpoint"],
)

RATE_LIMIT_BACKEND_ERRORS = Counter(
    "rate_limit_backend_errors_total",
    "Rate limit checks that failed open because the backend was unreachable",
)


# =============================================================================
# Middleware
# =============================================================================


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP request metrics.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip metrics endpoint itself
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_path(request.url.path)

        HTTP_REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.time() - start_time
            HTTP_REQUEST_DURATION.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).observe(duration)
            HTTP_REQUEST_TOTAL.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            HTTP_REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).dec()

        return response


def normalize_path(path: str) -> str:
    """
    Normalize path by replacing dynamic segments with placeholders.

    Examples:
        /posts/65a1f0c2e4b0a1b2c3d4e5f6/applications -> /posts/{id}/applications
        /posts/P-010125-00/applications -> /posts/{id}/applications
    """
    parts = path.strip("/").split("/")
    normalized = []

    for part in parts:
        # ObjectIds, UUIDs and post codes
        if len(part) == 24 or len(part) == 36 or (len(part) > 8 and "-" in part):
            normalized.append("{id}")
        else:
            normalized.append(part)

    return "/" + "/".join(normalized) if normalized else "/"


# =============================================================================
# Helper Functions
# =============================================================================


def record_transition(transition: str, outcome: str = "success"):
    """Record a lifecycle transition attempt."""
    LIFECYCLE_TRANSITIONS.labels(transition=transition, outcome=outcome).inc()


def record_auto_declined(count: int):
    """Record applications archived by an approval."""
    if count:
        APPLICATIONS_AUTO_DECLINED.inc(count)


def record_auto_decline_failure():
    AUTO_DECLINE_FAILURES.inc()


def record_event_published(event_type: str, status: str = "success"):
    EVENTS_PUBLISHED.labels(event_type=event_type, status=status).inc()


def record_rate_limit_exceeded(endpoint: str):
    """Record a rate limit exceeded event."""
    RATE_LIMIT_EXCEEDED.labels(endpoint=normalize_path(endpoint)).inc()


def record_rate_limit_backend_error():
    RATE_LIMIT_BACKEND_ERRORS.inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST
