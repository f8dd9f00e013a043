"""
Health check endpoints for Kubernetes probes and monitoring.

Provides:
- /health: Full health check with dependency status
- /health/live: Liveness probe (is the service running?)
- /health/ready: Readiness probe (can the service handle traffic?)

MongoDB is critical: without it no transition can run. Redis (shared rate limit
counters) and RabbitMQ (lifecycle events) only degrade the service, since the
limiter fails open and event publishing is best effort.
"""

import time
from datetime import datetime

import aio_pika
import redis.asyncio as redis_async
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app_lifecycle.core.config import settings
from app_lifecycle.core.database import db_manager
from app_lifecycle.log.logging import logger

router = APIRouter(tags=["healthcheck"])


class DependencyStatus(BaseModel):
    """Status of a single dependency."""

    name: str
    status: str  # "healthy", "unhealthy"
    critical: bool = True
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Full health check response."""

    status: str  # "healthy", "unhealthy", "degraded"
    version: str = "1.0.0"
    service: str = "application-lifecycle-service"
    environment: str
    timestamp: str
    dependencies: list[DependencyStatus] = []


class LivenessResponse(BaseModel):
    """Liveness probe response."""

    status: str = "alive"
    timestamp: str


class ReadinessResponse(BaseModel):
    """Readiness probe response."""

    status: str  # "ready", "not_ready"
    timestamp: str
    checks: dict[str, str] = {}


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


async def _timed(name: str, critical: bool, probe) -> DependencyStatus:
    start_time = time.time()
    try:
        await probe()
        status, message = "healthy", None
    except Exception as e:
        logger.warning(f"{name} health check failed: {e}")
        status, message = "unhealthy", str(e)
    return DependencyStatus(
        name=name,
        status=status,
        critical=critical,
        latency_ms=round((time.time() - start_time) * 1000, 2),
        message=message,
    )


async def check_mongodb() -> DependencyStatus:
    async def probe():
        if not await db_manager.ping():
            raise ConnectionError("ping failed")

    return await _timed("mongodb", True, probe)


async def check_redis() -> DependencyStatus:
    async def probe():
        client = redis_async.from_url(settings.redis_url, socket_connect_timeout=5.0)
        try:
            await client.ping()
        finally:
            await client.aclose()

    return await _timed("redis", False, probe)


async def check_rabbitmq() -> DependencyStatus:
    async def probe():
        connection = await aio_pika.connect(settings.rabbitmq_url, timeout=5)
        await connection.close()

    return await _timed("rabbitmq", False, probe)


async def collect_dependencies() -> list[DependencyStatus]:
    dependencies = [await check_mongodb()]
    if settings.rate_limit_enabled and settings.rate_limit_backend == "redis":
        dependencies.append(await check_redis())
    if settings.events_enabled:
        dependencies.append(await check_rabbitmq())
    return dependencies


@router.get(
    "/health",
    summary="Full health check",
    description="Returns detailed health status including all dependencies.",
    response_model=HealthResponse,
    responses={
        200: {"description": "Service is healthy or degraded"},
        503: {"description": "A critical dependency is unavailable"},
    },
)
async def health_check():
    """
    Full health check endpoint with dependency status.

    Returns detailed information about:
    - Overall service status
    - MongoDB, Redis and RabbitMQ connection status
    - Response latencies
    """
    dependencies = await collect_dependencies()

    overall_status = "healthy"
    for dependency in dependencies:
        if dependency.status == "unhealthy":
            if dependency.critical:
                overall_status = "unhealthy"
                break
            overall_status = "degraded"

    response = HealthResponse(
        status=overall_status,
        environment=settings.environment,
        timestamp=_now(),
        dependencies=dependencies,
    )

    if overall_status == "unhealthy":
        return JSONResponse(status_code=503, content=response.model_dump())
    return response


@router.get(
    "/health/live",
    summary="Liveness probe",
    description="Kubernetes liveness probe - checks if the service is running.",
    response_model=LivenessResponse,
    responses={200: {"description": "Service is alive"}},
)
async def liveness_probe():
    """
    Liveness probe for Kubernetes.

    This endpoint should always succeed if the process is alive.
    """
    return LivenessResponse(status="alive", timestamp=_now())


@router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Kubernetes readiness probe - checks if the service can handle traffic.",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready to handle traffic"},
        503: {"description": "Service is not ready"},
    },
)
async def readiness_probe():
    """
    Readiness probe for Kubernetes.

    Returns 503 only when MongoDB is unavailable.
    """
    mongodb = await check_mongodb()
    checks = {mongodb.name: "ready" if mongodb.status == "healthy" else "not_ready"}
    response = ReadinessResponse(
        status="ready" if mongodb.status == "healthy" else "not_ready",
        timestamp=_now(),
        checks=checks,
    )

    if response.status != "ready":
        return JSONResponse(status_code=503, content=response.model_dump())
    return response
