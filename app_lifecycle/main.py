from contextlib import asynccontextmanager

from fastapi import FastAPI

from app_lifecycle.core.config import settings
from app_lifecycle.core.correlation import CorrelationIdMiddleware
from app_lifecycle.core.database import close_database, init_database
from app_lifecycle.core.exceptions import register_exception_handlers
from app_lifecycle.core.metrics import MetricsMiddleware
from app_lifecycle.core.rate_limit import RateLimitMiddleware, close_rate_limiter
from app_lifecycle.core.security_headers import SecurityHeadersMiddleware
from app_lifecycle.log.logging import logger
from app_lifecycle.routers.admin_router import router as admin_router
from app_lifecycle.routers.applications_router import router as applications_router
from app_lifecycle.routers.dependencies import close_event_publisher
from app_lifecycle.routers.healthcheck_router import router as healthcheck_router
from app_lifecycle.routers.metrics_router import router as metrics_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    logger.info("Starting Application Lifecycle Service...")

    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        # Continue startup; /health/ready reports the outage

    if not settings.lifecycle_atomic_transitions:
        logger.warning(
            "Atomic transitions disabled, approval cascade runs best effort",
            event_type="lifecycle_best_effort_mode",
        )

    yield

    # Shutdown
    logger.info("Shutting down Application Lifecycle Service...")
    await close_event_publisher()
    await close_rate_limiter()
    await close_database()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Application Lifecycle Service",
        description="Applications to tutoring and freelance posts: apply, approve with auto-decline, withdrawal",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Middlewares wrap in reverse order: the last one added runs first
    if settings.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/", include_in_schema=False)
    async def root():
        return {"message": "Application Lifecycle Service is running!"}

    app.include_router(healthcheck_router)
    app.include_router(metrics_router)
    app.include_router(applications_router)
    app.include_router(admin_router)
    return app


app = create_app()
