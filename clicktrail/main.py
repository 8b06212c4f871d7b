"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from clicktrail.api.analytics import router as analytics_router
from clicktrail.api.links import router as links_router
from clicktrail.api.redirect import router as redirect_router
from clicktrail.core.config import get_settings
from clicktrail.core.database import close_db
from clicktrail.core.exceptions import register_exception_handlers
from clicktrail.core.observability import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    setup_observability,
)
from clicktrail.core.rate_limit import limiter
from clicktrail.core.redis import RedisCacheStore, close_redis, get_cache_store
from clicktrail.services.geoip import close_geoip_service

settings = get_settings()

# Get logger (will be configured by setup_observability)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info("Starting Clicktrail", version=settings.app_version)
    yield
    # Shutdown
    logger.info("Shutting down Clicktrail")
    await close_geoip_service()
    await close_redis()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Short link resolution with click analytics",
    lifespan=lifespan,
)

# Set up observability (logging, tracing, metrics, Sentry)
setup_observability(app)

# Error mapping for ClickTrailError subclasses
register_exception_handlers(app)

# Rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Middleware stack (first added = outermost)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "X-Request-ID"],
)

# Include routers
app.include_router(links_router)
app.include_router(analytics_router)
app.include_router(redirect_router)


@app.get("/health")
async def health_check(
    store: Annotated[RedisCacheStore, Depends(get_cache_store)],
) -> dict:
    """Health check endpoint. Degraded when Redis does not answer."""
    try:
        redis_ok = await store.ping()
    except Exception as e:
        logger.warning("Health check: Redis unavailable", error=str(e))
        redis_ok = False
    return {
        "status": "healthy" if redis_ok else "degraded",
        "service": "clicktrail",
        "redis": redis_ok,
    }


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Welcome to Clicktrail", "version": settings.app_version}
