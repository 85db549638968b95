"""
TableRewards API - Main Application Entry Point

Restaurant table booking with loyalty rewards:
- Per-slot capacity enforced with optimistic locking on a slot row
- Exactly-once confirmation rewards backed by a unique ledger constraint
- Post-commit confirmation emails and a daily reminder sweep
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tablerewards.core.config import get_settings
from tablerewards.core.errors import BookingError
from tablerewards.core.logging import setup_logging, get_logger
from tablerewards.core.metrics import metrics_endpoint
from tablerewards.api.errors import booking_error_handler
from tablerewards.api.router import api_router
from tablerewards.api.middleware import RequestLoggingMiddleware
from tablerewards.services.cache_service import get_redis, close_redis, get_cache_stats
from tablerewards.services.notification_service import drain_notifications
from tablerewards.tasks.reminder_scheduler import start_reminder_scheduler, stop_reminder_scheduler

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    start_reminder_scheduler()

    yield

    stop_reminder_scheduler()
    await drain_notifications()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Restaurant booking API with capacity-safe reservations and loyalty rewards",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
app.add_exception_handler(BookingError, booking_error_handler)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
