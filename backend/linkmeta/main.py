import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from linkmeta.api.health import router as health_router
from linkmeta.api.router import api_router
from linkmeta.config import settings
from linkmeta.core.cache import build_caches
from linkmeta.core.exceptions import register_exception_handlers
from linkmeta.core.logging_config import configure_logging
from linkmeta.core.rate_limiter import SlidingWindowLimiter
from linkmeta.middleware.request_id import RequestIDMiddleware
from linkmeta.services.fetcher import close_http_client

# Configure structured logging (must happen before any logger is created)
configure_logging(log_format=settings.LOG_FORMAT, log_level=settings.LOG_LEVEL)

# Initialize Sentry error tracking
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.SENTRY_ENVIRONMENT,
        release=f"linkmeta@{settings.APP_VERSION}",
    )

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info(
        f"Starting {settings.APP_NAME} v{settings.APP_VERSION} "
        f"(cache={settings.CACHE_BACKEND}, rate limit={settings.RATE_LIMIT_MAX}/{settings.RATE_LIMIT_WINDOW_SECONDS}s)"
    )

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_http_client()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="LinkMeta - link preview metadata service. "
    "Extract titles, descriptions, images, authors and favicons from any URL, "
    "and stream AI summaries of video transcripts.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Per-process state shared by every request
app.state.caches = build_caches()
app.state.rate_limiter = SlidingWindowLimiter(
    limit=settings.RATE_LIMIT_MAX, window=settings.RATE_LIMIT_WINDOW_SECONDS
)

# Request ID middleware (must be added before other middleware)
app.add_middleware(RequestIDMiddleware)

# Gzip compression for JSON responses (event streams are passed through uncompressed)
app.add_middleware(GZipMiddleware, minimum_size=500)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router)

# Health & metrics routes (no /api prefix)
app.include_router(health_router)


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "status": "running",
    }
