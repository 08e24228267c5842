"""
Artist Command Center API: application factory and lifecycle.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import CORSMiddleware, RequestContextMiddleware, register_error_handlers
from app.routes import (
    admin,
    auth,
    campaigns,
    contacts,
    emails,
    health,
    quota,
    sending_domains,
    stats,
    unsubscribe,
    webhooks,
)

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL, json_logs=not settings.debug)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool on startup and close it on shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        await db_pool.initialize()
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        raise

    logger.info("All services initialized successfully", services=["database_pool"])

    yield

    logger.info("Application shutting down")
    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Artist Command Center",
    description="Subscriber lists, campaigns and quota-enforced email sending for artists",
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)

# Last added runs first: CORS answers preflights before anything else
app.add_middleware(RequestContextMiddleware)
app.add_middleware(CORSMiddleware, allowed_origins=settings.CORS_ALLOWED_ORIGINS)

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(quota.router)
app.include_router(emails.router)
app.include_router(campaigns.router)
app.include_router(contacts.router)
app.include_router(unsubscribe.router)
app.include_router(webhooks.router)
app.include_router(stats.router)
app.include_router(sending_domains.router)
app.include_router(admin.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        request.method,
        request.url.path,
        response.status_code,
        round(process_time, 2),
        request_id=getattr(request.state, "request_id", None),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
