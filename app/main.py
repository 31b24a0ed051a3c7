"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api import projects, sync, webhooks
from app.config import settings
from app.dependencies import get_sync_service, get_webhook_service
from app.models.base import init_db
from app.scheduler import scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting GitHub Calendar Sync Service")
    init_db()
    # Missing credentials or a bad webhook algorithm stop startup here
    get_sync_service()
    get_webhook_service()
    if settings.sync_scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Periodic sync disabled")
    yield
    # Shutdown
    logger.info("Stopping GitHub Calendar Sync Service")
    scheduler.stop()


app = FastAPI(
    title="GitHub Calendar Sync Service",
    description="Mirror GitHub issues and project items into Google Calendar",
    version="1.0.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(sync.router)
app.include_router(sync.auth_router)
app.include_router(projects.router)
app.include_router(webhooks.router)


@app.get("/")
async def root():
    """Service information"""
    return {
        "service": "GitHub Calendar Sync",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/auth/google",
            "sync": "/api/sync",
            "projects": "/api/projects",
            "webhooks": "/webhooks/github",
            "health": "/health",
        },
        "next_scheduled_sync": scheduler.next_run_time(),
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "GitHub Calendar Sync"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
