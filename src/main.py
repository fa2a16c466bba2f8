"""FastAPI application entry point: wires everything together.

Usage:
    python -m src.main

Serves the deletion API and, unless disabled, runs the daily deletion job
in-process with APScheduler.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI

from src.admin.web import router as admin_router
from src.api.routes import router as api_router
from src.config import settings
from src.db.engine import db_lifespan
from src.security.triggers import run_periodic_deletions

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Daily deletion job at the configured UTC time."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_periodic_deletions,
        CronTrigger(hour=settings.gdpr.cron_hour, minute=settings.gdpr.cron_minute, timezone="UTC"),
        id="delete_scheduled_users",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600,
    )
    return scheduler


# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting workshop platform (env=%s)", settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")

        scheduler = None
        if settings.gdpr.scheduler_enabled:
            scheduler = create_scheduler()
            scheduler.start()
            logger.info(
                "Daily deletion job scheduled at %02d:%02d UTC",
                settings.gdpr.cron_hour,
                settings.gdpr.cron_minute,
            )
        else:
            logger.warning("GDPR scheduler disabled, relying on external cron for deletions")

        try:
            yield
        finally:
            logger.info("Shutting down...")
            if scheduler is not None:
                scheduler.shutdown(wait=False)
                logger.info("Scheduler stopped")

    logger.info("Shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Workshop Platform API",
    description="Retention-aware account deletion for career-orientation workshops",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(api_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
