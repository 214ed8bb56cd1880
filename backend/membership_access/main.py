"""Membership Access — FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from membership_access.api.v1.access import router as access_router
from membership_access.api.v1.memberships import router as memberships_router
from membership_access.api.v1.webhooks import router as webhooks_router
from membership_access.config import settings
from membership_access.database import async_session_factory, engine
from membership_access.workers.scheduler import ExpirationScheduler

# Configure root logger so all membership_access.* loggers output to stderr.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    scheduler: ExpirationScheduler | None = None
    if settings.scheduler_enabled:
        # First sweep runs one follow-up delay after startup
        scheduler = ExpirationScheduler(
            async_session_factory, initial_delay=settings.sweep_followup_delay_seconds
        )
        scheduler.start()
    app.state.expiration_scheduler = scheduler

    yield

    # Shutdown: stop the sweep, then dispose engine connections
    if scheduler is not None:
        await scheduler.stop()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Membership grants, expiry and content access checks for a storefront.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(webhooks_router)
app.include_router(memberships_router)
app.include_router(access_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
