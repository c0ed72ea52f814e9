"""Timeline API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map TimelineError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, blob root and services initialized on startup via lifespan;
      live subscriptions cancelled and the engine disposed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Blob root mounted at blob_base_url so locators resolve to servable URLs;
      mounted AFTER the API routes so /api/v1/* takes precedence
    - create_tables on startup for SQLite/dev; production schemas come from alembic
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from timeline.api.dependencies import init_services, shutdown_services
from timeline.api.error_handlers import register_error_handlers
from timeline.api.routes import feed, health, posts, profile
from timeline.config import get_settings
from timeline.infrastructure.database import init_db
from timeline.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_create_tables:
        await db.create_tables()
    init_services(db, settings)
    logger.info("Timeline API started")
    yield
    logger.info("Timeline API shutting down")
    await shutdown_services()
    await db.dispose()


app = FastAPI(title="Timeline API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(feed.router)
app.include_router(posts.router)
app.include_router(profile.router)

register_error_handlers(app)

os.makedirs(settings.blob_root, exist_ok=True)
app.mount(
    settings.blob_base_url,
    StaticFiles(directory=settings.blob_root),
    name="blobs",
)
