"""Smart Bookmark API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Session gate runs before every route; CORS wraps the gate
    - Global error handlers map SmartBookmarkError → structured JSON responses
    - Database and change feed initialized on startup via lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_bookmark.api.error_handlers import register_error_handlers
from smart_bookmark.api.gate_middleware import SessionGateMiddleware
from smart_bookmark.api.routes import auth, bookmarks, health, pages
from smart_bookmark.config import get_settings
from smart_bookmark.infrastructure import database
from smart_bookmark.infrastructure.change_feed import init_feed
from smart_bookmark.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_feed(settings.feed_queue_size)
    logger.info("Smart Bookmark API started")
    yield
    logger.info("Smart Bookmark API shutting down")
    if database.db_manager:
        await database.db_manager.dispose()


app = FastAPI(
    title="Smart Bookmark API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
# Added first so it runs inside CORS (preflight never hits the gate)
app.add_middleware(SessionGateMiddleware, settings=settings)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(pages.router)
app.include_router(bookmarks.router)
