"""
Chatravasa backend - application entry point
Hostel meal opt-in service: residents choose which meals they will eat,
admins and kitchen staff see headcounts.

Main modules:
- meal catalog and weekly menu
- weekly preferences and daily overrides per resident
- opt-in resolution and edit deadlines
- hostel analytics and headcount export
- hostel, resident and staff role administration

Stack: FastAPI + DuckDB + JWT
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config.settings import Settings, settings as default_settings
from .core.clock import Clock, SystemClock, get_zone
from .core.database import DatabaseManager, resolve_db_path
from .core.error_handler import register_error_handlers
from .core.exceptions import DatabaseError
from .core.logging import setup_logging
from .services.snapshot_cache import SnapshotCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db: DatabaseManager = app.state.db
    try:
        db.init_database()
    except DatabaseError:
        # keep serving; /health reports the failure and the next request retries
        logger.exception("database initialization failed")

    yield

    app.state.snapshot_cache.clear()
    db.close()


def create_app(
    db: Optional[DatabaseManager] = None,
    clock: Optional[Clock] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create the FastAPI application; tests pass their own database and clock"""
    settings = settings or default_settings
    setup_logging(settings)
    # fail at startup on a misconfigured default zone
    get_zone(settings.hostel_timezone)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Hostel meal opt-in API",
        debug=settings.debug,
        lifespan=lifespan
    )

    app.state.db = db or DatabaseManager(resolve_db_path(settings.database_url))
    app.state.clock = clock or SystemClock()
    app.state.snapshot_cache = SnapshotCache(
        ttl_seconds=settings.snapshot_cache_ttl_seconds,
        maxsize=settings.snapshot_cache_size,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app, app.state.db)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    def health_check():
        try:
            app.state.db.execute_one("SELECT 1")
            return {
                "status": "healthy",
                "version": settings.api_version,
                "database": "connected"
            }
        except DatabaseError as e:
            return {
                "status": "unhealthy",
                "version": settings.api_version,
                "database": f"error: {e.message}"
            }

    @app.get("/")
    def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "description": "Hostel meal opt-in API"
        }

    return app
