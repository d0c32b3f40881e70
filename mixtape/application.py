"""FastAPI application factory"""
import logging
import time
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mixtape.api import downloads, routes
from mixtape.config import Settings, settings as default_settings
from mixtape.database.db import create_db_engine, create_session_factory, init_db
from mixtape.errors import setup_exception_handlers
from mixtape.services.blob_store import LocalBlobStore

logger = logging.getLogger(__name__)


def _clear_scratch_dir(settings: Settings) -> None:
    """
    Remove scratch copies left behind by a crashed process

    Workers may share SCRATCH_DIR, so only files older than
    SCRATCH_MAX_AGE are touched; younger ones can still be streaming.
    """
    cutoff = time.time() - settings.SCRATCH_MAX_AGE
    for leftover in settings.SCRATCH_DIR.glob("download-*"):
        try:
            if leftover.stat().st_mtime >= cutoff:
                continue
            leftover.unlink()
        except OSError as e:
            logger.warning(f"Could not remove stale scratch file {leftover.name}: {e}")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application for the given settings"""
    settings = settings or default_settings
    settings.ensure_directories()
    _clear_scratch_dir(settings)

    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)

    app = FastAPI(
        title=settings.API_TITLE,
        version=settings.API_VERSION,
        description="Personal audio track library with range streaming and ID3 sync"
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.blob_store = LocalBlobStore(settings.UPLOAD_DIR)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    # TODO: Add routes for auth, sharing and playlists
    app.include_router(routes.router, prefix="/api/tracks", tags=["tracks"])
    app.include_router(downloads.router, prefix=settings.PUBLIC_UPLOAD_PREFIX.rstrip("/"), tags=["downloads"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok", "service": "mixtape-backend"}

    logger.info(f"Serving uploads from {settings.UPLOAD_DIR}")
    return app
