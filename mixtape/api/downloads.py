"""Raw download route that re-syncs ID3 tags from the database"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from mixtape.config import Settings
from mixtape.database.db import get_db
from mixtape.dependencies import get_blob_store, get_settings
from mixtape.errors import http_error
from mixtape.services.blob_store import BlobNotFoundError, BlobStore
from mixtape.services.library import TrackRepository
from mixtape.services.metadata import TagWriteError, metadata_service
from mixtape.services.tag_sync import TagSyncService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{filename}")
async def download_track(
    filename: str,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
):
    """
    Download an uploaded file by its public URL

    The bytes sent carry the title and tags currently stored for the track,
    written into a scratch copy; the stored file is left untouched.
    """
    if not await run_in_threadpool(blob_store.exists, filename):
        raise HTTPException(status_code=404, detail="File not found")

    file_url = f"{settings.PUBLIC_UPLOAD_PREFIX.rstrip('/')}/{filename}"
    track = await run_in_threadpool(TrackRepository(db).get_by_file_url, file_url)
    if track is None:
        raise HTTPException(status_code=404, detail="Track not found")

    service = TagSyncService(blob_store, metadata_service, settings.SCRATCH_DIR)
    try:
        return await service.build_response(track, settings.STREAM_CHUNK_SIZE)
    except BlobNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    except TagWriteError as e:
        logger.exception(f"Tag sync failed for track {track.id}")
        raise http_error(500, "Download failed", str(e))
