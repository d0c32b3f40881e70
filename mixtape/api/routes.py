"""API routes for the track library"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from mixtape.config import Settings
from mixtape.database.db import get_db
from mixtape.dependencies import get_blob_store, get_settings
from mixtape.errors import http_error
from mixtape.models.track import Track
from mixtape.models.schemas import (
    MessageResponse,
    TrackEnvelope,
    TrackListResponse,
    TrackResponse,
    TrackUpdate,
)
from mixtape.services.blob_store import BlobStore
from mixtape.services.library import TrackRepository
from mixtape.services.metadata import metadata_service
from mixtape.services.streaming import RangeNotSatisfiable, build_stream_response
from mixtape.services.uploader import MissingFieldsError, UploadPipeline, UploadStorageError

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_track_or_404(repository: TrackRepository, track_id: str) -> Track:
    """Track for a path id; a non-numeric id is just another unknown track"""
    try:
        track = repository.get(int(track_id))
    except ValueError:
        track = None
    if track is None:
        raise HTTPException(status_code=404, detail="Track not found")
    return track


@router.post("/upload", status_code=201, response_model=TrackEnvelope)
async def upload_track(
    audio: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    user_id: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
):
    """
    Upload an audio file

    - Stores the file under a generated name
    - Extracts ID3 metadata (unreadable tags give empty metadata)
    - Uses the embedded title when present, else the supplied one
    """
    pipeline = UploadPipeline(
        blob_store,
        TrackRepository(db),
        metadata_service,
        public_prefix=settings.PUBLIC_UPLOAD_PREFIX,
    )
    try:
        track = await pipeline.run(
            audio.file if audio is not None else None,
            audio.filename if audio is not None else None,
            title,
            user_id,
        )
    except MissingFieldsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadStorageError as e:
        raise http_error(500, "Upload failed", str(e))

    return {"track": TrackResponse.model_validate(track)}


@router.get("/stream/{filename}")
async def stream_track(
    filename: str,
    request: Request,
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
):
    """
    Stream an uploaded file with seek support

    - No Range header: full body (200)
    - ``Range: bytes=<start>-<end>``: that span (206)
    """
    if not await run_in_threadpool(blob_store.exists, filename):
        raise HTTPException(status_code=404, detail="File not found")

    total = await run_in_threadpool(blob_store.size, filename)
    try:
        return build_stream_response(
            lambda: blob_store.open(filename),
            filename,
            total,
            request.headers.get("range"),
            settings.STREAM_CHUNK_SIZE,
        )
    except RangeNotSatisfiable as e:
        logger.debug(str(e))
        raise HTTPException(
            status_code=416,
            detail="Requested Range Not Satisfiable",
            headers={"Content-Range": f"bytes */{e.total}"},
        )


@router.get("", response_model=TrackListResponse)
def list_tracks(db: Session = Depends(get_db)):
    """List all tracks, newest first"""
    tracks = TrackRepository(db).list_newest_first()
    return {"tracks": [TrackResponse.model_validate(track) for track in tracks]}


@router.get("/{track_id}", response_model=TrackEnvelope)
def get_track(track_id: str, db: Session = Depends(get_db)):
    """Get details of a specific track"""
    track = _get_track_or_404(TrackRepository(db), track_id)

    return {"track": TrackResponse.model_validate(track)}


@router.patch("/{track_id}", response_model=TrackEnvelope)
def edit_track(
    track_id: str,
    changes: Optional[TrackUpdate] = Body(None),
    db: Session = Depends(get_db),
):
    """
    Edit a track

    - ``title`` replaces the title
    - ``id3`` is merged into the stored metadata; omitted fields are kept
    """
    if changes is None or changes.is_empty():
        raise HTTPException(status_code=400, detail="No fields to update.")

    repository = TrackRepository(db)
    track = _get_track_or_404(repository, track_id)

    try:
        track = repository.update(track, changes)
    except Exception as e:
        logger.exception(f"Failed to update track {track_id}")
        raise http_error(500, "Update failed", str(e))

    return {"track": TrackResponse.model_validate(track)}


@router.delete("/{track_id}", response_model=MessageResponse)
def delete_track(
    track_id: str,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Delete a track and its file

    - Deletes the audio file (a missing file is not an error)
    - Removes the track from the database
    """
    repository = TrackRepository(db)
    track = _get_track_or_404(repository, track_id)

    # Not transactional: a crash between the two steps leaves the row behind
    try:
        blob_store.delete(track.filename)
        repository.delete(track)
    except Exception as e:
        logger.exception(f"Failed to delete track {track_id}")
        raise http_error(500, "Delete failed", str(e))

    logger.info(f"Track {track_id} and its file deleted")
    return {"message": "Track and file deleted"}
