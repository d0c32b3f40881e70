"""Tag-rewrite-on-download: serve a blob with tags matching its track row"""
import logging
import os
import re
import tempfile
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from mixtape.models.track import Track
from mixtape.models.schemas import TrackMetadata
from mixtape.services.blob_store import BlobStore
from mixtape.services.metadata import MetadataService
from mixtape.services.streaming import FileStreamResponse

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9\-_.]')


def download_filename(title: str, fallback: str) -> str:
    """Attachment filename derived from the track title"""
    base = title or Path(fallback).stem
    return _UNSAFE_CHARS.sub('_', base) + ".mp3"


def _remove_scratch(path: Path) -> None:
    path.unlink(missing_ok=True)
    logger.debug(f"Removed scratch copy {path.name}")


class TagSyncService:
    """Builds request-scoped scratch copies whose tags mirror the database"""

    def __init__(self, blob_store: BlobStore, metadata_service: MetadataService, scratch_dir: Path):
        self.blob_store = blob_store
        self.metadata_service = metadata_service
        self.scratch_dir = Path(scratch_dir)

    def prepare_scratch_copy(self, track: Track) -> Path:
        """
        Copy the track's blob to a fresh scratch file and rewrite its tags

        The canonical blob is never opened for writing. On failure the
        scratch file is removed before the error propagates.
        """
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        fd, scratch_name = tempfile.mkstemp(prefix="download-", suffix=".mp3", dir=self.scratch_dir)
        scratch = Path(scratch_name)
        try:
            os.close(fd)
            self.blob_store.copy_to(track.filename, scratch)
            metadata = TrackMetadata.model_validate(track.id3 or {})
            self.metadata_service.write_tags(scratch, metadata, title=track.title)
        except BaseException:
            _remove_scratch(scratch)
            raise
        return scratch

    async def build_response(self, track: Track, chunk_size: int) -> FileStreamResponse:
        """Stream a tag-synced scratch copy as an attachment, deleting it on close"""
        scratch = await run_in_threadpool(self.prepare_scratch_copy, track)
        try:
            size = await run_in_threadpool(lambda: scratch.stat().st_size)
        except OSError:
            await run_in_threadpool(_remove_scratch, scratch)
            raise
        filename = download_filename(track.title, track.filename)
        logger.info(f"Serving track {track.id} as '{filename}' with synced tags")

        return FileStreamResponse(
            lambda: open(scratch, "rb"),
            scratch.name,
            chunk_size=chunk_size,
            headers={
                "Content-Length": str(size),
                "Content-Disposition": f'attachment; filename="{filename}"',
            },
            on_close=lambda: _remove_scratch(scratch),
        )
