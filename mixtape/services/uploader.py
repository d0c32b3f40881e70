"""Upload pipeline - store blob, extract tags, write track row"""
import logging
from typing import BinaryIO, Optional
from fastapi.concurrency import run_in_threadpool

from mixtape.models.track import Track
from mixtape.models.schemas import TrackMetadata
from mixtape.services.blob_store import BlobStore
from mixtape.services.library import TrackRepository
from mixtape.services.metadata import MetadataService, MetadataExtractionError

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """Base class for upload failures"""


class MissingFieldsError(UploadError):
    """File, title or owner id missing from the upload"""


class UploadStorageError(UploadError):
    """Blob or database write failed"""


def parse_user_id(value) -> Optional[int]:
    """Owner id from a form field, None when absent or not an integer"""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text.lstrip("-").isdigit():
        return None
    return int(text)


class UploadPipeline:
    """Receives one audio payload and turns it into a stored track"""

    def __init__(
        self,
        blob_store: BlobStore,
        repository: TrackRepository,
        metadata_service: MetadataService,
        public_prefix: str = "/uploads",
    ):
        self.blob_store = blob_store
        self.repository = repository
        self.metadata_service = metadata_service
        self.public_prefix = public_prefix.rstrip("/")

    async def run(
        self,
        source: Optional[BinaryIO],
        original_name: Optional[str],
        title: Optional[str],
        user_id,
    ) -> Track:
        """
        Store the payload and create its track row

        Raises:
            MissingFieldsError: Before anything is written, if file, title
                or owner id is missing
            UploadStorageError: If the blob or the row cannot be written
        """
        owner_id = parse_user_id(user_id)
        if source is None or not title or not title.strip() or owner_id is None:
            raise MissingFieldsError("Missing required fields.")

        try:
            name = await run_in_threadpool(self.blob_store.put, source, original_name or "")
        except OSError as e:
            logger.exception("Failed to store uploaded file")
            raise UploadStorageError(f"Failed to store file: {e}") from e

        metadata = await run_in_threadpool(self.extract_or_empty, name)
        canonical_title = metadata.title or title
        metadata = metadata.model_copy(update={"title": canonical_title})

        file_url = f"{self.public_prefix}/{name}"
        try:
            track = await run_in_threadpool(
                self.repository.create, owner_id, canonical_title, file_url, metadata
            )
        except Exception as e:
            logger.exception(f"Failed to save track row for {name}")
            await run_in_threadpool(self._discard_blob, name)
            raise UploadStorageError(f"Failed to save track: {e}") from e

        logger.info(f"Uploaded track {track.id} '{track.title}' as {name}")
        return track

    def extract_or_empty(self, name: str) -> TrackMetadata:
        """
        Tag metadata of a stored blob

        An unreadable file is not an upload failure: extraction errors always
        degrade to empty metadata.
        """
        try:
            return self.metadata_service.extract_metadata(self.blob_store.path(name))
        except MetadataExtractionError as e:
            logger.warning(f"Metadata extraction failed, storing empty metadata: {e}")
            return TrackMetadata.empty()

    def _discard_blob(self, name: str) -> None:
        try:
            self.blob_store.delete(name)
        except OSError as e:
            logger.warning(f"Could not remove orphaned blob {name}: {e}")
