"""Track repository - persistence of track rows"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from mixtape.models.track import Track
from mixtape.models.schemas import TrackMetadata, TrackUpdate

logger = logging.getLogger(__name__)


def merge_metadata(existing: TrackMetadata, patch: TrackMetadata) -> TrackMetadata:
    """
    Shallow, field-by-field merge of ``patch`` into ``existing``

    Only fields the client actually supplied in ``patch`` overwrite (an
    explicit null clears the field); every other field survives.
    """
    merged = existing.model_dump()
    for field in patch.model_fields_set:
        merged[field] = getattr(patch, field)
    return TrackMetadata.model_validate(merged)


class TrackRepository:
    """Queries over the tracks table for one session"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: int, title: str, file_url: str, metadata: TrackMetadata) -> Track:
        track = Track(
            user_id=user_id,
            title=title,
            file_url=file_url,
            id3=metadata.model_dump(),
        )
        self.db.add(track)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(track)
        logger.info(f"Track saved to database with ID: {track.id}")
        return track

    def get(self, track_id: int) -> Optional[Track]:
        return self.db.query(Track).filter(Track.id == track_id).first()

    def get_by_file_url(self, file_url: str) -> Optional[Track]:
        return self.db.query(Track).filter(Track.file_url == file_url).first()

    def list_newest_first(self) -> List[Track]:
        return self.db.query(Track).order_by(Track.created_at.desc(), Track.id.desc()).all()

    def update(self, track: Track, changes: TrackUpdate) -> Track:
        """Apply a title replacement and/or metadata merge"""
        if changes.title is not None:
            track.title = changes.title
        if changes.id3 is not None:
            current = TrackMetadata.model_validate(track.id3 or {})
            # Assign a new dict so the JSON column is flagged dirty
            track.id3 = merge_metadata(current, changes.id3).model_dump()
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(track)
        logger.info(f"Track {track.id} updated")
        return track

    def delete(self, track: Track) -> None:
        self.db.delete(track)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
