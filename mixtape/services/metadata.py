"""Metadata extraction and tag writing service"""
import logging
import re
from pathlib import Path
from typing import Optional, Any
from mutagen import File, MutagenError
from mutagen.id3 import ID3, ID3NoHeaderError, TIT2, TPE1, TALB, TDRC, TCON, TRCK

from mixtape.models.schemas import TrackMetadata

logger = logging.getLogger(__name__)


class MetadataExtractionError(Exception):
    """Raised when an audio file's tags or stream info cannot be parsed"""


class TagWriteError(Exception):
    """Raised when a tag frame cannot be written to a file"""


class MetadataService:
    """Service for extracting and writing audio metadata"""

    def extract_metadata(self, file_path: Path) -> TrackMetadata:
        """
        Extract metadata from an audio file

        Absent tags come back as None. Callers decide what a failure means.

        Raises:
            MetadataExtractionError: If the file is missing, corrupt or of an
                unsupported format
        """
        try:
            audio_file = File(str(file_path))
        except (MutagenError, OSError) as e:
            raise MetadataExtractionError(f"Failed to parse {file_path.name}: {e}") from e

        if audio_file is None:
            raise MetadataExtractionError(f"Unsupported file format: {file_path.name}")

        duration = getattr(audio_file.info, "length", None) if audio_file.info else None

        return TrackMetadata(
            artist=self._get_tag(audio_file, ["TPE1", "artist", "©ART"]),
            album=self._get_tag(audio_file, ["TALB", "album", "©alb"]),
            year=self._extract_year(audio_file),
            genre=self._extract_genre(audio_file),
            duration=float(duration) if duration else None,
            track_number=self._extract_track_number(audio_file),
            title=self._get_tag(audio_file, ["TIT2", "title", "©nam"]),
        )

    def write_tags(self, file_path: Path, metadata: TrackMetadata, title: Optional[str] = None) -> None:
        """
        Replace the ID3 frame of a file with the given metadata

        Fields that are absent are removed from the tag so it mirrors the
        record exactly. ``title`` wins over ``metadata.title`` when given.

        Raises:
            TagWriteError: If the tag cannot be written
        """
        try:
            try:
                tags = ID3(str(file_path))
            except ID3NoHeaderError:
                tags = ID3()

            frames = {
                "TIT2": title or metadata.title,
                "TPE1": metadata.artist,
                "TALB": metadata.album,
                "TDRC": str(metadata.year) if metadata.year is not None else None,
                "TCON": metadata.genre,
                "TRCK": str(metadata.track_number) if metadata.track_number is not None else None,
            }
            frame_types = {"TIT2": TIT2, "TPE1": TPE1, "TALB": TALB, "TDRC": TDRC, "TCON": TCON, "TRCK": TRCK}

            for frame_id, value in frames.items():
                tags.delall(frame_id)
                if value is not None and value != "":
                    tags.add(frame_types[frame_id](encoding=3, text=value))
                    logger.debug(f"Set {frame_id}: {value}")

            tags.save(str(file_path))
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Failed to write tags to {file_path.name}: {e}") from e

    def _get_tag(self, audio_file: Any, tag_names: list) -> Optional[str]:
        """Get tag value from audio file, trying multiple tag names"""
        for tag_name in tag_names:
            try:
                value = audio_file.get(tag_name)
            except (KeyError, AttributeError, ValueError):
                continue

            if value is None:
                continue
            if hasattr(value, "text"):
                value = value.text
            if isinstance(value, list):
                value = value[0] if value else None
            cleaned = self._clean_string(str(value)) if value is not None else ""
            if cleaned:
                return cleaned

        return None

    def _extract_year(self, audio_file: Any) -> Optional[int]:
        """Extract year from date tag"""
        value = self._get_tag(audio_file, ["TDRC", "TYER", "date", "©day"])
        if value:
            # Extract year from date string (e.g., "2023", "2023-01-01")
            year_match = re.search(r'\d{4}', value)
            if year_match:
                return int(year_match.group())
        return None

    def _extract_genre(self, audio_file: Any) -> Optional[str]:
        """Genre names joined with ', ' (ID3 numeric genres resolved)"""
        try:
            frame = audio_file.get("TCON")
        except (KeyError, AttributeError, ValueError):
            frame = None
        if frame is not None and hasattr(frame, "genres"):
            genres = [self._clean_string(g) for g in frame.genres if g and g.strip()]
            return ", ".join(genres) if genres else None
        return self._get_tag(audio_file, ["genre", "©gen"])

    def _extract_track_number(self, audio_file: Any) -> Optional[int]:
        """Leading number of a track tag such as '3/12'"""
        value = self._get_tag(audio_file, ["TRCK", "tracknumber"])
        if value is None:
            try:
                trkn = audio_file.get("trkn")
            except (KeyError, AttributeError, ValueError):
                trkn = None
            if trkn:
                return trkn[0][0] or None
            return None
        match = re.match(r'\s*(\d+)', value)
        return int(match.group(1)) if match else None

    def _clean_string(self, value: str) -> str:
        """Clean and normalize string value"""
        if not value:
            return ""

        # Remove null bytes
        cleaned = value.replace('\x00', '')

        # Remove extra whitespace
        cleaned = re.sub(r'\s+', ' ', cleaned.strip())

        return cleaned


metadata_service = MetadataService()
