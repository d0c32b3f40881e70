"""Pydantic schemas for API"""
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from datetime import datetime
from typing import Optional, List


class TrackMetadata(BaseModel):
    """Flattened ID3 metadata stored with each track"""
    model_config = ConfigDict(populate_by_name=True)
    
    artist: Optional[str] = None
    album: Optional[str] = None
    year: Optional[int] = None
    genre: Optional[str] = None
    duration: Optional[float] = None  # Seconds
    track_number: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("track_number", "track"),
    )
    title: Optional[str] = None
    
    @classmethod
    def empty(cls) -> "TrackMetadata":
        """Metadata record with every field absent"""
        return cls()


class TrackResponse(BaseModel):
    """Schema for track response"""
    model_config = ConfigDict(from_attributes=True)
    
    id: int
    user_id: int
    title: str
    file_url: str
    id3: TrackMetadata = Field(default_factory=TrackMetadata)
    created_at: Optional[datetime] = None


class TrackUpdate(BaseModel):
    """Schema for editing a track; every field optional"""
    title: Optional[str] = None
    id3: Optional[TrackMetadata] = None
    
    def is_empty(self) -> bool:
        return self.title is None and self.id3 is None


class TrackEnvelope(BaseModel):
    track: TrackResponse


class TrackListResponse(BaseModel):
    tracks: List[TrackResponse]


class MessageResponse(BaseModel):
    message: str
