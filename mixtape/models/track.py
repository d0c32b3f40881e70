"""Track model for database"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from mixtape.database.db import Base


class Track(Base):
    """Uploaded track"""
    __tablename__ = "tracks"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    file_url = Column(String, nullable=False, unique=True, index=True)
    id3 = Column(JSON, nullable=False, default=dict)  # Flattened tag metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    @property
    def filename(self) -> str:
        """Blob Store name behind the public file URL"""
        return self.file_url.rsplit("/", 1)[-1]
    
    def __repr__(self):
        return f"<Track(id={self.id}, title='{self.title}', file_url='{self.file_url}')>"
