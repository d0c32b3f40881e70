"""Configuration settings for the mixtape backend"""
from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""
    
    # Paths
    BASE_DIR: Path = Path(__file__).parent.parent
    DATA_DIR: Path = BASE_DIR / "_server-data"
    UPLOAD_DIR: Path = DATA_DIR / "uploads"
    SCRATCH_DIR: Path = DATA_DIR / "scratch"
    # Scratch copies older than this many seconds are removed at startup
    SCRATCH_MAX_AGE: int = 6 * 60 * 60
    
    # Database
    DATABASE_URL: str = f"sqlite:///{DATA_DIR / 'mixtape.db'}"
    
    # Streaming
    STREAM_CHUNK_SIZE: int = 64 * 1024
    PUBLIC_UPLOAD_PREFIX: str = "/uploads"
    
    # API settings
    API_TITLE: str = "Mixtape API"
    API_VERSION: str = "1.0.0"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 4000
    CORS_ORIGINS: List[str] = ["*"]
    
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True
    
    def ensure_directories(self) -> None:
        """Create the blob and scratch directories if missing"""
        self.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
        self.SCRATCH_DIR.mkdir(parents=True, exist_ok=True)
        if self.DATABASE_URL.startswith("sqlite:///"):
            db_path = Path(self.DATABASE_URL[len("sqlite:///"):])
            db_path.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
