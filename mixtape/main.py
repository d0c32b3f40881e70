"""Main FastAPI application"""
import logging

from mixtape.config import settings

# Configure logging FIRST, before any other imports that might log
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from mixtape.application import create_app

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "mixtape.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
    )
