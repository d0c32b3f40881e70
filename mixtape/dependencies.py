"""FastAPI dependencies resolving per-application collaborators"""
from fastapi import Request

from mixtape.config import Settings
from mixtape.services.blob_store import BlobStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    """Blob Store of the running app; override in tests to swap storage"""
    return request.app.state.blob_store
