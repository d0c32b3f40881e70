"""Blob Store - flat directory of uploaded audio payloads"""
import logging
import re
import secrets
import shutil
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]')
DEFAULT_UPLOAD_NAME = "audio.mp3"


class BlobNotFoundError(FileNotFoundError):
    """Raised when a stored name does not resolve to a blob"""


def sanitize_filename(name: str, fallback: str = DEFAULT_UPLOAD_NAME) -> str:
    """
    Reduce a client supplied name to a safe basename

    Path components are dropped and every character outside
    ``[A-Za-z0-9._-]`` becomes ``_``.
    """
    basename = re.split(r'[\\/]', name or "")[-1]
    cleaned = _UNSAFE_CHARS.sub('_', basename).strip('.')
    return cleaned or fallback


def generate_storage_name(original_name: str) -> str:
    """Collision resistant name: ``<epoch ms>-<random>-<sanitized name>``"""
    millis = int(time.time() * 1000)
    suffix = secrets.randbelow(10 ** 9)
    return f"{millis}-{suffix}-{sanitize_filename(original_name)}"


class BlobStore(ABC):
    """Abstract storage for immutable audio payloads addressed by name"""

    @abstractmethod
    def put(self, source: BinaryIO, original_name: str) -> str:
        """
        Store a payload

        Args:
            source: Readable binary stream with the payload
            original_name: Client filename, only used as a name suffix

        Returns:
            Generated storage name
        """
        pass

    @abstractmethod
    def path(self, name: str) -> Path:
        """Local filesystem path of a blob, for tools that need one"""
        pass

    @abstractmethod
    def open(self, name: str) -> BinaryIO:
        """Open a stored blob for reading"""
        pass

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Delete a blob; returns False when it was already absent"""
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def size(self, name: str) -> int:
        pass

    @abstractmethod
    def copy_to(self, name: str, destination: Path) -> Path:
        """Copy a blob to a path outside the store"""
        pass


class LocalBlobStore(BlobStore):
    """Blob Store backed by a single filesystem directory"""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path(self, name: str) -> Path:
        """
        Resolve a storage name to its path

        Raises:
            BlobNotFoundError: If the name is not a plain basename
        """
        if not name or name in (".", "..") or name != Path(name).name or "\\" in name:
            raise BlobNotFoundError(f"Invalid blob name: {name!r}")
        return self.root / name

    def put(self, source: BinaryIO, original_name: str) -> str:
        name = generate_storage_name(original_name)
        target = self.root / name
        try:
            # "xb" so a name collision can never overwrite an existing blob
            with open(target, "xb") as out:
                shutil.copyfileobj(source, out)
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        logger.info(f"Stored blob {name} ({target.stat().st_size} bytes)")
        return name

    def open(self, name: str) -> BinaryIO:
        path = self.path(name)
        try:
            return open(path, "rb")
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob not found: {name}") from e

    def delete(self, name: str) -> bool:
        try:
            path = self.path(name)
        except BlobNotFoundError:
            return False
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted blob {name}")
        return True

    def exists(self, name: str) -> bool:
        try:
            return self.path(name).is_file()
        except BlobNotFoundError:
            return False

    def size(self, name: str) -> int:
        try:
            return self.path(name).stat().st_size
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob not found: {name}") from e

    def copy_to(self, name: str, destination: Path) -> Path:
        source = self.path(name)
        if not source.is_file():
            raise BlobNotFoundError(f"Blob not found: {name}")
        shutil.copyfile(source, destination)
        return Path(destination)
