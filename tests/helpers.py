"""Synthetic MP3 payloads and an in-memory Blob Store for tests"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from mutagen.id3 import ID3, TALB, TCON, TDRC, TIT2, TPE1, TRCK

from mixtape.services.blob_store import BlobNotFoundError, BlobStore, generate_storage_name

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, joint stereo, no CRC, no padding
FRAME_HEADER = b"\xff\xfb\x90\x64"
FRAME_SIZE = 417

_FRAME_TYPES = {
    "title": TIT2,
    "artist": TPE1,
    "album": TALB,
    "year": TDRC,
    "genre": TCON,
    "track": TRCK,
}


def mpeg_frames(count: int = 40) -> bytes:
    return (FRAME_HEADER + b"\x00" * (FRAME_SIZE - 4)) * count


def make_mp3(tmp_dir: Path, name: str = "test.mp3", frames: int = 40, **tags: str) -> Path:
    """Write an MP3 made of silent frames, with an ID3 tag when ``tags`` are given."""

    path = Path(tmp_dir) / name
    path.write_bytes(mpeg_frames(frames))
    if tags:
        id3 = ID3()
        for key, value in tags.items():
            id3.add(_FRAME_TYPES[key](encoding=3, text=str(value)))
        id3.save(str(path))
    return path


def read_tags(data: bytes, tmp_dir: Path, name: str = "downloaded.mp3") -> ID3:
    path = Path(tmp_dir) / name
    path.write_bytes(data)
    return ID3(str(path))


def tag_text(tags: ID3, frame_id: str) -> str | None:
    frame = tags.get(frame_id)
    if frame is None:
        return None
    return str(frame.text[0])


def upload(client, path: Path, title: str = "Uploaded Title", user_id: int | str | None = 1):
    data = {"title": title}
    if user_id is not None:
        data["user_id"] = str(user_id)
    with open(path, "rb") as handle:
        return client.post(
            "/api/tracks/upload",
            files={"audio": (path.name, handle, "audio/mpeg")},
            data=data,
        )


class MemoryBlobStore(BlobStore):
    """Blob Store kept in a dict, with no filesystem path for its blobs."""

    def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
        self.blobs = dict(blobs or {})
        self.opened: list[str] = []

    def _get(self, name: str) -> bytes:
        try:
            return self.blobs[name]
        except KeyError:
            raise BlobNotFoundError(f"Blob not found: {name}") from None

    def put(self, source: BinaryIO, original_name: str) -> str:
        name = generate_storage_name(original_name)
        self.blobs[name] = source.read()
        return name

    def path(self, name: str) -> Path:
        raise BlobNotFoundError(f"{name} has no local path")

    def open(self, name: str) -> BinaryIO:
        data = self._get(name)
        self.opened.append(name)
        return BytesIO(data)

    def delete(self, name: str) -> bool:
        return self.blobs.pop(name, None) is not None

    def exists(self, name: str) -> bool:
        return name in self.blobs

    def size(self, name: str) -> int:
        return len(self._get(name))

    def copy_to(self, name: str, destination: Path) -> Path:
        Path(destination).write_bytes(self._get(name))
        return Path(destination)
