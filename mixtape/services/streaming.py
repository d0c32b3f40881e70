"""Byte-range parsing and file streaming responses"""
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, BinaryIO, Callable, Mapping, Optional

import anyio
from fastapi.concurrency import run_in_threadpool
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

logger = logging.getLogger(__name__)

AUDIO_MEDIA_TYPE = "audio/mpeg"
_RANGE_PATTERN = re.compile(r'^bytes=(\d+)-(\d*)$')


class RangeNotSatisfiable(Exception):
    """Range header that cannot be served for a file of the given size"""

    def __init__(self, header: str, total: int):
        super().__init__(f"Unsatisfiable range {header!r} for {total} bytes")
        self.header = header
        self.total = total


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte span ``start..end`` of a ``total`` byte resource"""
    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"


def parse_range(header: str, total: int) -> ByteRange:
    """
    Parse a single ``bytes=<start>-<end>`` range

    ``end`` is optional and defaults to ``total - 1``.

    Raises:
        RangeNotSatisfiable: If either bound is not a decimal integer,
            ``start > end`` or ``end >= total``
    """
    match = _RANGE_PATTERN.match(header.strip())
    if not match:
        raise RangeNotSatisfiable(header, total)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else total - 1
    if start > end or end >= total:
        raise RangeNotSatisfiable(header, total)

    return ByteRange(start=start, end=end, total=total)


class FileStreamResponse(StreamingResponse):
    """
    Stream a span of a binary stream from a worker thread

    ``opener`` is called lazily by the body iterator; the handle it returns
    is closed when the response finishes, fails or the client disconnects.
    ``on_close`` runs after that in every case, so request-scoped files can
    be removed.
    """

    def __init__(
        self,
        opener: Callable[[], BinaryIO],
        name: str,
        start: int = 0,
        length: Optional[int] = None,
        chunk_size: int = 64 * 1024,
        status_code: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        media_type: str = AUDIO_MEDIA_TYPE,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self.opener = opener
        self.name = name
        self.start = start
        self.length = length
        self.chunk_size = chunk_size
        self.on_close = on_close
        super().__init__(
            self._iter_file(),
            status_code=status_code,
            headers=headers,
            media_type=media_type,
        )

    async def _iter_file(self) -> AsyncIterator[bytes]:
        handle = await run_in_threadpool(self.opener)
        try:
            if self.start:
                await run_in_threadpool(handle.seek, self.start)
            remaining = self.length
            while remaining is None or remaining > 0:
                size = self.chunk_size if remaining is None else min(self.chunk_size, remaining)
                chunk = await run_in_threadpool(handle.read, size)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk
        finally:
            handle.close()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.body_iterator.aclose()
                if self.on_close is not None:
                    try:
                        await run_in_threadpool(self.on_close)
                    except OSError as e:
                        logger.warning(f"Cleanup after streaming {self.name} failed: {e}")


def build_stream_response(
    opener: Callable[[], BinaryIO],
    name: str,
    total: int,
    range_header: Optional[str],
    chunk_size: int,
) -> FileStreamResponse:
    """
    Response for a full (200) or partial (206) read of a ``total`` byte stream

    Raises:
        RangeNotSatisfiable: If ``range_header`` is present but invalid
    """
    if not range_header:
        return FileStreamResponse(
            opener,
            name,
            chunk_size=chunk_size,
            headers={
                "Content-Length": str(total),
                "Accept-Ranges": "bytes",
            },
        )

    byte_range = parse_range(range_header, total)
    return FileStreamResponse(
        opener,
        name,
        start=byte_range.start,
        length=byte_range.length,
        chunk_size=chunk_size,
        status_code=206,
        headers={
            "Content-Range": byte_range.content_range,
            "Content-Length": str(byte_range.length),
            "Accept-Ranges": "bytes",
        },
    )
