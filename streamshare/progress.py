"""
Progress-reporting stream wrapper used to feed upload chunks.
"""

import asyncio
from typing import AsyncIterator, BinaryIO, Iterator, Optional

from streamshare.models import DEFAULT_CHUNK_SIZE, ProgressCallback


class ProgressReader:
    """
    Read a binary stream in chunks and report cumulative progress.

    A chunk is reported once the consumer asks for the next one, so a chunk
    that is still being sent (or awaiting acknowledgement) is not counted.
    The callback receives ``(bytes_sent, total_bytes)`` and runs on the
    consumer's thread; blocking inside it stalls the upload.

    Example:
        >>> with open("video.mp4", "rb") as f:
        ...     reader = ProgressReader(f, total_bytes=size, callback=print)
        ...     for chunk in reader.iter_chunks():
        ...         websocket.send(chunk)
    """

    def __init__(
        self,
        stream: BinaryIO,
        total_bytes: int,
        callback: Optional[ProgressCallback] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._stream = stream
        self.total_bytes = total_bytes
        self.chunk_size = chunk_size
        self._callback = callback
        self.bytes_read = 0
        self.bytes_reported = 0

    def _consumed(self, chunk: bytes) -> None:
        self.bytes_reported += len(chunk)
        if self._callback:
            self._callback(self.bytes_reported, self.total_bytes)

    def _finished(self) -> None:
        # An empty file yields no chunks but still completes.
        if self.bytes_read == 0 and self._callback:
            self._callback(0, self.total_bytes)

    def iter_chunks(self) -> Iterator[bytes]:
        """Yield chunks until the stream is exhausted."""
        while True:
            chunk = self._stream.read(self.chunk_size)
            if not chunk:
                break
            self.bytes_read += len(chunk)
            yield chunk
            self._consumed(chunk)
        self._finished()

    async def aiter_chunks(self) -> AsyncIterator[bytes]:
        """Async variant of :meth:`iter_chunks`; reads run in a worker thread."""
        while True:
            chunk = await asyncio.to_thread(self._stream.read, self.chunk_size)
            if not chunk:
                break
            self.bytes_read += len(chunk)
            yield chunk
            self._consumed(chunk)
        self._finished()
