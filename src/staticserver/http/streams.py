"""
=============================================================================
FILE BODY STREAMS
=============================================================================

A FileStream is an iterator of byte chunks read from one file, optionally
starting at an offset and stopping after a fixed length:

    FileStream(path)                        → whole file
    FileStream(path, start=100, length=50)  → bytes 100..149

The file is opened on the first next(), not at construction. A handler
can therefore build a response plan that is thrown away (HEAD request,
client gone before headers were sent) without ever touching the file.

close() is idempotent and safe before, during, or after iteration. The
transport calls it in a finally block, so a disconnect mid-body releases
the descriptor immediately.

=============================================================================
"""

import logging
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class FileStream:
    """Lazily opened, bounded, closeable iterator over a file's bytes."""

    def __init__(
        self,
        path: str,
        start: int = 0,
        length: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.path = path
        self.start = start
        self.length = length
        self.chunk_size = chunk_size
        self._file: Optional[BinaryIO] = None
        self._remaining = length
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> "FileStream":
        return self

    def __next__(self) -> bytes:
        if self._closed:
            raise StopIteration

        if self._file is None:
            self._file = open(self.path, "rb")
            if self.start:
                self._file.seek(self.start)

        size = self.chunk_size
        if self._remaining is not None:
            size = min(size, self._remaining)

        chunk = self._file.read(size) if size > 0 else b""
        if not chunk:
            self.close()
            raise StopIteration

        if self._remaining is not None:
            self._remaining -= len(chunk)
        return chunk

    def close(self) -> None:
        self._closed = True
        if self._file is not None:
            try:
                self._file.close()
            finally:
                self._file = None
                logger.debug(f"Closed {self.path}")

    def __repr__(self) -> str:
        return f"FileStream({self.path!r}, start={self.start}, length={self.length})"
