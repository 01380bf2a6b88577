"""
=============================================================================
BYTE RANGE NEGOTIATION
=============================================================================

Range requests let a client fetch part of a file: resuming a download,
seeking in a video, reading a file's tail.

    Request header           File of 1000 bytes      Result
    ───────────────          ──────────────────      ──────
    (none)                                           200, whole file
    Range: bytes=0-99        bytes 0..99             206, 100 bytes
    Range: bytes=900-        bytes 900..999          206, 100 bytes
    Range: bytes=-           bytes 0..999            206, 1000 bytes
    Range: bytes=0-0         byte 0                  206, 1 byte
    Range: bytes=1000-       (past the end)          416
    Range: bytes=50-10       (start > end)           416
    Range: bytes=-100        (suffix form)           416
    Range: bytes=0-1,5-9     (multi-range)           416
    Range: items=0-9         (not bytes)             416

Only ONE range in the "bytes=<start>-<end>" form is supported. Suffix
ranges ("last N bytes") and multi-range responses are not; they are
answered 416 rather than silently served in full.

=============================================================================
RESPONSE HEADERS
=============================================================================

    206 Partial Content                   416 Range Not Satisfiable
    Content-Range: bytes 0-99/1000        Content-Range: bytes */1000
    Accept-Ranges: bytes                  (nothing else, empty body)
    Content-Length: 100

Range responses are never compressed: Content-Range counts bytes of the
stored file, which would not match a compressed stream.

=============================================================================
INTERVIEW QUESTIONS ABOUT RANGE REQUESTS
=============================================================================

Q: "Are range bounds inclusive?"
A: "Yes, both ends. bytes=0-0 is one byte; Content-Length is
   end - start + 1."

Q: "Why must a 416 carry Content-Range: bytes */N?"
A: "So the client learns the real length and can retry with a range
   that fits (RFC 7233 §4.2)."

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional

from ..errors import RangeNotSatisfiable


RANGE_PATTERN = re.compile(r"bytes=(\d*)-(\d*)")


@dataclass(frozen=True)
class ByteRange:
    """
    An inclusive byte range validated against the entity length.

    Invariant: 0 <= start <= end < total.
    """
    start: int
    end: int
    total: int

    def __post_init__(self):
        if not 0 <= self.start <= self.end < self.total:
            raise ValueError(
                f"Invalid byte range {self.start}-{self.end} for length {self.total}"
            )

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"

    def headers(self) -> Dict[str, str]:
        """Headers for the 206 response."""
        return {
            "Content-Range": self.content_range,
            "Accept-Ranges": "bytes",
            "Content-Length": str(self.length),
        }


def unsatisfiable_headers(total: int) -> Dict[str, str]:
    """The only header a 416 carries."""
    return {"Content-Range": f"bytes */{total}"}


class RangeNegotiator:
    """Parses a Range header into at most one ByteRange."""

    def negotiate(self, range_header: Optional[str], total: int) -> Optional[ByteRange]:
        """
        Resolve a Range header against an entity of `total` bytes.

        Returns:
            None when there is no Range header (serve the full entity),
            otherwise the validated ByteRange.

        Raises:
            RangeNotSatisfiable: Malformed, unsupported, or out of bounds.
        """
        if range_header is None or not range_header.strip():
            return None

        match = RANGE_PATTERN.fullmatch(range_header.strip())
        if not match:
            raise RangeNotSatisfiable(total, f"Malformed range: {range_header!r}")

        start_text, end_text = match.groups()

        if not start_text and end_text:
            raise RangeNotSatisfiable(total, f"Suffix ranges unsupported: {range_header!r}")

        start = int(start_text) if start_text else 0
        end = int(end_text) if end_text else total - 1

        if start > end or end >= total:
            raise RangeNotSatisfiable(total, f"Range {start}-{end} outside 0-{total - 1}")

        return ByteRange(start=start, end=end, total=total)
