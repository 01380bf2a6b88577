"""
=============================================================================
CONDITIONAL CACHING (ETag / If-None-Match)
=============================================================================

A client that already holds a copy of a file sends back the validator it
was given. If the file has not changed, the server answers 304 and skips
the body entirely.

    First request                          Revalidation
    ─────────────                          ────────────
    GET /app.js                            GET /app.js
                                           If-None-Match: 9e107d9d...

    200 OK                                 304 Not Modified
    ETag: 9e107d9d...                      ETag: 9e107d9d...
    Cache-Control: public, max-age=3600    Cache-Control: public, max-age=3600
    <body>                                 (no body)

=============================================================================
STRONG VS WEAK VALIDATORS
=============================================================================

    ┌──────────┬───────────────────────────┬───────────────────────────────┐
    │ Mode     │ Value                     │ Cost / correctness            │
    ├──────────┼───────────────────────────┼───────────────────────────────┤
    │ strong   │ md5(content), hex         │ Reads the whole file before   │
    │ (default)│ 9e107d9d372bb6826bd81d... │ headers. Exact: same bytes,   │
    │          │                           │ same tag, regardless of mtime.│
    ├──────────┼───────────────────────────┼───────────────────────────────┤
    │ weak     │ W/"<size>-<mtime_ns>"     │ One stat, no read. A touch    │
    │          │                           │ without change misses; a same-│
    │          │                           │ size edit within one mtime    │
    │          │                           │ tick is missed.               │
    └──────────┴───────────────────────────┴───────────────────────────────┘

The strong tag is emitted UNQUOTED, exactly as the hex digest, and
If-None-Match must equal it byte for byte. Existing clients echo what
they were given, so the comparison stays exact.

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP CACHING
=============================================================================

Q: "ETag vs Last-Modified?"
A: "Last-Modified has one-second resolution and says nothing about
   content. A content hash is exact: deploying identical bytes with a
   new mtime still revalidates as 304."

Q: "What's the price of a content-hash ETag?"
A: "A full read of the file on every request, even when the answer is
   304. For large media, the weak size/mtime validator avoids that."

=============================================================================
"""

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .response import ResponseBuilder, HTTPResponse
from .status_codes import HTTPStatus
from .streams import DEFAULT_CHUNK_SIZE


logger = logging.getLogger(__name__)

ETAG_MODES = ("strong", "weak")


def content_etag(path: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Hex MD5 of the file's full content, read in bounded chunks."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def weak_etag(size: int, mtime_ns: int) -> str:
    return f'W/"{size}-{mtime_ns}"'


@dataclass(frozen=True)
class CacheDecision:
    """
    Outcome of evaluating a request against the cache policy.

    Attributes:
        headers: ETag / Cache-Control to attach to the eventual response.
        not_modified: True when the client's copy is still valid.
    """
    headers: Dict[str, str] = field(default_factory=dict)
    not_modified: bool = False

    @property
    def etag(self) -> Optional[str]:
        return self.headers.get("ETag")

    def not_modified_response(self) -> HTTPResponse:
        """The 304 plan: only ETag and Cache-Control, never a body."""
        return (ResponseBuilder()
            .status(HTTPStatus.NOT_MODIFIED)
            .headers(self.headers)
            .build())


class ConditionalCache:
    """
    Computes validators and decides freshness for one asset at a time.

    Stateless between calls: nothing is memoized, so a file edited
    between two requests is always re-hashed.
    """

    def __init__(
        self,
        etag: bool = True,
        cache_control: bool = True,
        max_age: int = 3600,
        etag_mode: str = "strong",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if etag_mode not in ETAG_MODES:
            raise ValueError(f"Unknown etag_mode: {etag_mode!r}")
        self.etag = etag
        self.cache_control = cache_control
        self.max_age = max_age
        self.etag_mode = etag_mode
        self.chunk_size = chunk_size

    @property
    def cache_control_value(self) -> str:
        return f"public, max-age={self.max_age}"

    def validator_for(self, asset) -> str:
        """Compute the ETag for a ResolvedAsset under the configured mode."""
        if self.etag_mode == "weak":
            return weak_etag(asset.size, asset.mtime_ns)
        return content_etag(asset.path, self.chunk_size)

    def evaluate(self, asset, if_none_match: Optional[str]) -> CacheDecision:
        """
        Decide whether `asset` can be answered with 304.

        ┌───────────────────────────────────────────────────────────────┐
        │ etag disabled       → no ETag, no hashing, never 304          │
        │ If-None-Match == tag → 304 with ETag (+ Cache-Control)        │
        │ otherwise           → carry ETag (+ Cache-Control) onward     │
        └───────────────────────────────────────────────────────────────┘

        Raises:
            OSError: If the file cannot be read for hashing.
        """
        headers: Dict[str, str] = {}
        tag = None

        if self.etag:
            tag = self.validator_for(asset)
            headers["ETag"] = tag

        if self.cache_control:
            headers["Cache-Control"] = self.cache_control_value

        not_modified = tag is not None and if_none_match == tag
        if not_modified:
            logger.debug(f"ETag match for {asset.path}")

        return CacheDecision(headers=headers, not_modified=not_modified)
