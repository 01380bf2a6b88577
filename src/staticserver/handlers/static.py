"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

The request → response-plan pipeline for static files. Each stage is a
separate, independently testable policy object; this handler only fixes
their ORDER:

    ┌──────────────────────────────────────────────────────────────────────┐
    │  request                                                             │
    │     │                                                                │
    │     ▼                                                                │
    │  PathResolver ──── BadRequest / Forbidden / NotFound ──► 400/403/404 │
    │     │ ResolvedAsset                                                  │
    │     ▼                                                                │
    │  Content-Type from MIME table                                        │
    │     │                                                                │
    │     ▼                                                                │
    │  ConditionalCache ── If-None-Match == ETag ──────────────► 304       │
    │     │ ETag, Cache-Control                                            │
    │     ▼                                                                │
    │  Range header? ─yes─► RangeNegotiator ── invalid ─────────► 416      │
    │     │ no                   │ ByteRange                               │
    │     │                      └──────────────────────────────► 206      │
    │     ▼                                                                │
    │  ContentEncoder ── br / gzip ──► 200, Content-Encoding, streamed     │
    │                 └─ identity ───► 200, Content-Length, streamed       │
    └──────────────────────────────────────────────────────────────────────┘

The handler never writes to the socket and never opens the file for the
body: it returns a plan whose stream opens the file lazily. The transport
sends it and closes the stream.

CORS preflight (OPTIONS → 204) is answered by CORSMiddleware BEFORE this
handler runs, so it never reaches path resolution.

=============================================================================
USAGE
=============================================================================

    handler = StaticFileHandler.from_config(config)
    response = handler.handle(request)      # or handler(request)

=============================================================================
"""

import logging
from typing import Optional

from ..config import ServerConfig
from ..errors import StaticFileError, Forbidden, NotFound, RangeNotSatisfiable
from ..http.caching import ConditionalCache
from ..http.encoding import ContentEncoder, EncodingChoice
from ..http.mime_types import get_mime_type
from ..http.ranges import RangeNegotiator, unsatisfiable_headers
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, BodySource, text_response,
)
from ..http.status_codes import HTTPStatus
from ..http.streams import FileStream, DEFAULT_CHUNK_SIZE
from .resolver import PathResolver, ResolvedAsset


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files from one root directory.

    Holds only immutable collaborators, so a single instance is shared by
    every worker thread.
    """

    def __init__(
        self,
        resolver: PathResolver,
        cache: Optional[ConditionalCache] = None,
        ranges: Optional[RangeNegotiator] = None,
        encoder: Optional[ContentEncoder] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.resolver = resolver
        self.cache = cache or ConditionalCache()
        self.ranges = ranges or RangeNegotiator()
        self.encoder = encoder or ContentEncoder()
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, config: ServerConfig) -> "StaticFileHandler":
        features = config.features
        return cls(
            resolver=PathResolver(config.root_dir, config.index_files),
            cache=ConditionalCache(
                etag=features.etag,
                cache_control=features.cache_control,
                max_age=config.cache_max_age,
                etag_mode=config.etag_mode,
                chunk_size=config.chunk_size,
            ),
            ranges=RangeNegotiator(),
            encoder=ContentEncoder(
                brotli_enabled=features.brotli,
                gzip_enabled=features.gzip,
                gzip_level=config.gzip_level,
                brotli_quality=config.brotli_quality,
            ),
            chunk_size=config.chunk_size,
        )

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Build the response plan for one request.

        Every StaticFileError is turned into its status with a short
        text/plain body; nothing raised by the policies escapes.
        The method is not consulted: HEAD gets the GET plan and the
        transport drops the body.
        """
        try:
            asset = self.resolver.resolve(request.path)
            return self._serve(asset, request)
        except RangeNotSatisfiable as e:
            logger.debug(f"416 for {request.path}: {e}")
            return (ResponseBuilder()
                .status(HTTPStatus.RANGE_NOT_SATISFIABLE)
                .headers(unsatisfiable_headers(e.total))
                .build())
        except StaticFileError as e:
            return text_response(e.status, e.message)

    def _serve(self, asset: ResolvedAsset, request: HTTPRequest) -> HTTPResponse:
        content_type = get_mime_type(asset.extension)

        # ─────────────────────────────────────────────────────────────────
        # CONDITIONAL REQUEST
        # ─────────────────────────────────────────────────────────────────
        try:
            decision = self.cache.evaluate(asset, request.if_none_match)
        except FileNotFoundError:
            # removed between stat() and hashing
            raise NotFound() from None
        except PermissionError:
            raise Forbidden() from None

        if decision.not_modified:
            return decision.not_modified_response()

        builder = (ResponseBuilder()
            .content_type(content_type)
            .headers(decision.headers))

        # ─────────────────────────────────────────────────────────────────
        # SINGLE BYTE RANGE
        # ─────────────────────────────────────────────────────────────────
        byte_range = self.ranges.negotiate(request.range, asset.size)
        if byte_range is not None:
            stream = FileStream(
                asset.path,
                start=byte_range.start,
                length=byte_range.length,
                chunk_size=self.chunk_size,
            )
            return (builder
                .status(HTTPStatus.PARTIAL_CONTENT)
                .headers(byte_range.headers())
                .stream(stream, BodySource.SLICED_FILE)
                .build())

        # ─────────────────────────────────────────────────────────────────
        # FULL ENTITY, POSSIBLY COMPRESSED
        # ─────────────────────────────────────────────────────────────────
        stream = FileStream(asset.path, chunk_size=self.chunk_size)
        choice = self.encoder.choose(request.accept_encoding, asset.extension)

        if choice is EncodingChoice.NONE:
            return (builder
                .content_length(asset.size)
                .stream(stream, BodySource.FULL_FILE)
                .build())

        return (builder
            .header("Content-Encoding", choice.value)
            .stream(self.encoder.encode(choice, stream), BodySource.ENCODED_FILE)
            .build())
