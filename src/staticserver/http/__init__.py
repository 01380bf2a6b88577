"""
HTTP protocol pieces: request parsing, response plans, headers, status
codes, MIME types, and file body streams.

The per-request policies live beside them and are imported directly:

    staticserver.http.caching   ConditionalCache (ETag / If-None-Match)
    staticserver.http.ranges    RangeNegotiator (single byte ranges)
    staticserver.http.encoding  ContentEncoder (brotli / gzip)
"""

from .status_codes import HTTPStatus
from .headers import Headers
from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    BodySource,
    format_http_date,
    text_response,
    empty_response,
)
from .mime_types import get_mime_type, extension_of, DEFAULT_MIME_TYPE
from .streams import FileStream

__all__ = [
    "HTTPStatus",
    "Headers",
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "BodySource",
    "format_http_date",
    "text_response",
    "empty_response",
    "get_mime_type",
    "extension_of",
    "DEFAULT_MIME_TYPE",
    "FileStream",
]
