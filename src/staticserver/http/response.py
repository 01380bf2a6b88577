"""
=============================================================================
HTTP RESPONSE PLAN
=============================================================================

A handler does not write bytes. It returns an HTTPResponse: a PLAN
describing status, headers, and where the body comes from. The transport
then decides framing (Content-Length, chunked, or close-delimited) and
streams the body.

=============================================================================
BODY SOURCES
=============================================================================

    ┌──────────────┬────────────────────────────┬─────────────────────────┐
    │ BodySource   │ Body                       │ Length known?           │
    ├──────────────┼────────────────────────────┼─────────────────────────┤
    │ EMPTY        │ nothing (304, 204, 301,416)│ n/a                     │
    │ INLINE       │ short bytes ("Not found")  │ yes, len(body)          │
    │ FULL_FILE    │ whole file, raw            │ yes, file size          │
    │ SLICED_FILE  │ byte range of a file       │ yes, end - start + 1    │
    │ ENCODED_FILE │ whole file via br / gzip   │ NO → chunked or close   │
    └──────────────┴────────────────────────────┴─────────────────────────┘

File-backed bodies are iterators of bounded chunks. Nothing is opened
until the transport starts iterating, and close() releases the file
handle whether the body was fully sent, abandoned, or never started.

=============================================================================
BUILDER PATTERN
=============================================================================

    ResponseBuilder()
        .status(HTTPStatus.PARTIAL_CONTENT)
        .content_type("video/mp4")
        .header("Content-Range", "bytes 0-1023/4096")
        .stream(FileStream(path, start=0, length=1024), BodySource.SLICED_FILE)
        .build()

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP RESPONSES
=============================================================================

Q: "How does the client know when the response body ends?"
A: "Three ways: a Content-Length header, Transfer-Encoding: chunked
   (HTTP/1.1 only), or the server closing the connection. Compressed
   streams have no length up front, so they use the second or third."

Q: "Which responses must never have a body?"
A: "Responses to HEAD, and 1xx, 204 and 304 responses."

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional, Protocol, Union

from .headers import Headers
from .status_codes import HTTPStatus


class BodySource(Enum):
    """Where a response body comes from."""
    EMPTY = "empty"
    INLINE = "inline"
    FULL_FILE = "full_file"
    SLICED_FILE = "sliced_file"
    ENCODED_FILE = "encoded_file"


class BodyStream(Protocol):
    """An iterator of byte chunks that must be closed when done."""

    def __iter__(self) -> Iterator[bytes]: ...

    def __next__(self) -> bytes: ...

    def close(self) -> None: ...


@dataclass
class HTTPResponse:
    """
    A response plan: status line, headers, and body source.

    Exactly one of `body` (INLINE) or `stream` (file-backed sources) is
    used, as named by `source`.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    stream: Optional[BodyStream] = None
    source: BodySource = BodySource.EMPTY
    version: str = "HTTP/1.1"

    def __post_init__(self):
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 206 Partial Content"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None

    @property
    def content_length(self) -> Optional[int]:
        """
        Declared or implied body length, None when unknown (encoded stream).
        """
        declared = self.headers.get("Content-Length")
        if declared is not None:
            return int(declared)
        if self.stream is None:
            return len(self.body)
        return None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def close(self) -> None:
        """Release the body stream's file handle, if any. Idempotent."""
        if self.stream is not None:
            self.stream.close()

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def head_bytes(self, server_name: str = "staticserver/1.0") -> bytes:
        """
        Serialize the status line and headers, ending with the blank line.

        Date and Server are added if missing. Content-Length is added for
        inline bodies when the status allows one; streamed bodies carry
        whatever framing the handler and transport set.

            HTTP/1.1 200 OK\\r\\n
            Content-Type: text/css\\r\\n
            Content-Length: 1234\\r\\n
            Date: Sun, 18 Oct 2026 12:00:00 GMT\\r\\n
            Server: staticserver/1.0\\r\\n
            \\r\\n
        """
        headers = self.headers.copy()

        if self.stream is None and self.status.allows_body:
            headers.setdefault("Content-Length", str(len(self.body)))

        if "Date" not in headers:
            headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in headers:
            headers["Server"] = server_name

        lines = [self.status_line, *headers.to_lines(), "", ""]
        # latin-1 is the wire encoding of header values (RFC 7230 §3.2.4)
        return "\r\n".join(lines).encode("latin-1", errors="replace")

    def to_bytes(self, server_name: str = "staticserver/1.0") -> bytes:
        """Serialize a non-streaming response in one piece."""
        if self.stream is not None:
            raise ValueError("Streaming responses are sent with head_bytes() + stream")
        body = self.body if self.status.allows_body else b""
        return self.head_bytes(server_name) + body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Each setter returns self; build() produces the response.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers = Headers()
        self._body = b""
        self._stream: Optional[BodyStream] = None
        self._source = BodySource.EMPTY

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers) -> "ResponseBuilder":
        """Set several headers from any mapping."""
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Inline body; strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self._stream = None
        self._source = BodySource.INLINE if self._body else BodySource.EMPTY
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Short plain-text body, as used for error responses."""
        return self.content_type("text/plain").body(text)

    def stream(self, stream: BodyStream, source: BodySource) -> "ResponseBuilder":
        """File-backed body; `source` says which kind."""
        self._stream = stream
        self._body = b""
        self._source = source
        return self

    def content_length(self, length: int) -> "ResponseBuilder":
        return self.header("Content-Length", str(length))

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            stream=self._stream,
            source=self._source,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 7231 §7.1.1.1).

        >>> format_http_date(datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc))
        'Sun, 18 Oct 2026 12:00:00 GMT'

    Built by hand rather than with strftime, which is locale-dependent.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def text_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Plain-text response with a short message body."""
    return ResponseBuilder().status(status).text(message).build()


def empty_response(status: HTTPStatus) -> HTTPResponse:
    return ResponseBuilder().status(status).build()
