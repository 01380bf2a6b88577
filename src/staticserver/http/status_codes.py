"""
=============================================================================
HTTP STATUS CODES USED BY THE STATIC SERVER
=============================================================================

A static file server speaks a small, fixed vocabulary of status codes.
Defining only those keeps the enum honest: if a code is not listed here,
nothing in this package can send it.

    ┌────────┬──────────────────────────┬────────────────────────────────┐
    │ Code   │ Phrase                   │ Produced by                    │
    ├────────┼──────────────────────────┼────────────────────────────────┤
    │ 200    │ OK                       │ full / encoded file            │
    │ 204    │ No Content               │ CORS preflight                 │
    │ 206    │ Partial Content          │ single byte range              │
    │ 301    │ Moved Permanently        │ HTTP → HTTPS redirect          │
    │ 304    │ Not Modified             │ If-None-Match hit              │
    │ 400    │ Bad Request              │ undecodable path, bad request  │
    │ 403    │ Forbidden                │ traversal, hidden, no index    │
    │ 404    │ Not Found                │ missing file                   │
    │ 408    │ Request Timeout          │ client too slow                │
    │ 413    │ Payload Too Large        │ oversized request              │
    │ 416    │ Range Not Satisfiable    │ bad or out-of-bounds range     │
    │ 500    │ Internal Server Error    │ unexpected handler failure     │
    │ 505    │ HTTP Version Not Supp.   │ not HTTP/1.0 or HTTP/1.1       │
    └────────┴──────────────────────────┴────────────────────────────────┘

=============================================================================
INTERVIEW QUESTIONS ABOUT STATUS CODES
=============================================================================

Q: "What's 304 Not Modified?"
A: "The answer to a conditional request whose validator still matches.
   The client reuses its cached body, so the response has none."

Q: "When do you send 206 instead of 200?"
A: "Only when the client sent a Range header AND the range was valid.
   Without a Range header the full entity goes out as 200."

Q: "What does 416 carry?"
A: "Content-Range: bytes */<length>, telling the client how big the
   entity actually is so it can ask again with a valid range."

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes as an IntEnum.

    IntEnum members compare equal to plain integers:

        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.PARTIAL_CONTENT.phrase
        'Partial Content'
    """

    # 2xx SUCCESS
    OK = 200                            # Full entity follows
    NO_CONTENT = 204                    # CORS preflight answer
    PARTIAL_CONTENT = 206               # Single byte range follows

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301             # Plain HTTP sent to HTTPS
    NOT_MODIFIED = 304                  # Cached copy still valid

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    RANGE_NOT_SATISFIABLE = 416

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("Not Modified", ...)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a message body.

        204 and 304 never do (RFC 7230 §3.3.3), so the transport sends
        neither a body nor a Content-Length for them.
        """
        return self not in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
