"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.x request bytes into immutable HTTPRequest objects.
Implements the parts of RFC 7230 a static file server needs.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /docs/a%20b.pdf?v=3 HTTP/1.1\r\n        ← request line         │
    │  Host: example.com\r\n                       ← headers              │
    │  Range: bytes=0-1023\r\n                                            │
    │  If-None-Match: 9e107d9d372bb6826bd81d3542a419d6\r\n                │
    │  Accept-Encoding: br, gzip\r\n                                      │
    │  \r\n                                        ← end of headers       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE PATH STAYS RAW
=============================================================================

The parser deliberately does NOT percent-decode the path and does NOT
reject "..". Both are the path resolver's job:

    Parser                     Resolver
    ───────                    ────────
    "/a%2F..%2Fsecret"   ──►   decode → "/a/../secret"
                               normalize → "<root>/secret"
                               boundary check against root

Decoding in two places invites double-decoding bugs ("%252e" becoming
"." after two passes). Rejecting ".." textually before decoding misses
"%2e%2e" entirely. One decoder, one boundary check.

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP PARSING
=============================================================================

Q: "How do you know when the HTTP headers end?"
A: "Headers end with an empty line (\\r\\n\\r\\n). The connection buffers
   until it sees that delimiter, then hands the bytes to the parser."

Q: "How do you handle malformed requests?"
A: "Raise HTTPParseError with a status code: 400 for bad syntax
   or an unknown method, 413 for oversized requests, 505 for
   unsupported versions. The server sends that status and closes."

Q: "Why are headers stored lowercase?"
A: "Names are case-insensitive. Normalizing once at parse time means
   every lookup can use a plain dict access."

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import urlsplit
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code the transport should answer with:

        400 Bad Request                 - Malformed request line or unknown method
        413 Payload Too Large           - Request exceeds size limit
        505 HTTP Version Not Supported  - Not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed, immutable HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         "GET", "HEAD", "OPTIONS", ...
        target:         The request target exactly as sent
                        "/a%20b.txt?x=1"
        path:           Path part of the target, STILL percent-encoded
                        "/a%20b.txt"
        query:          Raw query string without "?" ("x=1")
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header dict with LOWERCASE keys
        client_address: (ip, port) of the peer, for logging

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    target: str = ""
    query: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    # =========================================================================
    # HEADERS THE STATIC PIPELINE READS
    # =========================================================================

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def range(self) -> str | None:
        """Range header, or None when the client asked for the whole entity."""
        return self.headers.get("range")

    @property
    def if_none_match(self) -> str | None:
        return self.headers.get("if-none-match")

    @property
    def accept_encoding(self) -> str:
        return self.headers.get("accept-encoding", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

            HTTP/1.1: keep-alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    REQUEST_LINE_PATTERN: ^([A-Z]+) ([^ ]+) (HTTP/\\d\\.\\d)$
        METHOD SP REQUEST-TARGET SP HTTP-VERSION

    HEADER_PATTERN: ^([^:]+):\\s*(.*)$
        field-name ":" OWS field-value
    """

    VALID_METHODS = {
        "GET",
        "HEAD",
        "OPTIONS",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "TRACE",
        "CONNECT",
    }

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest.

        Any request body is ignored: nothing this server does reads one.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes are ASCII; latin-1 maps every byte and never fails.
        header_section = data[:header_end].decode("latin-1")
        lines = header_section.split("\r\n")

        method, target, version = self._parse_request_line(lines[0])
        path, query = self._split_target(target)
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            target=target,
            query=query,
            headers=headers,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}")

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        return method, target, version

    @staticmethod
    def _split_target(target: str) -> tuple[str, str]:
        """
        Split a request target into (raw path, raw query).

        Origin-form ("/a/b?x") is split on the first "?" only; urlsplit
        would read "//etc/passwd" as a network location. Absolute-form
        ("http://host/a/b?x", sent to proxies) goes through urlsplit.
        """
        if target.startswith(("http://", "https://")):
            parts = urlsplit(target)
            return parts.path or "/", parts.query

        if target == "*":
            return target, ""

        path, _, query = target.partition("?")
        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {target!r}")
        return path, query

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2), so two
        Accept-Encoding lines read the same as one comma-separated line.
        Obsolete line folding continues the previous header.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers
