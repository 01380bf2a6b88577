"""
=============================================================================
HTTP → HTTPS REDIRECT
=============================================================================

When the plain-HTTP listener runs in redirect mode, every request gets a
permanent redirect to the same target on the HTTPS port:

    GET /docs/index.html?v=2 HTTP/1.1
    Host: example.com:80

    HTTP/1.1 301 Moved Permanently
    Location: https://example.com:443/docs/index.html?v=2
    Content-Length: 0

The port in the Host header is dropped and replaced with the HTTPS port.
The request target is copied unchanged (still percent-encoded).

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


def strip_port(host: str) -> str:
    """
    Remove a ":port" suffix from a Host header value.

        >>> strip_port("example.com:8080")
        'example.com'
        >>> strip_port("[::1]:8080")
        '[::1]'
    """
    if host.startswith("["):
        end = host.find("]")
        return host[:end + 1] if end != -1 else host
    return host.split(":", 1)[0]


class HTTPSRedirectHandler:
    """Answers every request with 301 to the HTTPS equivalent URL."""

    def __init__(self, https_port: int = 443, default_host: str = "localhost"):
        self.https_port = https_port
        self.default_host = default_host

    def location_for(self, request: HTTPRequest) -> str:
        host = strip_port(request.host.strip()) or self.default_host
        target = request.target or request.path
        return f"https://{host}:{self.https_port}{target}"

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        location = self.location_for(request)
        logger.debug(f"Redirecting {request.target} → {location}")
        return (ResponseBuilder()
            .status(HTTPStatus.MOVED_PERMANENTLY)
            .header("Location", location)
            .build())
