"""
=============================================================================
CORS (Cross-Origin Resource Sharing)
=============================================================================

Browsers block a page on origin A from reading responses from origin B
unless B says it is allowed. For a public static file server the answer
is usually "anyone may read":

    Access-Control-Allow-Origin: *
    Access-Control-Allow-Methods: GET, OPTIONS
    Access-Control-Allow-Headers: Origin, Range, Content-Type, Accept, Authorization

"Range" is in the allowed headers so that cross-origin media players can
seek: a Range header makes the request non-simple and triggers a
preflight.

=============================================================================
PREFLIGHT
=============================================================================

    Browser                                   Server
       │  OPTIONS /video.mp4                     │
       │  Origin: https://player.example         │
       │  Access-Control-Request-Headers: range  │
       │ ──────────────────────────────────────► │
       │                                         │  answered HERE, before
       │  204 No Content                         │  path resolution: no
       │  Access-Control-Allow-Origin: *         │  file is touched
       │  Access-Control-Allow-Methods: ...      │
       │  Access-Control-Allow-Headers: ...      │
       │ ◄────────────────────────────────────── │
       │  GET /video.mp4  Range: bytes=0-        │
       │ ──────────────────────────────────────► │

The same three headers are added to EVERY response while CORS is on,
including errors and 304s.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, empty_response
from ..http.status_codes import HTTPStatus


@dataclass(frozen=True)
class CORSConfig:
    """CORS policy. The defaults suit a public read-only file server."""

    allow_origin: str = "*"
    allow_methods: List[str] = field(default_factory=lambda: ["GET", "OPTIONS"])
    allow_headers: List[str] = field(default_factory=lambda: [
        "Origin", "Range", "Content-Type", "Accept", "Authorization",
    ])

    def headers(self) -> dict:
        return {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
        }


class CORSMiddleware(Middleware):
    """Adds CORS headers to every response and answers OPTIONS with 204."""

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()
        self._headers = self.config.headers()

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.method == "OPTIONS":
            response = empty_response(HTTPStatus.NO_CONTENT)
        else:
            response = next(request)

        response.headers.update(self._headers)
        return response
