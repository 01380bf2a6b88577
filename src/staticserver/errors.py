"""
=============================================================================
STATIC FILE ERRORS
=============================================================================

Every way a static file request can fail is an exception carrying the
HTTP status that should reach the client.

    ┌───────────────────────┬────────┬────────────────────────────────────┐
    │ Exception             │ Status │ Raised when                        │
    ├───────────────────────┼────────┼────────────────────────────────────┤
    │ BadRequest            │ 400    │ Path does not decode, contains NUL │
    │ Forbidden             │ 403    │ Escapes root, hidden, no index     │
    │ NotFound              │ 404    │ Missing, or not a regular file     │
    │ RangeNotSatisfiable   │ 416    │ Range malformed or out of bounds   │
    └───────────────────────┴────────┴────────────────────────────────────┘

The resolver and the range negotiator RAISE these. Only the
StaticFileHandler catches them, and it turns each one into a short
plain-text response. They never reach the transport layer.

=============================================================================
INTERVIEW QUESTIONS ABOUT ERROR DESIGN
=============================================================================

Q: "Why exceptions instead of returning (ok, error) tuples?"
A: "The happy path reads top to bottom with no error plumbing. Each
   failure carries its own status code, so the single catch site in
   the handler needs no mapping table."

Q: "Why return 403 for a hidden file instead of 404?"
A: "It matches what the server does for traversal attempts. The client
   learns only that the path is not servable from here."

=============================================================================
"""

from .http.status_codes import HTTPStatus


class StaticFileError(Exception):
    """
    Base class for request failures that map to an HTTP status.

    Attributes:
        status: HTTP status to send.
        message: Short plain-text body for the client.
    """

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(StaticFileError):
    """The request path could not be decoded safely."""
    status = HTTPStatus.BAD_REQUEST
    default_message = "Bad request"


class Forbidden(StaticFileError):
    """The path is outside the root, hidden, or a directory without index."""
    status = HTTPStatus.FORBIDDEN
    default_message = "Access denied"


class NotFound(StaticFileError):
    status = HTTPStatus.NOT_FOUND
    default_message = "File not found"


class RangeNotSatisfiable(StaticFileError):
    """
    The Range header cannot be honoured for an entity of `total` bytes.

    The 416 response carries only `Content-Range: bytes */<total>` so the
    client can retry with a valid range.
    """
    status = HTTPStatus.RANGE_NOT_SATISFIABLE
    default_message = "Range not satisfiable"

    def __init__(self, total: int, message: str = ""):
        self.total = total
        super().__init__(message)
