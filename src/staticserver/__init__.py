"""
=============================================================================
STATICSERVER - HTTPS Static File Server
=============================================================================

Serves a directory tree over HTTPS (and optionally HTTP), with:

    - root confinement and hidden-file protection
    - ETag / If-None-Match revalidation and Cache-Control
    - single byte-range requests (206 / 416)
    - on-the-fly brotli or gzip, streamed in bounded chunks
    - an HTTP → HTTPS redirect listener
    - optional CORS with preflight handling

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __main__.py          # CLI (python -m staticserver)
    ├── server.py            # HTTPServer: listeners, pool, response framing
    ├── config.py            # ServerConfig / Features
    ├── errors.py            # 400 / 403 / 404 / 416 exceptions
    ├── core/                # sockets, connections, worker pool
    ├── http/                # parsing, response plans, caching, ranges, encoding
    ├── handlers/            # PathResolver, StaticFileHandler, redirect
    └── middleware/          # access logging, CORS

=============================================================================
QUICK START
=============================================================================

    from staticserver import HTTPServer, ServerConfig

    config = ServerConfig(root_dir="./public", https_port=8443, http_port=8080)
    HTTPServer(config).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, Features
from .server import HTTPServer, ServerStartupError, create_app

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "Features",
    "ServerStartupError",
    "create_app",
    "__version__",
]
