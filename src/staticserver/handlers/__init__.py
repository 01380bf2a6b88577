"""
Request handlers.

    StaticFileHandler     Serves files from the root (resolve → cache →
                          range → encode)
    PathResolver          Maps request paths to safe files under the root
    HTTPSRedirectHandler  301 from the plain-HTTP listener to HTTPS
"""

from .resolver import PathResolver, ResolvedAsset, resolve
from .static import StaticFileHandler
from .redirect import HTTPSRedirectHandler

__all__ = [
    "PathResolver",
    "ResolvedAsset",
    "resolve",
    "StaticFileHandler",
    "HTTPSRedirectHandler",
]
